"""
Relational session store on SQLAlchemy (async).

Stores one row per session in the ``sessions`` table:

    session_id  VARCHAR(64) PRIMARY KEY
    data        TEXT        JSON-encoded session data
    expires_at  DATETIME    NULL, naive UTC

Saves are upserts. The statement is picked from the engine's dialect:
``ON CONFLICT DO UPDATE`` for PostgreSQL and SQLite, ``ON DUPLICATE KEY
UPDATE`` for MySQL/MariaDB, and an update-then-insert fallback otherwise.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic_core import from_json, to_json
from sqlalchemy import DateTime, MetaData, String, Text, delete, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from websession.sessions.models import LoadResult, as_utc, utcnow
from websession.sessions.stores.base import fresh_load_result, is_expired

logger = logging.getLogger(__name__)


# Define naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class SessionBase(DeclarativeBase):
    """Declarative base for the session tables."""

    metadata = MetaData(naming_convention=convention)


class SessionRow(SessionBase):
    """One persisted session."""

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, index=True
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SessionRow(session_id={self.session_id[:8]!r})>"


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    utc = as_utc(value)
    return utc.replace(tzinfo=None) if utc is not None else None


class SqlSessionStore:
    """
    Session store backed by a relational database.

    Args:
        engine: SQLAlchemy AsyncEngine (asyncpg, aiomysql, aiosqlite, ...).
        auto_create: Create the sessions table on first use.

    Example:
        >>> from sqlalchemy.ext.asyncio import create_async_engine
        >>> engine = create_async_engine("sqlite+aiosqlite:///sessions.db")
        >>> store = SqlSessionStore(engine)
    """

    backend_name = "sql"

    def __init__(self, engine: AsyncEngine, auto_create: bool = True) -> None:
        self._engine = engine
        self._auto_create = auto_create
        self._tables_initialized = False
        self._tables_init_lock = asyncio.Lock()

    @property
    def dialect(self) -> str:
        """Name of the engine's SQL dialect."""
        return self._engine.dialect.name

    async def create_tables(self) -> None:
        """Create the sessions table if it does not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(SessionBase.metadata.create_all, checkfirst=True)
        self._tables_initialized = True
        logger.debug("Session table initialized (dialect=%s)", self.dialect)

    async def _ensure_table(self) -> None:
        if self._tables_initialized or not self._auto_create:
            return
        async with self._tables_init_lock:
            # Double-check after acquiring lock
            if not self._tables_initialized:
                await self.create_tables()

    async def load(self, pointer: Optional[str]) -> LoadResult:
        """Restore a session by id, or mint a fresh one."""
        if not pointer:
            return fresh_load_result()

        await self._ensure_table()
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(SessionRow.data, SessionRow.expires_at).where(
                    SessionRow.session_id == pointer
                )
            )
            row = result.first()

        if row is None:
            return fresh_load_result()

        if is_expired(as_utc(row.expires_at)):
            try:
                await self.destroy(pointer)
            except SQLAlchemyError as e:
                logger.warning(f"Failed to delete expired session: {type(e).__name__}: {e}")
            return fresh_load_result()

        try:
            data = from_json(row.data)
        except ValueError:
            logger.warning("Discarding session row with corrupted data")
            return fresh_load_result()
        if not isinstance(data, dict):
            return fresh_load_result()

        return LoadResult(session_id=pointer, data=data, is_new=False)

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Upsert the row for session_id; the pointer is the id itself."""
        await self._ensure_table()
        values = {
            "session_id": session_id,
            "data": to_json(data).decode("utf-8"),
            "expires_at": _to_db_time(expires_at),
        }

        async with self._engine.begin() as conn:
            statement = self._upsert_statement(values)
            if statement is not None:
                await conn.execute(statement)
            else:
                await self._update_then_insert(conn, values)
        return session_id

    def _upsert_statement(self, values: dict[str, Any]):
        dialect = self.dialect
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(SessionRow).values(**values)
            return stmt.on_conflict_do_update(
                index_elements=["session_id"],
                set_={
                    "data": stmt.excluded.data,
                    "expires_at": stmt.excluded.expires_at,
                },
            )
        if dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(SessionRow).values(**values)
            return stmt.on_duplicate_key_update(
                data=stmt.inserted.data,
                expires_at=stmt.inserted.expires_at,
            )
        return None

    async def _update_then_insert(self, conn: AsyncConnection, values: dict[str, Any]) -> None:
        result = await conn.execute(
            update(SessionRow)
            .where(SessionRow.session_id == values["session_id"])
            .values(data=values["data"], expires_at=values["expires_at"])
        )
        if result.rowcount == 0:
            await conn.execute(SessionRow.__table__.insert().values(**values))

    async def destroy(self, session_id: str) -> None:
        await self._ensure_table()
        async with self._engine.begin() as conn:
            await conn.execute(
                delete(SessionRow).where(SessionRow.session_id == session_id)
            )

    async def cleanup(self) -> None:
        """Delete every row whose expiry has elapsed."""
        await self._ensure_table()
        async with self._engine.begin() as conn:
            result = await conn.execute(
                delete(SessionRow).where(
                    SessionRow.expires_at.is_not(None),
                    SessionRow.expires_at <= _to_db_time(utcnow()),
                )
            )
        if result.rowcount:
            logger.debug("Removed %d expired sessions from the database", result.rowcount)
