"""
Backend-specific tests for SqlSessionStore on aiosqlite.

Upsert statements for PostgreSQL and MySQL are checked by compiling them
against those dialects; no server is needed.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, inspect, select, text
from sqlalchemy.dialects import mysql, postgresql

from websession.sessions.models import utcnow
from websession.sessions.stores import SqlSessionStore
from websession.sessions.stores.sql import SessionRow


async def count_rows(engine) -> int:
    async with engine.connect() as conn:
        result = await conn.execute(select(func.count()).select_from(SessionRow))
        return result.scalar_one()


class TestTableCreation:
    @pytest.mark.asyncio
    async def test_table_created_on_first_use(self, sql_engine):
        store = SqlSessionStore(sql_engine)

        await store.save("abc", {}, None)

        async with sql_engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert "sessions" in tables

    @pytest.mark.asyncio
    async def test_create_tables_is_idempotent(self, sql_engine):
        store = SqlSessionStore(sql_engine)

        await store.create_tables()
        await store.create_tables()

        assert store._tables_initialized is True

    @pytest.mark.asyncio
    async def test_dialect_name(self, sql_engine):
        assert SqlSessionStore(sql_engine).dialect == "sqlite"


class TestSqlPersistence:
    @pytest.mark.asyncio
    async def test_repeated_save_upserts_single_row(self, sql_engine):
        store = SqlSessionStore(sql_engine)

        await store.save("abc", {"n": 1}, utcnow() + timedelta(hours=1))
        await store.save("abc", {"n": 2}, utcnow() + timedelta(hours=2))

        assert await count_rows(sql_engine) == 1
        assert (await store.load("abc")).data == {"n": 2}

    @pytest.mark.asyncio
    async def test_cleanup_deletes_expired_rows(self, sql_engine):
        store = SqlSessionStore(sql_engine)
        await store.save("expired", {}, utcnow() - timedelta(minutes=1))
        await store.save("live", {}, utcnow() + timedelta(minutes=1))
        await store.save("forever", {}, None)

        await store.cleanup()

        assert await count_rows(sql_engine) == 2
        assert (await store.load("live")).is_new is False

    @pytest.mark.asyncio
    async def test_expired_row_deleted_on_load(self, sql_engine):
        store = SqlSessionStore(sql_engine)
        await store.save("abc", {}, utcnow() - timedelta(seconds=1))

        await store.load("abc")

        assert await count_rows(sql_engine) == 0

    @pytest.mark.asyncio
    async def test_corrupted_row_yields_fresh_session(self, sql_engine):
        store = SqlSessionStore(sql_engine)
        await store.save("abc", {}, None)
        async with sql_engine.begin() as conn:
            await conn.execute(text("UPDATE sessions SET data = '{oops' WHERE session_id = 'abc'"))

        assert (await store.load("abc")).is_new is True

    @pytest.mark.asyncio
    async def test_non_object_data_yields_fresh_session(self, sql_engine):
        store = SqlSessionStore(sql_engine)
        await store.save("abc", {}, None)
        async with sql_engine.begin() as conn:
            await conn.execute(text("UPDATE sessions SET data = '[1, 2]' WHERE session_id = 'abc'"))

        assert (await store.load("abc")).is_new is True

    @pytest.mark.asyncio
    async def test_update_then_insert_fallback(self, sql_engine, monkeypatch):
        """Dialects without a native upsert still replace the row."""
        monkeypatch.setattr(SqlSessionStore, "dialect", property(lambda self: "oracle"))
        store = SqlSessionStore(sql_engine)

        await store.save("abc", {"n": 1}, None)
        await store.save("abc", {"n": 2}, None)

        assert await count_rows(sql_engine) == 1
        assert (await store.load("abc")).data == {"n": 2}


class TestUpsertStatements:
    def _values(self):
        return {"session_id": "abc", "data": "{}", "expires_at": None}

    @pytest.mark.asyncio
    async def test_postgresql_uses_on_conflict(self, sql_engine, monkeypatch):
        monkeypatch.setattr(SqlSessionStore, "dialect", property(lambda self: "postgresql"))
        stmt = SqlSessionStore(sql_engine)._upsert_statement(self._values())

        compiled = str(stmt.compile(dialect=postgresql.dialect()))

        assert "ON CONFLICT (session_id) DO UPDATE" in compiled

    @pytest.mark.asyncio
    async def test_mysql_uses_on_duplicate_key(self, sql_engine, monkeypatch):
        monkeypatch.setattr(SqlSessionStore, "dialect", property(lambda self: "mysql"))
        stmt = SqlSessionStore(sql_engine)._upsert_statement(self._values())

        compiled = str(stmt.compile(dialect=mysql.dialect()))

        assert "ON DUPLICATE KEY UPDATE" in compiled

    @pytest.mark.asyncio
    async def test_unknown_dialect_has_no_upsert(self, sql_engine, monkeypatch):
        monkeypatch.setattr(SqlSessionStore, "dialect", property(lambda self: "oracle"))

        assert SqlSessionStore(sql_engine)._upsert_statement(self._values()) is None
