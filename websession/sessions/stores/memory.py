"""
In-memory session store.

Process-local dictionary keyed by session id. Suitable for development,
tests and single-process deployments; sessions are lost on restart and not
shared between workers.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from websession.sessions.models import LoadResult, as_utc, utcnow
from websession.sessions.stores.base import fresh_load_result, is_expired

logger = logging.getLogger(__name__)


@dataclass
class _MemoryEntry:
    data: dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[datetime] = None


class MemorySessionStore:
    """
    Dictionary-backed session store.

    Data is deep-copied on the way in and out, so the dict a request
    mutates is never the one held by the store.

    Example:
        >>> store = MemorySessionStore()
        >>> pointer = await store.save("abc", {"userId": "u1"})
        >>> (await store.load(pointer)).data
        {'userId': 'u1'}
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._entries: dict[str, _MemoryEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self, pointer: Optional[str]) -> LoadResult:
        """Restore a session by id, or mint a fresh one."""
        if not pointer:
            return fresh_load_result()

        entry = self._entries.get(pointer)
        if entry is None:
            return fresh_load_result()

        if is_expired(entry.expires_at):
            self._entries.pop(pointer, None)
            return fresh_load_result()

        return LoadResult(
            session_id=pointer,
            data=copy.deepcopy(entry.data),
            is_new=False,
        )

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Replace the record for session_id; the pointer is the id itself."""
        self._entries[session_id] = _MemoryEntry(
            data=copy.deepcopy(data),
            expires_at=as_utc(expires_at),
        )
        return session_id

    async def destroy(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    async def cleanup(self) -> None:
        """Drop every entry whose expiry has elapsed."""
        now = utcnow()
        expired = [
            sid for sid, entry in self._entries.items()
            if is_expired(entry.expires_at, now)
        ]
        for sid in expired:
            self._entries.pop(sid, None)
        if expired:
            logger.debug("Removed %d expired in-memory sessions", len(expired))
