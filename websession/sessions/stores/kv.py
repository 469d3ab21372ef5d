"""
Key-value session store.

Works with any client offering ``get``, ``set`` (with an optional TTL) and
``delete``; memcached-style caches, cloud KV services and the bundled
InMemoryKeyValueClient all fit. Records are stored as JSON under
``<key_prefix><session_id>``.
"""

import logging
import time
from datetime import datetime
from typing import Any, Optional, Protocol, Union, runtime_checkable

from pydantic import ValidationError

from websession.sessions.models import LoadResult
from websession.sessions.stores.base import (
    decode_record,
    encode_record,
    fresh_load_result,
    is_expired,
    ttl_seconds,
)

logger = logging.getLogger(__name__)


DEFAULT_KEY_PREFIX = "session:"


@runtime_checkable
class KeyValueClient(Protocol):
    """The three operations a key-value backend must provide."""

    async def get(self, key: str) -> Optional[Union[str, bytes]]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueClient:
    """
    Process-local KeyValueClient with TTL support.

    Expired keys are dropped lazily on read.
    """

    def __init__(self) -> None:
        self._values: dict[str, tuple[str, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[str]:
        item = self._values.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline is not None and deadline <= time.monotonic():
            self._values.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        deadline = time.monotonic() + ttl_seconds if ttl_seconds else None
        self._values[key] = (value, deadline)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)


class KeyValueSessionStore:
    """
    Session store over a generic KeyValueClient.

    Attributes:
        _client: The injected key-value client.
        _key_prefix: Prefix for every session key.
    """

    backend_name = "kv"

    def __init__(self, client: KeyValueClient, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._client = client
        self._key_prefix = key_prefix

    def _make_key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    async def load(self, pointer: Optional[str]) -> LoadResult:
        """Restore a session by id, or mint a fresh one."""
        if not pointer:
            return fresh_load_result()

        key = self._make_key(pointer)
        raw = await self._client.get(key)
        if raw is None:
            return fresh_load_result()

        try:
            record = decode_record(raw)
        except ValidationError:
            logger.warning("Discarding corrupted session record under %s", self._key_prefix)
            return fresh_load_result()

        if is_expired(record.expires_at):
            try:
                await self._client.delete(key)
            except Exception as e:
                logger.warning(f"Failed to delete expired session: {type(e).__name__}: {e}")
            return fresh_load_result()

        return LoadResult(session_id=pointer, data=record.data, is_new=False)

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Store the record, with a native TTL when the expiry is in the future."""
        await self._client.set(
            self._make_key(session_id),
            encode_record(data, expires_at),
            ttl_seconds(expires_at),
        )
        return session_id

    async def destroy(self, session_id: str) -> None:
        await self._client.delete(self._make_key(session_id))

    async def cleanup(self) -> None:
        # The backend's TTL evicts records; keys cannot be enumerated here.
        return None
