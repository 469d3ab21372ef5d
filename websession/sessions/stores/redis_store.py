"""
Redis session store.

Sessions are stored as JSON under ``<key_prefix><session_id>`` with a Redis
TTL derived from the session expiry. The expiry is also kept inside the
value and checked on load, in case a record outlives its logical lifetime
(for example when the expiry is under a second away and no TTL was set).

Pattern: Dependency injection for Redis client
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from websession.sessions.models import LoadResult
from websession.sessions.stores.base import (
    decode_record,
    encode_record,
    fresh_load_result,
    is_expired,
    ttl_seconds,
)

logger = logging.getLogger(__name__)


class RedisSessionStore:
    """
    Redis-based session storage.

    Connection errors are not caught: an unavailable Redis fails the
    request rather than silently handing out empty sessions.

    Attributes:
        _redis: The Redis client instance.
        _key_prefix: Prefix for Redis keys.

    Example:
        >>> import redis.asyncio as redis
        >>> client = redis.from_url("redis://localhost:6379")
        >>> store = RedisSessionStore(redis_client=client)
    """

    backend_name = "redis"

    def __init__(self, redis_client: Redis, key_prefix: str = "session:") -> None:
        """
        Initialize RedisSessionStore with a Redis client.

        Args:
            redis_client: Async Redis client instance.
            key_prefix: Prefix for all session keys in Redis.
        """
        self._redis: Redis = redis_client
        self._key_prefix: str = key_prefix

    def _make_key(self, session_id: str) -> str:
        """
        Generate Redis key for a session ID.

        Args:
            session_id: The session's unique identifier.

        Returns:
            Full Redis key with prefix.
        """
        return f"{self._key_prefix}{session_id}"

    async def load(self, pointer: Optional[str]) -> LoadResult:
        """
        Restore a session from Redis.

        Args:
            pointer: Session id from the decrypted cookie, if any.

        Returns:
            The stored session, or a fresh one when the id is absent,
            unknown, expired or holds a corrupted value.
        """
        if not pointer:
            return fresh_load_result()

        key = self._make_key(pointer)
        json_data = await self._redis.get(key)
        if json_data is None:
            return fresh_load_result()

        try:
            record = decode_record(json_data)
        except ValidationError:
            logger.warning("Discarding corrupted session record in Redis")
            return fresh_load_result()

        if is_expired(record.expires_at):
            try:
                await self._redis.delete(key)
            except RedisError as e:
                logger.warning(f"Failed to delete expired session: {type(e).__name__}: {e}")
            return fresh_load_result()

        return LoadResult(session_id=pointer, data=record.data, is_new=False)

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        """
        Save a session to Redis.

        Args:
            session_id: The session's unique identifier.
            data: Full session data; replaces whatever was stored.
            expires_at: Logical expiry, also used for the Redis TTL.

        Returns:
            The session id, which is the pointer for the cookie.
        """
        await self._redis.set(
            self._make_key(session_id),
            encode_record(data, expires_at),
            ex=ttl_seconds(expires_at),
        )
        return session_id

    async def destroy(self, session_id: str) -> None:
        """Delete a session; deleting an unknown id is not an error."""
        await self._redis.delete(self._make_key(session_id))

    async def cleanup(self) -> None:
        # Redis evicts expired keys through the TTL set in save().
        return None
