"""
Session store factory.

Builds the configured store backend from Settings. The key-value backend
needs an injected client and is therefore constructed directly by callers.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import create_async_engine

from websession.core.config import Settings, get_settings
from websession.core.exceptions import ConfigurationError
from websession.sessions.stores import (
    CookieSessionStore,
    MemorySessionStore,
    RedisSessionStore,
    SessionStore,
    SqlSessionStore,
)

logger = logging.getLogger(__name__)


def create_session_store(settings: Optional[Settings] = None) -> SessionStore:
    """
    Create the session store selected by ``settings.backend``.

    Args:
        settings: Settings to use; defaults to the process singleton.

    Returns:
        SessionStore: A ready-to-use backend. Redis and SQL connections
        are opened lazily on first use.

    Raises:
        ConfigurationError: If the backend name is not supported.
    """
    settings = settings or get_settings()
    backend = settings.backend

    if backend == "memory":
        store: SessionStore = MemorySessionStore()
    elif backend == "cookie":
        store = CookieSessionStore()
    elif backend == "redis":
        client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        store = RedisSessionStore(redis_client=client, key_prefix=settings.redis_key_prefix)
    elif backend == "sql":
        store = SqlSessionStore(create_async_engine(settings.database_url))
    else:
        raise ConfigurationError(f"Unsupported session backend: {backend!r}", setting="backend")

    logger.info(f"Session store initialized: backend={backend}")
    return store
