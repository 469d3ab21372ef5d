"""
Session store backends.

All backends satisfy the SessionStore protocol and are interchangeable:

- MemorySessionStore: process-local dictionary
- CookieSessionStore: whole session inside the encrypted cookie
- KeyValueSessionStore: any get/set/delete key-value client
- RedisSessionStore: redis.asyncio client with native TTL
- SqlSessionStore: SQLAlchemy async engine (PostgreSQL, MySQL, SQLite)
"""

from websession.sessions.stores.base import SessionStore, fresh_load_result, new_session_id
from websession.sessions.stores.cookie import CookieSessionStore
from websession.sessions.stores.kv import (
    InMemoryKeyValueClient,
    KeyValueClient,
    KeyValueSessionStore,
)
from websession.sessions.stores.memory import MemorySessionStore
from websession.sessions.stores.redis_store import RedisSessionStore
from websession.sessions.stores.sql import SqlSessionStore

__all__ = [
    "SessionStore",
    "fresh_load_result",
    "new_session_id",
    "CookieSessionStore",
    "InMemoryKeyValueClient",
    "KeyValueClient",
    "KeyValueSessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "SqlSessionStore",
]
