"""
Sessions Package

Per-request session lifecycle (SessionManager), the Session handle exposed to
request handlers, flash messages and the pluggable store backends.
"""

from websession.sessions.flash import FLASH_KEY, Flash
from websession.sessions.manager import Session, SessionManager, SessionState
from websession.sessions.models import LoadResult
from websession.sessions.stores import (
    CookieSessionStore,
    InMemoryKeyValueClient,
    KeyValueClient,
    KeyValueSessionStore,
    MemorySessionStore,
    RedisSessionStore,
    SessionStore,
    SqlSessionStore,
)

__all__ = [
    "FLASH_KEY",
    "Flash",
    "LoadResult",
    "Session",
    "SessionManager",
    "SessionState",
    "SessionStore",
    "CookieSessionStore",
    "InMemoryKeyValueClient",
    "KeyValueClient",
    "KeyValueSessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "SqlSessionStore",
]
