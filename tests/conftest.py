"""
Pytest configuration and shared fixtures.

This configuration sets up:
- Test markers for categorization
- Session store fixtures for every backend (fakeredis, in-memory SQLite)
- Helpers for building requests and reading Set-Cookie headers
"""

import sys
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio
import fakeredis.aioredis
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.requests import Request
from starlette.responses import Response

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from websession.sessions.stores import (  # noqa: E402
    CookieSessionStore,
    InMemoryKeyValueClient,
    KeyValueSessionStore,
    MemorySessionStore,
    RedisSessionStore,
    SqlSessionStore,
)


TEST_SECRET = "this-is-a-test-secret-key-32chars!"

ALL_BACKENDS = ["memory", "cookie", "kv", "redis", "sql"]
ID_BASED_BACKENDS = ["memory", "kv", "redis", "sql"]


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for the full request lifecycle")


# =============================================================================
# Secret Fixture
# =============================================================================


@pytest.fixture
def secret() -> str:
    """The secret used by the end-to-end scenario."""
    return TEST_SECRET


# =============================================================================
# Backend Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def fake_redis():
    """
    Provide a fake Redis client for testing.

    fakeredis gives a fully functional Redis-compatible interface without
    requiring a real Redis instance.
    """
    redis = fakeredis.aioredis.FakeRedis()
    await redis.flushall()
    yield redis
    await redis.aclose()


@pytest_asyncio.fixture
async def sql_engine():
    """
    Provide an in-memory SQLite async engine.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    yield engine
    await engine.dispose()


async def _build_store(backend: str, fake_redis, sql_engine):
    if backend == "memory":
        return MemorySessionStore()
    if backend == "cookie":
        return CookieSessionStore()
    if backend == "kv":
        return KeyValueSessionStore(InMemoryKeyValueClient())
    if backend == "redis":
        return RedisSessionStore(redis_client=fake_redis)
    if backend == "sql":
        return SqlSessionStore(sql_engine)
    raise ValueError(backend)


@pytest_asyncio.fixture(params=ALL_BACKENDS)
async def any_store(request, fake_redis, sql_engine):
    """Every store variant, one test run per backend."""
    return await _build_store(request.param, fake_redis, sql_engine)


@pytest_asyncio.fixture(params=ID_BASED_BACKENDS)
async def id_store(request, fake_redis, sql_engine):
    """Store variants that keep server-side records keyed by session id."""
    return await _build_store(request.param, fake_redis, sql_engine)


# =============================================================================
# Request / Response Helpers
# =============================================================================


def make_request(cookie_header: Optional[str] = None, path: str = "/") -> Request:
    """Build a bare Starlette request, optionally carrying a Cookie header."""
    headers = []
    if cookie_header:
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "headers": headers,
            "query_string": b"",
        }
    )


def set_cookie_headers(response: Response) -> list[str]:
    return [
        value.decode("latin-1")
        for key, value in response.raw_headers
        if key.lower() == b"set-cookie"
    ]


def cookie_pair(response: Response) -> str:
    """The ``name=value`` part of the response's session Set-Cookie header."""
    headers = set_cookie_headers(response)
    assert headers, "response carries no Set-Cookie header"
    return headers[-1].split(";", 1)[0]


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def cookie_of():
    return cookie_pair
