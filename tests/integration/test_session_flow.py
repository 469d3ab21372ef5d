"""
Integration tests: full request lifecycle through create_app().

Application routes use the get_session dependency; the TestClient's cookie
jar carries the session cookie between requests the way a browser would.
"""

import fakeredis.aioredis
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from websession.api.deps import get_session
from websession.core.config import Settings
from websession.main import create_app
from websession.sessions.manager import Session
from websession.sessions.stores import (
    CookieSessionStore,
    InMemoryKeyValueClient,
    KeyValueSessionStore,
    MemorySessionStore,
    RedisSessionStore,
    SqlSessionStore,
)

pytestmark = pytest.mark.integration

SECRET = "this-is-a-test-secret-key-32chars!"


def build_store(backend: str):
    if backend == "memory":
        return MemorySessionStore()
    if backend == "cookie":
        return CookieSessionStore()
    if backend == "kv":
        return KeyValueSessionStore(InMemoryKeyValueClient())
    if backend == "redis":
        return RedisSessionStore(redis_client=fakeredis.aioredis.FakeRedis())
    if backend == "sql":
        return SqlSessionStore(create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool))
    raise ValueError(backend)


def build_app(store):
    settings = Settings(secret=SECRET, cleanup_interval_seconds=0)
    app = create_app(settings, store=store)

    @app.get("/")
    async def index(session: Session = Depends(get_session)):
        session.set("userId", "user123")
        return {"ok": True}

    @app.get("/get")
    async def read(session: Session = Depends(get_session)):
        return {"userId": session.get("userId"), "is_new": session.is_new}

    @app.post("/login")
    async def login(session: Session = Depends(get_session)):
        session.rotate()
        session.flash.set("notice", "Welcome back")
        return {"old_id": session.session_id}

    @app.get("/whoami")
    async def whoami(session: Session = Depends(get_session)):
        return {"session_id": session.session_id, "notice": session.flash.get("notice")}

    @app.post("/logout")
    async def logout(session: Session = Depends(get_session)):
        session.destroy()
        return {"ok": True}

    return app


@pytest.fixture(params=["memory", "cookie", "kv", "redis", "sql"])
def client(request):
    with TestClient(build_app(build_store(request.param)), base_url="https://testserver") as c:
        yield c


class TestSessionFlow:
    def test_value_set_on_one_request_is_read_on_the_next(self, client):
        """GET / stores userId; GET /get returns it from the same session."""
        assert client.get("/").status_code == 200

        response = client.get("/get")

        assert response.json() == {"userId": "user123", "is_new": False}

    def test_new_client_gets_new_session(self, client):
        client.get("/")
        client.cookies.clear()

        assert client.get("/get").json() == {"userId": None, "is_new": True}

    def test_login_rotates_and_flashes(self, client):
        client.get("/")
        before = client.get("/whoami").json()["session_id"]

        client.post("/login")
        after = client.get("/whoami").json()

        assert after["session_id"] != before
        assert after["notice"] == "Welcome back"
        assert client.get("/get").json()["userId"] == "user123"
        assert client.get("/whoami").json()["notice"] is None

    def test_logout_destroys_session(self, client):
        client.get("/")

        client.post("/logout")

        assert client.get("/get").json() == {"userId": None, "is_new": True}
