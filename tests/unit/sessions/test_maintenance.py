"""
Unit tests for websession/sessions/maintenance.py.
"""

import asyncio
import contextlib
from datetime import timedelta

import pytest

from websession.sessions.maintenance import cleanup_periodically
from websession.sessions.models import utcnow
from websession.sessions.stores import MemorySessionStore


class FlakyStore(MemorySessionStore):
    """Fails the first sweep, then counts successful ones."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    async def cleanup(self) -> None:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("sweep failed")
        await super().cleanup()


async def run_for(store, seconds: float, interval: float) -> None:
    task = asyncio.create_task(cleanup_periodically(store, interval))
    await asyncio.sleep(seconds)
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


class TestCleanupPeriodically:
    @pytest.mark.asyncio
    async def test_sweeps_expired_sessions(self):
        store = MemorySessionStore()
        await store.save("expired", {}, utcnow() - timedelta(seconds=1))
        await store.save("live", {}, utcnow() + timedelta(hours=1))

        await run_for(store, 0.05, 0.01)

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failed_sweep_does_not_stop_loop(self):
        store = FlakyStore()

        await run_for(store, 0.1, 0.01)

        assert store.calls >= 2

    @pytest.mark.asyncio
    async def test_cancellation_stops_loop(self):
        store = MemorySessionStore()
        task = asyncio.create_task(cleanup_periodically(store, 0.01))

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
