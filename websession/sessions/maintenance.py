"""
Periodic expired-session sweep.

Stores with native TTLs implement cleanup() as a no-op, so running the sweep
against them is harmless.
"""

import asyncio
import logging

from websession.sessions.stores.base import SessionStore

logger = logging.getLogger(__name__)


async def cleanup_periodically(store: SessionStore, interval_seconds: float) -> None:
    """
    Call ``store.cleanup()`` every ``interval_seconds`` until cancelled.

    A failed sweep is logged and retried on the next tick; it never stops
    the loop.
    """
    backend = getattr(store, "backend_name", type(store).__name__)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await store.cleanup()
        except Exception as e:
            logger.error(f"Session cleanup failed for backend={backend}: {type(e).__name__}: {e}")
