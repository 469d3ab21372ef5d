"""
Prometheus Metrics Module

Session lifecycle metrics: how many requests arrive with a valid session,
how many cookies fail to decrypt, how each request's session ends, and how
long store calls take per backend.

Labels are kept low-cardinality on purpose: backend names and fixed outcome
strings only, never session ids.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
    make_asgi_app,
)


# =============================================================================
# Session Load Counter
# =============================================================================

SESSION_LOADS_TOTAL = Counter(
    name="websession_loads_total",
    documentation="Sessions loaded at the start of a request, by result",
    labelnames=["backend", "result"],
)

# =============================================================================
# Cookie Decryption Failures
# =============================================================================

COOKIE_DECRYPT_FAILURES_TOTAL = Counter(
    name="websession_cookie_decrypt_failures_total",
    documentation="Session cookies that failed to decrypt and were ignored",
)

# =============================================================================
# Session Outcome Counter
# =============================================================================

SESSION_OUTCOMES_TOTAL = Counter(
    name="websession_outcomes_total",
    documentation="Sessions finalized at the end of a request, by outcome",
    labelnames=["backend", "outcome"],
)

# =============================================================================
# Store Latency Histogram
# =============================================================================

STORE_OPERATION_DURATION_SECONDS = Histogram(
    name="websession_store_operation_duration_seconds",
    documentation="Session store call duration in seconds",
    labelnames=["backend", "operation"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_session_load(backend: str, is_new: bool) -> None:
    """
    Record a session load.

    Args:
        backend: Store backend name (memory, cookie, redis, ...)
        is_new: Whether a fresh session was minted
    """
    SESSION_LOADS_TOTAL.labels(
        backend=backend,
        result="new" if is_new else "existing",
    ).inc()


def record_decrypt_failure() -> None:
    """Record a cookie that could not be decrypted."""
    COOKIE_DECRYPT_FAILURES_TOTAL.inc()


def record_session_outcome(backend: str, outcome: str) -> None:
    """
    Record how a request's session ended.

    Args:
        backend: Store backend name
        outcome: "persisted", "rotated" or "destroyed"
    """
    SESSION_OUTCOMES_TOTAL.labels(backend=backend, outcome=outcome).inc()


@asynccontextmanager
async def time_store_operation(backend: str, operation: str) -> AsyncIterator[None]:
    """
    Time a store call, including calls that raise.

    Example:
        >>> async with time_store_operation("redis", "load"):
        ...     result = await store.load(pointer)
    """
    start_time = time.perf_counter()
    try:
        yield
    finally:
        STORE_OPERATION_DURATION_SECONDS.labels(
            backend=backend,
            operation=operation,
        ).observe(time.perf_counter() - start_time)


# =============================================================================
# Metrics Endpoint
# =============================================================================


def get_metrics_app():
    """
    Get the ASGI app serving the Prometheus exposition format.

    Returns:
        ASGI app for mounting at /metrics
    """
    return make_asgi_app()


def generate_metrics() -> bytes:
    """
    Generate metrics in Prometheus format.

    Returns:
        Metrics data as bytes
    """
    return generate_latest(REGISTRY)
