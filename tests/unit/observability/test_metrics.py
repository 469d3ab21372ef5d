"""
Unit tests for websession/observability/metrics.py.

Metrics live in the global Prometheus registry, so every assertion compares
a sample before and after the action.
"""

import pytest
from prometheus_client import REGISTRY

from websession.observability.metrics import (
    generate_metrics,
    record_decrypt_failure,
    record_session_load,
    record_session_outcome,
    time_store_operation,
)


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels or None) or 0.0


class TestCounters:
    def test_record_session_load(self):
        before = sample("websession_loads_total", backend="unit", result="new")

        record_session_load("unit", is_new=True)

        assert sample("websession_loads_total", backend="unit", result="new") == before + 1

    def test_record_existing_session_load(self):
        before = sample("websession_loads_total", backend="unit", result="existing")

        record_session_load("unit", is_new=False)

        assert sample("websession_loads_total", backend="unit", result="existing") == before + 1

    def test_record_decrypt_failure(self):
        before = sample("websession_cookie_decrypt_failures_total")

        record_decrypt_failure()

        assert sample("websession_cookie_decrypt_failures_total") == before + 1

    def test_record_session_outcome(self):
        before = sample("websession_outcomes_total", backend="unit", outcome="rotated")

        record_session_outcome("unit", "rotated")

        assert sample("websession_outcomes_total", backend="unit", outcome="rotated") == before + 1


class TestStoreTiming:
    @pytest.mark.asyncio
    async def test_observes_duration(self):
        name = "websession_store_operation_duration_seconds_count"
        before = sample(name, backend="unit", operation="load")

        async with time_store_operation("unit", "load"):
            pass

        assert sample(name, backend="unit", operation="load") == before + 1

    @pytest.mark.asyncio
    async def test_observes_duration_when_call_raises(self):
        name = "websession_store_operation_duration_seconds_count"
        before = sample(name, backend="unit", operation="save")

        with pytest.raises(ValueError):
            async with time_store_operation("unit", "save"):
                raise ValueError("store down")

        assert sample(name, backend="unit", operation="save") == before + 1


class TestExposition:
    def test_generate_metrics_contains_session_metrics(self):
        output = generate_metrics().decode("utf-8")

        assert "websession_loads_total" in output
        assert "websession_store_operation_duration_seconds" in output
