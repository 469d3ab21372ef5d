"""
Unit tests for websession/observability/logging.py.
"""

import io
import json
import logging

import pytest

from websession.observability.logging import (
    configure_logging,
    get_logger,
    get_request_id,
    request_id_context,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """Configure JSON logging into an in-memory stream, restoring root afterwards."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    stream = io.StringIO()
    configure_logging(level="DEBUG", stream=stream, force=True)
    yield stream
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    reset_logging()


def read_lines(stream: io.StringIO) -> list[dict]:
    lines = [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]
    return [line for line in lines if line.get("logger", "").startswith("websession")]


class TestRequestIdContext:
    def test_unset_by_default(self):
        assert get_request_id() is None

    def test_bound_inside_context(self):
        with request_id_context("req-123"):
            assert get_request_id() == "req-123"

        assert get_request_id() is None

    def test_nested_contexts_restore(self):
        with request_id_context("outer"):
            with request_id_context("inner"):
                assert get_request_id() == "inner"
            assert get_request_id() == "outer"


class TestConfigureLogging:
    def test_stdlib_logger_emits_json(self, log_stream):
        logging.getLogger("websession.test").info("session loaded")

        (line,) = read_lines(log_stream)
        assert line["event"] == "session loaded"
        assert line["level"] == "info"
        assert line["logger"] == "websession.test"
        assert "timestamp" in line

    def test_request_id_included(self, log_stream):
        with request_id_context("req-abc"):
            logging.getLogger("websession.test").warning("decrypt failed")

        (line,) = read_lines(log_stream)
        assert line["request_id"] == "req-abc"

    def test_structlog_logger_emits_json(self, log_stream):
        get_logger("websession.app").info("session rotated", reason="login")

        (line,) = read_lines(log_stream)
        assert line["event"] == "session rotated"
        assert line["reason"] == "login"

    def test_level_filters_records(self, log_stream):
        configure_logging(level="WARNING", stream=log_stream, force=True)

        logging.getLogger("websession.test").info("hidden")
        logging.getLogger("websession.test").error("shown")

        assert [line["event"] for line in read_lines(log_stream)] == ["shown"]

    def test_second_call_is_noop_without_force(self, log_stream):
        handlers = logging.getLogger().handlers[:]

        configure_logging(level="DEBUG")

        assert logging.getLogger().handlers == handlers
