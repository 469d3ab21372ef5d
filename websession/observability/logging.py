"""
Structured Logging Module

This module routes the standard library loggers used across websession
(``logging.getLogger(__name__)``) through structlog, producing JSON lines
with a timestamp, level, logger name and the current request id.

Pattern: Singleton configuration (configure once at startup)
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor


# =============================================================================
# Configuration State Flag
# =============================================================================

_configured: bool = False


# =============================================================================
# Request ID Context
# =============================================================================

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def get_request_id() -> Optional[str]:
    """
    Get the request ID bound to the current context.

    Returns:
        Request ID if set, None otherwise
    """
    return _request_id_var.get()


@contextmanager
def request_id_context(request_id: str) -> Generator[None, None, None]:
    """
    Context manager for binding a request ID to every log line.

    Args:
        request_id: Unique identifier for request tracing

    Example:
        >>> with request_id_context("req-12345"):
        ...     logger.info("loading session")
    """
    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)


# =============================================================================
# Custom Processors
# =============================================================================


def add_request_id(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the request ID to the log event if one is bound."""
    request_id = get_request_id()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_level(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename log_level to level for cleaner output."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        add_request_id,
        rename_level,
    ]


# =============================================================================
# Singleton Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
    json_logs: bool = True,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    This should be called once at application startup. Subsequent calls
    are no-ops unless force=True.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: sys.stdout)
        force: Force reconfiguration (for testing only)
        json_logs: Render JSON lines; False renders human-readable console output
    """
    global _configured

    if _configured and not force:
        return

    shared = _shared_processors()
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_level_to_int(level))

    _configured = True


def reset_logging() -> None:
    """
    Reset logging configuration state.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


# =============================================================================
# Logger Factory
# =============================================================================


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger bound to ``name``.

    Args:
        name: Logger name (typically module name)

    Returns:
        Configured structlog BoundLogger

    Example:
        >>> logger = get_logger("websession.app")
        >>> logger.info("session rotated", reason="login")
    """
    return structlog.stdlib.get_logger(name)


def _level_to_int(level: str) -> int:
    """Convert level string to logging int."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
