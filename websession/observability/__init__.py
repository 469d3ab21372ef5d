"""
Observability Package

- Structured JSON logging (structlog over stdlib logging)
- Prometheus metrics for the session lifecycle
"""

from websession.observability.logging import (
    configure_logging,
    get_logger,
    get_request_id,
    request_id_context,
)
from websession.observability.metrics import (
    generate_metrics,
    get_metrics_app,
    record_decrypt_failure,
    record_session_load,
    record_session_outcome,
    time_store_operation,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "get_request_id",
    "request_id_context",
    # Metrics
    "generate_metrics",
    "get_metrics_app",
    "record_decrypt_failure",
    "record_session_load",
    "record_session_outcome",
    "time_store_operation",
]
