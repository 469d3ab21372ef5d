"""
websession - Application Factory

Builds a FastAPI application with session middleware, a Prometheus /metrics
endpoint, a /health route and a background sweep of expired sessions.
Application routers are added by the caller on the returned app.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable, Optional

from fastapi import FastAPI

from websession.api.middleware.session import SessionMiddleware
from websession.core.config import Settings, get_settings
from websession.core.exceptions import ConfigurationError
from websession.observability.logging import configure_logging
from websession.observability.metrics import get_metrics_app
from websession.sessions.factory import create_session_store
from websession.sessions.maintenance import cleanup_periodically
from websession.sessions.stores.base import SessionStore

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    exclude_paths: Iterable[str] = ("/health", "/metrics", "/metrics/"),
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use; defaults to the environment.
        store: Session store; built from settings when omitted.
        exclude_paths: Paths served without a session.

    Returns:
        FastAPI: The configured application.

    Raises:
        ConfigurationError: If no secret is configured.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level)

    secret = settings.secret.get_secret_value()
    if not secret:
        raise ConfigurationError(
            "WEBSESSION_SECRET must be set to a string of at least 32 characters",
            setting="secret",
        )

    session_store = store if store is not None else create_session_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start and stop the expired-session sweep."""
        logger.info(
            f"{settings.service_name} v{APP_VERSION} starting in "
            f"{settings.environment} mode (backend={settings.backend})"
        )
        app.state.session_store = session_store

        cleanup_task: Optional[asyncio.Task[Any]] = None
        if settings.cleanup_interval_seconds > 0:
            cleanup_task = asyncio.create_task(
                cleanup_periodically(session_store, settings.cleanup_interval_seconds)
            )

        yield

        if cleanup_task is not None:
            cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup_task
        logger.info(f"{settings.service_name} shutting down")

    app = FastAPI(
        title=settings.service_name,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        SessionMiddleware,
        store=session_store,
        secret=secret,
        config=settings.session_config(),
        key_derivation=settings.key_derivation,
        exclude_paths=exclude_paths,
    )
    app.mount("/metrics", get_metrics_app())

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy", "backend": settings.backend}

    return app
