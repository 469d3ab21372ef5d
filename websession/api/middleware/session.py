"""
Session Middleware

Runs the session lifecycle around every HTTP request:

1. Build a fresh SessionManager (no state shared between requests)
2. before(): load the session and attach it as ``request.state.session``
3. Call the application
4. after(): persist/rotate/destroy and set the cookie on the response

If the application raises, the session is not persisted and no cookie is
written; the error is logged and re-raised. Responses the framework turns
into error pages (e.g. HTTPException) are ordinary responses and are
persisted as usual.
"""

import logging
import time
import uuid
from typing import Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from websession.core.config import SessionConfig
from websession.observability.logging import request_id_context
from websession.sessions.manager import SessionManager
from websession.sessions.stores.base import SessionStore

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware attaching a Session to each request.

    Args:
        app: ASGI application to wrap.
        store: Shared session store backend.
        secret: Cookie encryption secret (at least 32 characters).
        config: Session configuration; defaults when omitted.
        key_derivation: "raw" or "hkdf".
        exclude_paths: Exact paths that bypass session handling.

    Example:
        >>> app.add_middleware(
        ...     SessionMiddleware,
        ...     store=MemorySessionStore(),
        ...     secret="this-is-a-test-secret-key-32chars!",
        ... )
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret: str,
        config: Optional[SessionConfig] = None,
        key_derivation: str = "raw",
        exclude_paths: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(app)
        self.store = store
        self.secret = secret
        self.config = config or SessionConfig()
        self.key_derivation = key_derivation
        self.exclude_paths = frozenset(exclude_paths or ())

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """
        Wrap the request in the session lifecycle.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response from the handler, with the session cookie applied
        """
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        with request_id_context(request_id):
            manager = SessionManager(
                store=self.store,
                secret=self.secret,
                config=self.config,
                key_derivation=self.key_derivation,
            )
            request.state.session = await manager.before(request)

            start_time = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    f"Request failed, session not persisted: {request.method} "
                    f"{request.url.path} error={type(e).__name__}: {e} "
                    f"duration={duration_ms:.2f}ms"
                )
                raise

            state = await manager.after(response)
            logger.debug(f"Session {state.value}: {request.method} {request.url.path}")
            return response
