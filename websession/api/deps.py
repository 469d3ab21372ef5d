"""
API Dependencies

FastAPI dependency functions for route handlers. All dependencies can be
overridden in tests using FastAPI's dependency_overrides mechanism.
"""

from starlette.requests import Request

from websession.core.config import Settings, get_settings as _get_settings
from websession.core.exceptions import SessionError
from websession.sessions.manager import Session


def get_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Application settings instance
    """
    return _get_settings()


def get_session(request: Request) -> Session:
    """
    Get the Session attached by SessionMiddleware.

    Example:
        >>> @app.get("/")
        ... async def index(session: Session = Depends(get_session)):
        ...     session.set("userId", "user123")

    Raises:
        SessionError: If SessionMiddleware is not installed or the path is
            excluded from session handling.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise SessionError("No session on this request; is SessionMiddleware installed?")
    return session
