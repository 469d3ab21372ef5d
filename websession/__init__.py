"""websession - encrypted cookie sessions for ASGI applications.

Note: Import `create_app` directly from `websession.main` to avoid circular imports.
"""

from websession.sessions import (
    Session,
    SessionManager,
    SessionState,
)

__all__ = ["Session", "SessionManager", "SessionState"]
