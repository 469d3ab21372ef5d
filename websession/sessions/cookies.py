"""
Session cookie transport.

Reads, writes and clears the single named cookie that carries the encrypted
session pointer. Header manipulation only; no session logic lives here.
"""

from typing import Optional

from starlette.requests import HTTPConnection
from starlette.responses import Response

from websession.core.config import CookieOptions


def read_session_cookie(request: HTTPConnection, name: str) -> Optional[str]:
    """
    Get the raw (still encrypted) session cookie value.

    Args:
        request: Incoming request or websocket connection.
        name: Cookie name.

    Returns:
        The cookie value, or None when absent or empty.
    """
    value = request.cookies.get(name)
    return value or None


def write_session_cookie(
    response: Response,
    name: str,
    value: str,
    options: CookieOptions,
) -> None:
    """
    Set the session cookie on a response with the configured attributes.

    An empty ``options.domain`` omits the Domain attribute.
    """
    response.set_cookie(
        key=name,
        value=value,
        max_age=options.max_age,
        path=options.path,
        domain=options.domain or None,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site.lower(),
    )


def clear_session_cookie(response: Response, name: str, options: CookieOptions) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=name,
        path=options.path,
        domain=options.domain or None,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site.lower(),
    )
