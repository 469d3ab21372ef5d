"""
API Middleware Package

- session: per-request session lifecycle (SessionMiddleware)
"""

from websession.api.middleware.session import SessionMiddleware

__all__ = ["SessionMiddleware"]
