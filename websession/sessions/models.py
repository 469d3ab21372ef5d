"""
Session domain models.

Pydantic models for what crosses the SessionStore boundary: the result of a
load, the record an id-based store persists, and the self-contained
envelope the cookie store hands back as the pointer.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# LoadResult
# =============================================================================


class LoadResult(BaseModel):
    """
    Return value of SessionStore.load().

    Attributes:
        session_id: Existing id, or a freshly minted one when is_new.
        data: Session data (empty when is_new).
        is_new: True whenever no valid prior record was found.
    """

    session_id: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    is_new: bool


# =============================================================================
# Stored Record (id-based stores)
# =============================================================================


class StoredRecord(BaseModel):
    """
    Value persisted under a session id by key-value style stores.

    expires_at is kept next to the data even when the backend has its own
    TTL, because the backend clock cannot see the cookie's lifetime.
    """

    data: dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def normalize_expires_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# =============================================================================
# Session Envelope (self-contained cookie store)
# =============================================================================


class SessionEnvelope(StoredRecord):
    """The whole session, serialized into the cookie by CookieSessionStore."""

    session_id: str = Field(..., min_length=1)
