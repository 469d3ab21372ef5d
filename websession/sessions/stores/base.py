"""
SessionStore capability contract.

Every backend satisfies the same four async operations with identical
semantics, so the SessionManager never needs to know which one it holds:

- ``load(pointer)``: never raises for an absent, unknown, expired or
  corrupted pointer; those all come back as a fresh session.
- ``save(session_id, data, expires_at)``: full replace, returns the pointer
  to carry forward in the cookie.
- ``destroy(session_id)``: idempotent.
- ``cleanup()``: best-effort sweep of elapsed records.

Backends are selected by dependency injection; they share helpers from this
module rather than a base class.
"""

import math
import uuid
from datetime import datetime
from typing import Any, Optional, Protocol, Union, runtime_checkable

from websession.sessions.models import LoadResult, StoredRecord, as_utc, utcnow


@runtime_checkable
class SessionStore(Protocol):
    """Structural interface implemented by every session backend."""

    backend_name: str

    async def load(self, pointer: Optional[str]) -> LoadResult:
        ...

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        ...

    async def destroy(self, session_id: str) -> None:
        ...

    async def cleanup(self) -> None:
        ...


# =============================================================================
# Shared Helpers
# =============================================================================


def new_session_id() -> str:
    """Generate a random, unguessable session id."""
    return str(uuid.uuid4())


def fresh_load_result() -> LoadResult:
    """A brand new, empty session."""
    return LoadResult(session_id=new_session_id(), data={}, is_new=True)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check whether a record has expired.

    A record whose expiry is at or before ``now`` counts as already
    destroyed. Records without an expiry never expire. Naive datetimes
    are read as UTC.
    """
    if expires_at is None:
        return False
    return as_utc(expires_at) <= as_utc(now or utcnow())


def ttl_seconds(expires_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Seconds until ``expires_at``, rounded up, for backends with a native TTL.

    The native TTL never evicts a record before its logical expiry; the
    expiry check on load decides.

    Returns:
        A positive number of seconds, or None when there is no expiry or
        it has already passed.
    """
    if expires_at is None:
        return None
    remaining = (as_utc(expires_at) - as_utc(now or utcnow())).total_seconds()
    ttl = math.ceil(remaining)
    return ttl if ttl > 0 else None


def encode_record(data: dict[str, Any], expires_at: Optional[datetime]) -> str:
    """Serialize data and expiry to the JSON stored under a session id."""
    return StoredRecord(data=data, expires_at=expires_at).model_dump_json()


def decode_record(raw: Union[str, bytes]) -> StoredRecord:
    """
    Parse a value written by encode_record().

    Raises:
        pydantic.ValidationError: If the value is not a valid record.
    """
    return StoredRecord.model_validate_json(raw)
