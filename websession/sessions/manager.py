"""
Session Manager - per-request session lifecycle.

A SessionManager is built fresh for every request and driven through a small
state machine:

    NEW --before()--> ACTIVE --after()--> PERSISTED | ROTATED | DESTROYED

before() decrypts the cookie, loads the record from the store and splits off
the flash mapping. Application code then works on the Session handle.
after() applies the deferred destroy/rotate intent, saves the data and
writes the re-encrypted pointer back to the cookie.

Bad cookies never fail a request: a missing, undecryptable, expired or
unknown pointer simply yields a fresh session. Store I/O errors and
configuration errors propagate to the caller.
"""

import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from starlette.requests import HTTPConnection
from starlette.responses import Response

from websession.core.config import SessionConfig
from websession.core.crypto import decrypt, encrypt, import_key
from websession.core.exceptions import CryptoError, SessionKeyError, SessionStateError
from websession.observability.metrics import (
    record_decrypt_failure,
    record_session_load,
    record_session_outcome,
    time_store_operation,
)
from websession.sessions.cookies import (
    clear_session_cookie,
    read_session_cookie,
    write_session_cookie,
)
from websession.sessions.flash import FLASH_KEY, Flash, embed_flash, split_flash
from websession.sessions.models import utcnow
from websession.sessions.stores.base import SessionStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a SessionManager."""

    NEW = "new"
    ACTIVE = "active"
    PERSISTED = "persisted"
    ROTATED = "rotated"
    DESTROYED = "destroyed"


def _short(session_id: str) -> str:
    return session_id[:8]


# =============================================================================
# Session Handle (mutation surface)
# =============================================================================


class Session:
    """
    The session as seen by request handlers.

    Reads and writes go straight to the in-memory copy of the data;
    nothing touches the store until the response is finalized.
    destroy() and rotate() only record intent.

    Example:
        >>> session.set("userId", "user123")
        >>> session.get("userId")
        'user123'
        >>> session.flash.set("notice", "Saved!")
    """

    def __init__(
        self,
        session_id: str,
        data: dict[str, Any],
        is_new: bool,
        flash: Flash,
    ) -> None:
        self._session_id = session_id
        self._data = data
        self._is_new = is_new
        self._flash = flash
        self._destroy_requested = False
        self._rotate_requested = False
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise SessionStateError(
                "Session has already been finalized for this request",
                state="closed",
                session_id=self._session_id,
            )

    # -------------------------------------------------------------------------
    # Read-only accessors
    # -------------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def is_new(self) -> bool:
        """True when no valid session existed before this request."""
        return self._is_new

    @property
    def flash(self) -> Flash:
        return self._flash

    @property
    def destroy_requested(self) -> bool:
        return self._destroy_requested

    @property
    def rotate_requested(self) -> bool:
        return self._rotate_requested

    # -------------------------------------------------------------------------
    # Data access
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Store a JSON-serializable value under key.

        Raises:
            SessionKeyError: If key is the reserved flash key.
            SessionStateError: If the response has already been finalized.
        """
        self._check_open()
        if key == FLASH_KEY:
            raise SessionKeyError(
                f"'{FLASH_KEY}' is reserved for flash messages",
                key=key,
                session_id=self._session_id,
            )
        self._data[key] = value

    def delete(self, key: str) -> None:
        """Remove key if present."""
        self._check_open()
        self._data.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._data

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def clear(self) -> None:
        """Remove every key, keeping the session id."""
        self._check_open()
        self._data.clear()

    def items(self) -> dict[str, Any]:
        """Copy of all session data."""
        return dict(self._data)

    # -------------------------------------------------------------------------
    # Deferred lifecycle intents
    # -------------------------------------------------------------------------

    def destroy(self) -> None:
        """Delete the session and clear the cookie when the response is sent."""
        self._check_open()
        self._destroy_requested = True

    def rotate(self) -> None:
        """Move the data to a new session id when the response is sent."""
        self._check_open()
        self._rotate_requested = True


# =============================================================================
# SessionManager
# =============================================================================


class SessionManager:
    """
    Per-request session orchestrator.

    Args:
        store: Shared session store backend.
        secret: Cookie encryption secret (at least 32 characters). The key is
            derived on first use, so a short secret fails then, not here.
        config: Cookie and expiry configuration (defaults when omitted).
        key_derivation: "raw" or "hkdf", see websession.core.crypto.

    Example:
        >>> manager = SessionManager(store, secret)
        >>> session = await manager.before(request)
        >>> session.set("userId", "user123")
        >>> await manager.after(response)
    """

    def __init__(
        self,
        store: SessionStore,
        secret: str,
        config: Optional[SessionConfig] = None,
        key_derivation: str = "raw",
    ) -> None:
        self._store = store
        self._secret = secret
        self._config = config or SessionConfig()
        self._key_derivation = key_derivation
        self._key: Optional[AESGCM] = None
        self._state = SessionState.NEW
        self._session: Optional[Session] = None
        self._backend = getattr(store, "backend_name", type(store).__name__)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def session(self) -> Session:
        """
        The mutation surface for this request.

        Raises:
            SessionStateError: If before() has not run yet.
        """
        if self._session is None:
            raise SessionStateError(
                "Session is not loaded; call before() first",
                state=self._state.value,
            )
        return self._session

    # -------------------------------------------------------------------------
    # Cookie encryption
    # -------------------------------------------------------------------------

    def _get_key(self) -> AESGCM:
        if self._key is None:
            self._key = import_key(self._secret, self._key_derivation)
        return self._key

    def _decrypt_pointer(self, encrypted: Optional[str]) -> Optional[str]:
        if not encrypted:
            return None
        key = self._get_key()
        try:
            return decrypt(encrypted, key)
        except CryptoError as e:
            logger.debug(f"Ignoring undecryptable session cookie: {e.message}")
            record_decrypt_failure()
            return None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def before(self, request: HTTPConnection) -> Session:
        """
        Load the session for an incoming request.

        Args:
            request: The incoming request; only its cookies are read.

        Returns:
            Session: The handle application code reads and mutates.

        Raises:
            SessionStateError: If called more than once.
        """
        if self._state is not SessionState.NEW:
            raise SessionStateError(
                "before() may only be called once per request",
                state=self._state.value,
            )

        encrypted = read_session_cookie(request, self._config.cookie_name)
        pointer = self._decrypt_pointer(encrypted)

        async with time_store_operation(self._backend, "load"):
            result = await self._store.load(pointer)

        data, current_flash = split_flash(result.data)
        self._session = Session(
            session_id=result.session_id,
            data=data,
            is_new=result.is_new,
            flash=Flash(current_flash),
        )
        self._state = SessionState.ACTIVE
        record_session_load(self._backend, result.is_new)
        logger.debug(
            f"Loaded session {_short(result.session_id)} "
            f"(new={result.is_new}, backend={self._backend})"
        )
        return self._session

    async def after(self, response: Response) -> SessionState:
        """
        Persist, rotate or destroy the session and update the cookie.

        Destroy wins over rotate when both were requested.

        Args:
            response: The outgoing response; receives the Set-Cookie header.

        Returns:
            SessionState: The terminal state reached.

        Raises:
            SessionStateError: If before() has not run or after() already
                completed.
            ConfigurationError: If no key can be derived from the secret;
                raised before the store is touched.
        """
        if self._state is not SessionState.ACTIVE or self._session is None:
            raise SessionStateError(
                "after() requires an active session",
                state=self._state.value,
            )

        key = self._get_key()
        session = self._session
        session._closed = True
        session.flash._closed = True
        cookie_name = self._config.cookie_name
        cookie_options = self._config.cookie_options

        if session.destroy_requested:
            async with time_store_operation(self._backend, "destroy"):
                await self._store.destroy(session.session_id)
            clear_session_cookie(response, cookie_name, cookie_options)
            logger.debug(f"Destroyed session {_short(session.session_id)}")
            return self._finish(SessionState.DESTROYED)

        outcome = SessionState.PERSISTED
        if session.rotate_requested:
            old_id = session.session_id
            async with time_store_operation(self._backend, "destroy"):
                await self._store.destroy(old_id)
            async with time_store_operation(self._backend, "load"):
                fresh = await self._store.load(None)
            session._session_id = fresh.session_id
            outcome = SessionState.ROTATED
            logger.debug(f"Rotated session {_short(old_id)} -> {_short(fresh.session_id)}")

        data = embed_flash(session._data, session.flash.pending)
        expires_at = utcnow() + timedelta(milliseconds=self._config.session_expires_ms)

        async with time_store_operation(self._backend, "save"):
            pointer = await self._store.save(session.session_id, data, expires_at)

        write_session_cookie(
            response,
            cookie_name,
            encrypt(pointer, key),
            cookie_options,
        )
        return self._finish(outcome)

    def _finish(self, state: SessionState) -> SessionState:
        self._state = state
        record_session_outcome(self._backend, state.value)
        return state
