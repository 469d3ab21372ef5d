"""
Custom exceptions for websession.

This module provides a hierarchy of custom exceptions for the session layer.
All exceptions inherit from WebSessionException and include error codes for
consistent error handling and logging.

Only two classes of failure ever reach application code: configuration
errors (raised lazily, the first time a key is derived) and state misuse of
the per-request manager. Bad, tampered or expired cookies are never errors;
they become fresh sessions.
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for websession exceptions.

    These codes provide a consistent way to identify error types
    in logs and API responses.
    """

    SESSION_ERROR = "SESSION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CRYPTO_ERROR = "CRYPTO_ERROR"
    SESSION_STATE_ERROR = "SESSION_STATE_ERROR"
    SESSION_KEY_ERROR = "SESSION_KEY_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class WebSessionException(Exception):
    """
    Base exception for all websession errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.SESSION_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# ConfigurationError
# =============================================================================


class ConfigurationError(WebSessionException):
    """
    Exception for invalid session configuration.

    Raised when the secret is too short to derive a key from, when an
    unknown key derivation mode is requested, or when a store backend
    cannot be built from settings.

    Attributes:
        setting: Name of the offending setting (if known).
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        error_code: str = ErrorCode.CONFIGURATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.setting = setting


# =============================================================================
# CryptoError
# =============================================================================


class CryptoError(WebSessionException):
    """
    Exception for cookie decryption failures.

    Raised on wrong key, corrupted or truncated base64 and tampered
    ciphertext. The session manager catches it and starts a fresh session.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.CRYPTO_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)


# =============================================================================
# SessionError
# =============================================================================


class SessionError(WebSessionException):
    """
    Exception for session management issues.

    Attributes:
        session_id: ID of the affected session (if known).
    """

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        error_code: str = ErrorCode.SESSION_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the session error.

        Args:
            message: Human-readable error message.
            session_id: ID of the affected session (optional).
            error_code: Machine-readable error code.
            **kwargs: Additional attributes.
        """
        super().__init__(message, error_code, **kwargs)
        self.session_id = session_id


class SessionStateError(SessionError):
    """
    Raised when the per-request manager is driven out of order.

    Examples: calling before() twice, after() without before(), or
    touching the session handle once the response has been finalized.

    Attributes:
        state: The manager state at the time of the call.
    """

    def __init__(
        self,
        message: str,
        state: str | None = None,
        session_id: str | None = None,
        error_code: str = ErrorCode.SESSION_STATE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id, error_code, **kwargs)
        self.state = state


class SessionKeyError(SessionError):
    """
    Raised when application code writes a reserved session key.

    Attributes:
        key: The rejected key.
    """

    def __init__(
        self,
        message: str,
        key: str,
        session_id: str | None = None,
        error_code: str = ErrorCode.SESSION_KEY_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, session_id, error_code, **kwargs)
        self.key = key
