"""
Core configuration module for websession.

This module provides two layers of configuration:

- ``SessionConfig``: the immutable, per-manager cookie and expiry settings,
  built once by merging caller overrides over the defaults.
- ``Settings``: process-wide settings loaded from environment variables with
  the ``WEBSESSION_`` prefix using Pydantic Settings. Used by the app factory
  to pick a store backend and the secret.
"""

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


SameSite = Literal["Strict", "Lax", "None"]

DEFAULT_COOKIE_NAME = "fresh_session"
DEFAULT_SESSION_EXPIRES_MS = 1000 * 60 * 60 * 24  # 1 day
DEFAULT_COOKIE_MAX_AGE = 60 * 60 * 24  # 1 day


# =============================================================================
# Session Configuration
# =============================================================================


class CookieOptions(BaseModel):
    """
    Attributes written on the session cookie.

    An empty ``domain`` means the attribute is omitted, so the browser
    scopes the cookie to the exact host.
    """

    path: str = "/"
    http_only: bool = True
    secure: bool = True
    same_site: SameSite = "Lax"
    max_age: Optional[int] = DEFAULT_COOKIE_MAX_AGE
    domain: str = ""

    model_config = {"frozen": True}


class SessionConfig(BaseModel):
    """
    Immutable per-manager session configuration.

    Attributes:
        cookie_name: Name of the cookie carrying the encrypted pointer.
        cookie_options: Attributes for the cookie.
        session_expires_ms: Lifetime of a saved record, in milliseconds.
    """

    cookie_name: str = Field(default=DEFAULT_COOKIE_NAME, min_length=1)
    cookie_options: CookieOptions = Field(default_factory=CookieOptions)
    session_expires_ms: int = Field(default=DEFAULT_SESSION_EXPIRES_MS, gt=0)

    model_config = {"frozen": True}


def merge_session_config(
    overrides: Optional[dict[str, Any]] = None,
) -> SessionConfig:
    """
    Build a SessionConfig from caller overrides merged over the defaults.

    ``cookie_options`` is merged key by key, so overriding ``secure`` keeps
    the default ``path``, ``same_site`` and so on. Keys with a ``None``
    value fall back to the default.

    Args:
        overrides: Partial configuration, e.g.
            ``{"cookie_name": "sid", "cookie_options": {"secure": False}}``.

    Returns:
        SessionConfig: The merged, frozen configuration.

    Example:
        >>> config = merge_session_config({"session_expires_ms": 60_000})
        >>> config.cookie_name
        'fresh_session'
    """
    if not overrides:
        return SessionConfig()

    values = {k: v for k, v in overrides.items() if v is not None}
    cookie_overrides = values.pop("cookie_options", None) or {}
    if isinstance(cookie_overrides, CookieOptions):
        cookie_overrides = cookie_overrides.model_dump()

    cookie_options = CookieOptions(
        **{
            **CookieOptions().model_dump(),
            **{k: v for k, v in cookie_overrides.items() if v is not None},
        }
    )
    return SessionConfig(cookie_options=cookie_options, **values)


# =============================================================================
# Application Settings
# =============================================================================


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the WEBSESSION_ prefix for environment variables.
    Example: WEBSESSION_BACKEND=redis
    """

    # =========================================================================
    # Service Configuration
    # =========================================================================
    service_name: str = Field(
        default="websession",
        description="Name of the service for logging and identification",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # =========================================================================
    # Cookie Encryption
    # SecretStr masks the value in logs/repr, use .get_secret_value() to access
    # =========================================================================
    secret: SecretStr = Field(
        default=SecretStr(""),
        description="Cookie encryption secret, at least 32 characters",
    )
    key_derivation: Literal["raw", "hkdf"] = Field(
        default="raw",
        description="How the AES key is derived from the secret",
    )

    # =========================================================================
    # Store Backend
    # =========================================================================
    backend: Literal["memory", "cookie", "redis", "sql"] = Field(
        default="memory",
        description="Session store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for the redis backend",
    )
    redis_key_prefix: str = Field(
        default="session:",
        description="Prefix for session keys in Redis",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./sessions.db",
        description="SQLAlchemy async database URL for the sql backend",
    )
    cleanup_interval_seconds: int = Field(
        default=600,
        ge=0,
        description="Expired-session sweep interval, 0 disables the sweep",
    )

    # =========================================================================
    # Session Cookie
    # =========================================================================
    cookie_name: str = Field(
        default=DEFAULT_COOKIE_NAME,
        description="Name of the session cookie",
    )
    cookie_secure: bool = Field(
        default=True,
        description="Send the session cookie over HTTPS only",
    )
    session_expires_ms: int = Field(
        default=DEFAULT_SESSION_EXPIRES_MS,
        gt=0,
        description="Session lifetime in milliseconds",
    )

    model_config = {
        "env_prefix": "WEBSESSION_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss:// or unix://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    def session_config(self) -> SessionConfig:
        """Build the SessionConfig described by these settings."""
        return merge_session_config(
            {
                "cookie_name": self.cookie_name,
                "cookie_options": {"secure": self.cookie_secure},
                "session_expires_ms": self.session_expires_ms,
            }
        )


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
