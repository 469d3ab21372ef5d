"""
One-shot flash messages.

Flash values ride inside the ordinary session data under a reserved key.
Values loaded at the start of a request are readable for that request only
and are never written back; values set during the request are saved for the
next one. An unread flash therefore still disappears after one request.
"""

from typing import Any, Optional

from websession.core.exceptions import SessionStateError

FLASH_KEY = "__websession_flash__"


class Flash:
    """
    Flash view for one request.

    ``get``/``has`` read what the previous request left behind;
    ``set`` queues a value for the next request.
    """

    def __init__(self, current: Optional[dict[str, Any]] = None) -> None:
        self._current: dict[str, Any] = dict(current or {})
        self._next: dict[str, Any] = {}
        self._closed = False

    def get(self, key: str, default: Any = None) -> Any:
        return self._current.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._current

    def __contains__(self, key: object) -> bool:
        return key in self._current

    def set(self, key: str, value: Any) -> None:
        """
        Queue a value for the next request.

        Raises:
            SessionStateError: If the response has already been finalized.
        """
        if self._closed:
            raise SessionStateError(
                "Flash messages can no longer be queued for this request",
                state="closed",
            )
        self._next[key] = value

    @property
    def now(self) -> dict[str, Any]:
        """Copy of every flash value visible in this request."""
        return dict(self._current)

    @property
    def pending(self) -> dict[str, Any]:
        """Copy of the values queued for the next request."""
        return dict(self._next)


def split_flash(data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Separate loaded session data from its flash mapping.

    Returns:
        (data without the reserved key, flash mapping). A reserved key that
        does not hold a mapping is dropped.
    """
    remaining = dict(data)
    flash = remaining.pop(FLASH_KEY, None)
    if not isinstance(flash, dict):
        flash = {}
    return remaining, flash


def embed_flash(data: dict[str, Any], pending: dict[str, Any]) -> dict[str, Any]:
    """Return data to persist, with pending flash values under the reserved key."""
    if not pending:
        return dict(data)
    return {**data, FLASH_KEY: dict(pending)}
