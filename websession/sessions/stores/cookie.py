"""
Self-contained cookie session store.

Keeps no server-side state: save() serializes the whole session into a JSON
envelope that becomes the pointer, and the SessionManager encrypts it into
the cookie. Browsers cap cookies at roughly 4KB, so keep the data small.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from websession.sessions.models import LoadResult, SessionEnvelope
from websession.sessions.stores.base import fresh_load_result, is_expired

logger = logging.getLogger(__name__)


class CookieSessionStore:
    """
    Session store whose only storage is the cookie itself.

    A malformed envelope is treated exactly like a missing one.
    """

    backend_name = "cookie"

    async def load(self, pointer: Optional[str]) -> LoadResult:
        """Parse the decrypted envelope, or mint a fresh session."""
        if not pointer:
            return fresh_load_result()

        try:
            envelope = SessionEnvelope.model_validate_json(pointer)
        except ValidationError:
            logger.debug("Discarding unparsable session envelope")
            return fresh_load_result()

        if is_expired(envelope.expires_at):
            return fresh_load_result()

        return LoadResult(
            session_id=envelope.session_id,
            data=envelope.data,
            is_new=False,
        )

    async def save(
        self,
        session_id: str,
        data: dict[str, Any],
        expires_at: Optional[datetime] = None,
    ) -> str:
        """Return the JSON envelope to carry in the cookie."""
        envelope = SessionEnvelope(
            session_id=session_id,
            data=data,
            expires_at=expires_at,
        )
        return envelope.model_dump_json()

    async def destroy(self, session_id: str) -> None:
        # Nothing server-side; the manager clears the cookie.
        return None

    async def cleanup(self) -> None:
        return None
