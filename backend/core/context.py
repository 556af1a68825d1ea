"""Per-request session context.

The upstream authentication gateway identifies the caller with the
``X-User-Id`` and ``X-User-Name`` headers. A ``SessionContext`` is built from
them for every request and handed explicitly to the collaborators that need
ownership information.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    username: Optional[str] = None

    @classmethod
    def from_headers(cls, user_id: Optional[str], username: Optional[str] = None) -> Optional["SessionContext"]:
        """Build a context from raw header values; None when the user id is missing or malformed"""
        if user_id is None or not user_id.strip():
            return None
        try:
            parsed = int(user_id.strip())
        except ValueError:
            logger.warning(f"Rejecting non-integer {USER_ID_HEADER} header: {user_id!r}")
            return None
        return cls(user_id=parsed, username=(username or "").strip() or None)
