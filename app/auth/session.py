"""
Session Management Service

Sessions are server-side rows created after a successful magic code
redemption. The desktop client holds an opaque bearer token; the database
holds only its peppered hash, so a leaked table cannot be replayed.

Features:
- 32-byte random bearer tokens (64 hex chars)
- Absolute expiry, no renewal
- Expired sessions are invisible to lookup rather than deleted
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from app.core.errors import Unauthorized
from app.core.security import peppered_hash, random_token
from app.db.store import LicenseStore
from app.models import AppSession

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def parse_bearer_token(header: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer <token>' header value."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class SessionService:
    """Service class for session management operations."""

    @staticmethod
    async def create_session(
        store: LicenseStore,
        account_id: UUID,
        pepper: str,
        lifetime_days: int,
        now: datetime,
    ) -> Tuple[str, AppSession]:
        """
        Create a session for account_id.

        Returns (plaintext token, session row). The plaintext token must be
        handed to the client now; it cannot be recovered later.
        """
        token = random_token(TOKEN_BYTES)
        token_hash = peppered_hash(token, pepper)

        session = await store.insert_session(
            account_id=account_id,
            token_hash=token_hash,
            expires_at=now + timedelta(days=lifetime_days),
        )

        logger.info(
            "Created session %s for account %s, token hash %s",
            str(session.id),
            str(account_id),
            token_hash[:8] + "...",
        )
        return token, session

    @staticmethod
    async def get_session_by_token(
        store: LicenseStore,
        token: str,
        pepper: str,
        now: datetime,
    ) -> Optional[AppSession]:
        """Return the unexpired session for token, or None."""
        return await store.find_active_session(peppered_hash(token, pepper), now)


# Exception classes for session errors
class SessionRequiredError(Unauthorized):
    """Raised when the Authorization header is missing or not a bearer token."""

    def __init__(self):
        super().__init__("Missing bearer token")


class InvalidSessionError(Unauthorized):
    """Raised when a session is unknown or expired."""

    def __init__(self):
        super().__init__("Invalid session")
