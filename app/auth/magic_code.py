"""
Magic Code Authentication Service

This module provides passwordless login using short numeric codes sent by
email. It handles email normalization, code generation, hashed storage and
single-use redemption.

Security features:
- 6-digit codes from the secrets module
- Only sha256(code:pepper) is persisted
- Configurable expiry (10 minutes by default), compared strictly
- Single-use: redemption sets consumed_at exactly once
- Only the most recent outstanding code for an email is checked
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from app.core.errors import ProcessingError, Unauthorized
from app.core.security import peppered_hash, random_digits, secure_compare
from app.db.store import LicenseStore
from app.models import MagicCode

logger = logging.getLogger(__name__)

CODE_LENGTH = 6


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trim and lowercase an email; None if empty or missing '@'."""
    if not value:
        return None
    normalized = value.strip().lower()
    if "@" not in normalized:
        return None
    return normalized


class MagicCodeService:
    """Service class for magic code operations."""

    @staticmethod
    def generate_code() -> str:
        return random_digits(CODE_LENGTH)

    @staticmethod
    async def issue_code(
        store: LicenseStore,
        email: str,
        pepper: str,
        lifetime_minutes: int,
        now: datetime,
    ) -> str:
        """
        Ensure an account exists for email and store a fresh hashed code.

        Returns the plaintext code for delivery; it is not kept anywhere.
        Older outstanding codes are left to expire on their own.
        """
        await store.upsert_account_by_email(email)

        code = MagicCodeService.generate_code()
        magic_code = await store.insert_magic_code(
            email=email,
            code_hash=peppered_hash(code, pepper),
            expires_at=now + timedelta(minutes=lifetime_minutes),
            created_at=now,
        )

        logger.info(
            "Issued magic code %s for %s, expires %s",
            str(magic_code.id),
            email,
            magic_code.expires_at.isoformat(),
        )
        return code

    @staticmethod
    async def redeem_code(
        store: LicenseStore,
        email: str,
        code: str,
        pepper: str,
        now: datetime,
    ) -> MagicCode:
        """
        Check code against the latest outstanding code for email and consume it.

        A wrong code leaves the stored code untouched so the user can retry
        until it expires.
        """
        magic_code = await store.find_latest_active_code(email, now)
        if magic_code is None:
            raise CodeNotFoundError()

        if not secure_compare(peppered_hash(code, pepper), magic_code.code_hash):
            logger.info("Wrong magic code submitted for %s", email)
            raise InvalidCodeError()

        if not await store.consume_code(magic_code.id, now):
            # Another request redeemed it between lookup and update
            raise CodeNotFoundError()

        logger.info("Magic code %s redeemed for %s", str(magic_code.id), email)
        return magic_code


# Exception classes for better error handling
class CodeNotFoundError(Unauthorized):
    """Raised when no unexpired, unconsumed code exists for the email."""

    def __init__(self):
        super().__init__("Code not found or expired")


class InvalidCodeError(Unauthorized):
    """Raised when the submitted code does not match the outstanding one."""

    def __init__(self):
        super().__init__("Invalid code")


class AccountMissingError(ProcessingError):
    """Raised when a verified email or session has no account row."""

    def __init__(self):
        super().__init__("Account not found")
