"""
Magic Code Authentication Endpoints

This module provides the API endpoints for passwordless login:
- POST /request-magic-code - Email a one-time login code
- POST /verify-magic-code - Exchange a code for a bearer session token

The session token returned by /verify-magic-code is the only time its
plaintext leaves the server.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from app.auth.dependencies import require_pepper
from app.auth.magic_code import AccountMissingError, MagicCodeService, normalize_email
from app.auth.session import SessionService
from app.core.config import Settings, get_settings
from app.core.email import send_magic_code_email
from app.core.errors import ConfigurationError, ValidationFailed
from app.core.timestamps import utcnow
from app.db.store import LicenseStore, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


class MagicCodeRequest(SQLModel):
    """Request schema for emailing a login code."""
    email: Optional[str] = None


class MagicCodeVerifyRequest(SQLModel):
    """Request schema for redeeming a login code."""
    email: Optional[str] = None
    code: Optional[str] = None


@router.post("/request-magic-code")
async def request_magic_code(
    payload: MagicCodeRequest,
    settings: Settings = Depends(get_settings),
    store: LicenseStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Email a one-time login code.

    Creates the account if this is the first request for the email. When
    email delivery is unavailable, development deployments get the code
    back in the response instead.
    """
    email = normalize_email(payload.email)
    if not email:
        raise ValidationFailed("Invalid email")

    pepper = require_pepper(settings)

    code = await MagicCodeService.issue_code(
        store,
        email=email,
        pepper=pepper,
        lifetime_minutes=settings.magic_code_lifetime_minutes,
        now=utcnow(),
    )

    sent = await send_magic_code_email(settings, email, code)
    if not sent:
        if settings.dev_magic_code_enabled:
            logger.warning("Returning login code in response for %s (dev mode)", email)
            return {"ok": True, "code": code}
        raise ConfigurationError("Email provider not configured")

    return {"ok": True}


@router.post("/verify-magic-code")
async def verify_magic_code(
    payload: MagicCodeVerifyRequest,
    settings: Settings = Depends(get_settings),
    store: LicenseStore = Depends(get_store),
) -> Dict[str, str]:
    """
    Redeem a login code and mint a session token.

    A wrong code answers 401 and leaves the code redeemable; a correct one
    is consumed and cannot be used again.
    """
    email = normalize_email(payload.email)
    code = payload.code.strip() if payload.code else None
    if not email or not code:
        raise ValidationFailed("Email and code are required")

    pepper = require_pepper(settings)
    now = utcnow()

    await MagicCodeService.redeem_code(store, email=email, code=code, pepper=pepper, now=now)

    account = await store.get_account_by_email(email)
    if account is None:
        raise AccountMissingError()

    token, _ = await SessionService.create_session(
        store,
        account_id=account.id,
        pepper=pepper,
        lifetime_days=settings.session_lifetime_days,
        now=now,
    )

    return {"sessionToken": token}
