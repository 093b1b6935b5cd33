"""
Authentication Dependencies for Bearer Sessions

FastAPI dependencies shared by the login and status endpoints:

- magic_code_pepper: the configured pepper, or a 500 if it is missing
- current_account: the account behind the request's bearer session
"""

from fastapi import Depends, Request

from app.auth.magic_code import AccountMissingError
from app.auth.session import (
    InvalidSessionError,
    SessionRequiredError,
    SessionService,
    parse_bearer_token,
)
from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError
from app.core.timestamps import utcnow
from app.db.store import LicenseStore, get_store
from app.models import Account


def require_pepper(settings: Settings) -> str:
    """Return the magic code pepper; a missing pepper fails the request with 500."""
    if settings.magic_code_pepper is None or not settings.magic_code_pepper.get_secret_value():
        raise ConfigurationError("Missing MAGIC_CODE_PEPPER")
    return settings.magic_code_pepper.get_secret_value()


async def current_account(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: LicenseStore = Depends(get_store),
) -> Account:
    """
    Resolve the bearer session on the request to its account.

    Raises 401 if the header is missing or the session is unknown or
    expired, and 500 if the session points at a missing account.
    """
    token = parse_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise SessionRequiredError()

    pepper = require_pepper(settings)

    session = await SessionService.get_session_by_token(store, token, pepper, utcnow())
    if session is None:
        raise InvalidSessionError()

    account = await store.get_account(session.account_id)
    if account is None:
        raise AccountMissingError()

    return account
