"""
Authentication System

Passwordless authentication for the ctrl+v desktop app. A user requests a
one-time code by email, redeems it for an opaque bearer session token, and
presents that token on entitlement checks.

Codes and session tokens are stored only as peppered SHA-256 hashes.
"""

from app.auth.dependencies import current_account
from app.auth.magic_code_router import router

__all__ = ["current_account", "router"]
