"""
Security Primitives

Hashing, signature and random-credential helpers shared by the login-code,
session and webhook flows. None of these touch the network or the
database, and none of them read configuration: callers pass in the pepper
or secret they were configured with.
"""

import hashlib
import hmac
import secrets
import string
from typing import Union


def sha256_hex(value: str) -> str:
    """Return the hex SHA-256 digest of a UTF-8 string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def hmac_sha256_hex(secret: str, payload: Union[str, bytes]) -> str:
    """Return the hex HMAC-SHA256 of payload keyed with secret."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def secure_compare(left: str, right: str) -> bool:
    """
    Compare two secrets in constant time.

    Returns False on length mismatch. Equal-length inputs are compared over
    their full length regardless of where the first difference is.
    """
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def random_digits(length: int) -> str:
    """Generate a cryptographically secure string of decimal digits."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def random_token(nbytes: int = 32) -> str:
    """Generate an opaque hex bearer token (64 chars for the default 32 bytes)."""
    return secrets.token_hex(nbytes)


def peppered_hash(value: str, pepper: str) -> str:
    # Stored form of codes and session tokens
    return sha256_hex(f"{value}:{pepper}")
