"""
Paddle Billing Webhook Processing

Signature verification and event reconciliation for Paddle notifications.

Paddle signs each delivery with a header of the form
    Paddle-Signature: ts=1700000000;h1=<hex hmac>[;h1=<hex hmac>...]
where h1 = HMAC-SHA256(secret, "{ts}:{raw body}"). Several h1 values may
be present while a secret is being rotated; any match is accepted.

Reconciliation keeps subscription_accounts and account_subscriptions in
line with customer.* and subscription.* events. Every write is an upsert
on a unique key, so re-running a handler for the same event converges on
the same rows.
"""

import enum
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.billing.status import normalize_paddle_status
from app.core.errors import ValidationFailed
from app.core.security import hmac_sha256_hex, secure_compare
from app.db.store import LicenseStore

logger = logging.getLogger(__name__)


class SignatureError(ValidationFailed):
    """Raised when a Paddle-Signature header fails verification."""


@dataclass(frozen=True)
class PaddleSignature:
    timestamp: str
    signatures: List[str]


def parse_signature_header(header: str) -> PaddleSignature:
    """Split a Paddle-Signature header into its ts and h1 values."""
    timestamp = None
    signatures = []

    for field in header.split(";"):
        key, _, value = field.strip().partition("=")
        if key == "ts" and timestamp is None:
            timestamp = value
        elif key == "h1" and value:
            signatures.append(value)

    if not timestamp or not signatures:
        raise SignatureError("Invalid Paddle-Signature format")

    return PaddleSignature(timestamp=timestamp, signatures=signatures)


def verify_paddle_signature(
    header: str,
    raw_body: bytes,
    secret: str,
    tolerance_seconds: int,
    now: Optional[float] = None,
) -> None:
    """
    Verify a Paddle webhook signature over the raw request body.

    Raises SignatureError with the reason on failure. A matching hash is
    still rejected when its timestamp is outside the tolerance window.
    """
    parsed = parse_signature_header(header)

    try:
        timestamp = float(parsed.timestamp)
    except ValueError:
        raise SignatureError("Invalid signature timestamp")
    if not math.isfinite(timestamp):
        raise SignatureError("Invalid signature timestamp")

    now_seconds = int(now if now is not None else time.time())
    if abs(now_seconds - timestamp) > tolerance_seconds:
        raise SignatureError("Signature timestamp outside allowed window")

    signed_payload = f"{parsed.timestamp}:".encode("utf-8") + raw_body
    expected = hmac_sha256_hex(secret, signed_payload)

    if not any(secure_compare(signature, expected) for signature in parsed.signatures):
        raise SignatureError("Invalid signature hash")


def sign_payload(secret: str, raw_body: bytes, timestamp: int) -> str:
    """Build a Paddle-Signature header value for raw_body; used by tooling and tests."""
    signed_payload = f"{timestamp}:".encode("utf-8") + raw_body
    return f"ts={timestamp};h1={hmac_sha256_hex(secret, signed_payload)}"


class PaddleEventKind(str, enum.Enum):
    """Event families this service reconciles; Paddle's taxonomy is prefix-namespaced."""
    customer = "customer"
    subscription = "subscription"
    other = "other"

    @classmethod
    def from_event_type(cls, event_type: str) -> "PaddleEventKind":
        family = event_type.split(".", 1)[0]
        if family == cls.customer.value and "." in event_type:
            return cls.customer
        if family == cls.subscription.value and "." in event_type:
            return cls.subscription
        return cls.other


@dataclass(frozen=True)
class PaddleEvent:
    event_id: str
    event_type: str
    data: Dict[str, Any]
    payload: Dict[str, Any]

    @property
    def kind(self) -> PaddleEventKind:
        return PaddleEventKind.from_event_type(self.event_type)


def parse_event(payload: Any) -> PaddleEvent:
    """Validate the decoded JSON body of a webhook delivery."""
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload")

    event_id = as_string(payload.get("event_id"))
    event_type = as_string(payload.get("event_type"))
    if not event_id or not event_type:
        raise ValidationFailed("Missing event_id or event_type")

    data = payload.get("data")
    return PaddleEvent(
        event_id=event_id,
        event_type=event_type,
        data=data if isinstance(data, dict) else {},
        payload=payload,
    )


def as_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def extract_plan_name(data: Dict[str, Any]) -> Optional[str]:
    """Name of the first line item's price, if the event carries one."""
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return None

    first_item = items[0]
    if not isinstance(first_item, dict):
        return None

    price = first_item.get("price")
    if not isinstance(price, dict):
        return None

    return as_string(price.get("name"))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unparseable Paddle timestamp %r", value)
        return None


def placeholder_email(customer_id: str) -> str:
    return f"{customer_id.lower()}@pending.paddle.local"


class PaddleWebhookService:
    """Apply verified Paddle events to accounts and subscriptions."""

    @staticmethod
    async def process_event(store: LicenseStore, event: PaddleEvent) -> None:
        handler = _HANDLERS.get(event.kind)
        if handler is None:
            logger.info("No reconciliation for Paddle event type %s", event.event_type)
            return
        await handler(store, event.data)

    @staticmethod
    async def sync_customer(store: LicenseStore, data: Dict[str, Any]) -> None:
        """Link a Paddle customer to an account, creating or re-emailing it as needed."""
        customer_id = as_string(data.get("id"))
        email = as_string(data.get("email"))
        if not customer_id or not email:
            logger.info("Skipping customer event without id or email")
            return
        email = email.lower()

        existing = await store.get_account_by_customer_id(customer_id)
        if existing is not None:
            await store.update_account(existing.id, email=email, paddle_customer_id=customer_id)
            logger.info("Updated account %s for Paddle customer %s", existing.id, customer_id)
            return

        account_id = await store.upsert_account_by_email(email, paddle_customer_id=customer_id)
        logger.info("Linked account %s to Paddle customer %s", account_id, customer_id)

    @staticmethod
    async def sync_subscription(store: LicenseStore, data: Dict[str, Any]) -> None:
        """Upsert the subscription record for the event's customer."""
        subscription_id = as_string(data.get("id"))
        customer_id = as_string(data.get("customer_id"))
        if not subscription_id or not customer_id:
            logger.info("Skipping subscription event without id or customer_id")
            return

        account_id = await PaddleWebhookService.resolve_account_id(store, customer_id)
        status = normalize_paddle_status(as_string(data.get("status")))

        await store.upsert_subscription(
            account_id=account_id,
            paddle_subscription_id=subscription_id,
            status=status.value,
            plan_name=extract_plan_name(data),
            current_period_ends_at=parse_timestamp(as_string(data.get("current_billing_period_ends_at"))),
            raw_payload=data,
        )
        logger.info(
            "Synced Paddle subscription %s for account %s: %s",
            subscription_id,
            account_id,
            status.value,
        )

    @staticmethod
    async def resolve_account_id(store: LicenseStore, customer_id: str):
        """
        Account for a Paddle customer, creating a placeholder if none is linked.

        The placeholder email is replaced when the customer.* event for the
        same customer arrives.
        """
        existing = await store.get_account_by_customer_id(customer_id)
        if existing is not None:
            return existing.id

        account_id = await store.upsert_account_by_customer_id(
            customer_id, email=placeholder_email(customer_id)
        )
        logger.info("Created placeholder account %s for Paddle customer %s", account_id, customer_id)
        return account_id


_HANDLERS = {
    PaddleEventKind.customer: PaddleWebhookService.sync_customer,
    PaddleEventKind.subscription: PaddleWebhookService.sync_subscription,
}
