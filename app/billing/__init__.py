"""
Billing and Entitlement Endpoints

- POST /subscription-status - Resolve a bearer session to its entitlement
- POST /paddle-webhook - Ingest signed Paddle Billing notifications

Webhook processing is idempotent per Paddle event_id: the event is written
to the ledger first, and a duplicate insert short-circuits to a
deduplicated response with no side effects. Failures after that insert
answer 500 so Paddle retries, and the retry is then deduplicated.
"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from app.auth.dependencies import current_account
from app.billing.paddle import PaddleWebhookService, parse_event, verify_paddle_signature
from app.billing.status import resolve_entitlement
from app.core.config import Settings, get_settings
from app.core.errors import ApiError, ConfigurationError, ProcessingError, ValidationFailed
from app.core.timestamps import utcnow
from app.db.store import LicenseStore, get_store
from app.models import Account

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/subscription-status")
async def subscription_status(
    account: Account = Depends(current_account),
    settings: Settings = Depends(get_settings),
    store: LicenseStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Report the caller's entitlement.

    A Paddle subscription record, whatever its status, takes precedence;
    without one the trial is computed from the account's creation time.
    """
    subscription = await store.latest_subscription(account.id)
    return resolve_entitlement(
        account_created_at=account.created_at,
        subscription=subscription,
        trial_days=settings.trial_days,
        now=utcnow(),
    )


@router.post("/paddle-webhook")
async def paddle_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: LicenseStore = Depends(get_store),
) -> Dict[str, Any]:
    """Verify, deduplicate and apply a Paddle Billing webhook event."""
    if settings.paddle_webhook_secret is None or not settings.paddle_webhook_secret.get_secret_value():
        raise ConfigurationError("Missing PADDLE_WEBHOOK_SECRET")

    signature_header = request.headers.get("Paddle-Signature")
    if not signature_header:
        raise ValidationFailed("Missing Paddle-Signature header")

    # The signature covers the exact bytes received
    raw_body = await request.body()
    try:
        verify_paddle_signature(
            signature_header,
            raw_body,
            settings.paddle_webhook_secret.get_secret_value(),
            settings.paddle_signature_tolerance_seconds,
        )
    except ValidationFailed as e:
        logger.warning("Rejected Paddle webhook: %s", e.detail)
        raise

    try:
        decoded = json.loads(raw_body)
    except ValueError:
        raise ValidationFailed("Invalid JSON payload")

    event = parse_event(decoded)

    first_seen = await store.record_webhook_event(event.event_id, event.event_type, event.payload)
    if not first_seen:
        return {"ok": True, "deduplicated": True}

    logger.info("Processing Paddle event %s (%s)", event.event_id, event.event_type)

    try:
        await PaddleWebhookService.process_event(store, event)
    except ApiError:
        raise
    except Exception as e:
        message = str(getattr(e, "orig", None) or e) or "Unknown webhook processing error"
        logger.error("Error processing Paddle event %s: %s", event.event_id, message)
        raise ProcessingError(message)

    return {"ok": True}
