"""
Subscription Status and Entitlement

Maps Paddle subscription statuses onto the app's closed status taxonomy
and resolves an account's entitlement: a billing record always wins, and
only accounts without one fall back to the time-based trial.
"""

import enum
from datetime import datetime
from typing import Any, Dict, Optional

from app.core.timestamps import as_utc
from app.models import AccountSubscription


class SubscriptionStatus(str, enum.Enum):
    """Entitlement states reported to the desktop client."""
    trial = "trial"
    active = "active"
    past_due = "past_due"
    canceled = "canceled"
    expired = "expired"


_PADDLE_STATUS_MAP = {
    "active": SubscriptionStatus.active,
    "trialing": SubscriptionStatus.trial,
    "past_due": SubscriptionStatus.past_due,
    "paused": SubscriptionStatus.past_due,
    "canceled": SubscriptionStatus.canceled,
}


def normalize_paddle_status(raw_status: Optional[str]) -> SubscriptionStatus:
    """Map a Paddle status onto SubscriptionStatus; unknown or missing means expired."""
    status = (raw_status or "").lower()
    return _PADDLE_STATUS_MAP.get(status, SubscriptionStatus.expired)


def stored_status(value: str) -> SubscriptionStatus:
    """
    Read back a status column.

    Rows are written already normalized, and "trial" is not a Paddle status,
    so values in the app taxonomy are taken as-is before falling back to the
    Paddle mapping.
    """
    try:
        return SubscriptionStatus(value.lower())
    except ValueError:
        return normalize_paddle_status(value)


def trial_days_remaining(account_created_at: datetime, trial_days: int, now: datetime) -> int:
    """Whole trial days left, counting full days elapsed since account creation."""
    elapsed_days = max(0, (now - as_utc(account_created_at)).days)
    return max(0, trial_days - elapsed_days)


def resolve_entitlement(
    account_created_at: datetime,
    subscription: Optional[AccountSubscription],
    trial_days: int,
    now: datetime,
) -> Dict[str, Any]:
    """Build the subscription-status response body for an account."""
    if subscription is not None and subscription.status:
        return {
            "status": stored_status(subscription.status).value,
            "planName": subscription.plan_name,
            "trialDaysRemaining": None,
        }

    remaining = trial_days_remaining(account_created_at, trial_days, now)
    status = SubscriptionStatus.trial if remaining > 0 else SubscriptionStatus.expired
    return {
        "status": status.value,
        "planName": None,
        "trialDaysRemaining": remaining,
    }
