"""Tests for Paddle status normalization and entitlement resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from app.billing.status import (
    SubscriptionStatus,
    normalize_paddle_status,
    resolve_entitlement,
    stored_status,
    trial_days_remaining,
)
from app.models import AccountSubscription

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestNormalizePaddleStatus:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("active", SubscriptionStatus.active),
            ("trialing", SubscriptionStatus.trial),
            ("past_due", SubscriptionStatus.past_due),
            ("paused", SubscriptionStatus.past_due),
            ("canceled", SubscriptionStatus.canceled),
            ("ACTIVE", SubscriptionStatus.active),
            ("Trialing", SubscriptionStatus.trial),
        ],
    )
    def test_known_statuses(self, raw, expected):
        assert normalize_paddle_status(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "cancelled", "incomplete", "trial", "whatever"])
    def test_unknown_statuses_default_to_expired(self, raw):
        assert normalize_paddle_status(raw) == SubscriptionStatus.expired


class TestStoredStatus:

    def test_app_taxonomy_values_round_trip(self):
        for status in SubscriptionStatus:
            assert stored_status(status.value) == status

    def test_paddle_values_are_normalized(self):
        assert stored_status("trialing") == SubscriptionStatus.trial
        assert stored_status("paused") == SubscriptionStatus.past_due


class TestTrialDaysRemaining:

    def test_three_days_in(self):
        assert trial_days_remaining(NOW - timedelta(days=3), 14, NOW) == 11

    def test_partial_days_round_down(self):
        assert trial_days_remaining(NOW - timedelta(days=3, hours=23), 14, NOW) == 11

    def test_trial_over(self):
        assert trial_days_remaining(NOW - timedelta(days=20), 14, NOW) == 0

    def test_last_day_boundary(self):
        assert trial_days_remaining(NOW - timedelta(days=13, hours=23), 14, NOW) == 1
        assert trial_days_remaining(NOW - timedelta(days=14), 14, NOW) == 0

    def test_naive_created_at_is_treated_as_utc(self):
        created = (NOW - timedelta(days=3)).replace(tzinfo=None)
        assert trial_days_remaining(created, 14, NOW) == 11

    def test_future_created_at_does_not_extend_trial(self):
        assert trial_days_remaining(NOW + timedelta(hours=2), 14, NOW) == 14


class TestResolveEntitlement:

    def test_trial_without_subscription(self):
        body = resolve_entitlement(NOW - timedelta(days=3), None, 14, NOW)
        assert body == {"status": "trial", "planName": None, "trialDaysRemaining": 11}

    def test_expired_trial_without_subscription(self):
        body = resolve_entitlement(NOW - timedelta(days=20), None, 14, NOW)
        assert body == {"status": "expired", "planName": None, "trialDaysRemaining": 0}

    def test_subscription_overrides_trial(self):
        subscription = AccountSubscription(status="canceled", plan_name="Pro Monthly")
        body = resolve_entitlement(NOW - timedelta(days=5), subscription, 14, NOW)
        assert body == {"status": "canceled", "planName": "Pro Monthly", "trialDaysRemaining": None}

    def test_trialing_subscription_reports_trial(self):
        subscription = AccountSubscription(status="trial", plan_name=None)
        body = resolve_entitlement(NOW - timedelta(days=30), subscription, 14, NOW)
        assert body["status"] == "trial"
        assert body["trialDaysRemaining"] is None
