"""
Billing Models

AccountSubscription mirrors the latest state Paddle reported for one
subscription; PaddleWebhookEvent is the append-only ledger that makes
webhook processing idempotent through its unique event_id.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.timestamps import utcnow
from app.models.account import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class AccountSubscription(Base):
    """Paddle subscription state for an account, upserted by subscription ID."""

    __tablename__ = "account_subscriptions"
    __table_args__ = (
        Index("ix_account_subscriptions_account_updated", "account_id", "updated_at"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    paddle_subscription_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Normalized status: trial, active, past_due, canceled, expired"
    )

    plan_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    current_period_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    raw_payload: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Paddle event data kept for audit and debugging"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class PaddleWebhookEvent(Base):
    """Received Paddle event; a duplicate event_id means already processed."""

    __tablename__ = "paddle_webhook_events"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    event_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    event_type: Mapped[str] = mapped_column(String(100), nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
