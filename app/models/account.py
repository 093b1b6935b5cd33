"""
Account Model

An account is the licensing identity of one email address. It is created
on the first login-code request or on the first Paddle event that names
its customer, and its created_at anchors the free-trial window.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.timestamps import utcnow


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all database models."""
    pass


class Account(Base):
    """Subscription account keyed by lowercased email."""

    __tablename__ = "subscription_accounts"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    email: Mapped[str] = mapped_column(
        String(320),
        unique=True,
        nullable=False,
        comment="Lowercased, trimmed email address"
    )

    paddle_customer_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        comment="Paddle customer ID once a billing event links it"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Account creation time; start of the trial window"
    )
