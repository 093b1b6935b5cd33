"""
Magic Code Model

A magic code is a short numeric credential emailed to the user. Only its
peppered SHA-256 hash is stored. A code is redeemable while it is unexpired
and unconsumed, and only the most recently created such code for an email
is ever checked.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.timestamps import utcnow
from app.models.account import Base


class MagicCode(Base):
    """One-time login code, stored hashed."""

    __tablename__ = "magic_codes"
    __table_args__ = (
        Index("ix_magic_codes_email_created_at", "email", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Normalized email the code was issued to"
    )

    code_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="sha256(code:pepper) hex digest"
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Code is redeemable strictly before this instant"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the code was redeemed; set exactly once"
    )
