"""
Session Management Models

Sessions are created after a successful magic code redemption. The bearer
token handed to the desktop client is never stored; the row keeps only
sha256(token:pepper). Expiry is absolute: there is no touch or renewal.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.timestamps import utcnow
from app.models.account import Base


class AppSession(Base):
    """Bearer session for the desktop license client."""

    __tablename__ = "app_sessions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscription_accounts.id", ondelete="CASCADE"),
        nullable=False,
        comment="Account this session belongs to"
    )

    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        comment="sha256(token:pepper) hex digest"
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the session expires"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="When the session was created"
    )
