"""
Persistence Gateway

LicenseStore is the single place that reads and writes the five license
tables. It wraps one request-scoped AsyncSession and exposes table-level
operations (lookups, inserts, upserts) so the endpoint services never build
queries themselves.

Upserts are real INSERT ... ON CONFLICT statements on the table's unique
key, never select-then-insert, so concurrent requests converge on the same
row. The statement is built with the dialect of the bound engine:
PostgreSQL in production, SQLite in tests.

"Most recent" lookups order by their timestamp descending with the row id
as tie-break so equal timestamps still resolve deterministically.
"""

import logging
from datetime import datetime
from typing import Any, AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.timestamps import utcnow
from app.db import get_session
from app.models import (
    Account,
    AccountSubscription,
    AppSession,
    MagicCode,
    PaddleWebhookEvent,
)

logger = logging.getLogger(__name__)


class LicenseStore:
    """Table-level access to accounts, codes, sessions, subscriptions and webhook events."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self, model):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise RuntimeError(f"Upsert is not supported for dialect {dialect!r}")

    # ─── Accounts ──────────────────────────────────────────────────────────

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        return await self.session.get(Account, account_id)

    async def get_account_by_email(self, email: str) -> Optional[Account]:
        stmt = select(Account).where(Account.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_account_by_customer_id(self, customer_id: str) -> Optional[Account]:
        stmt = select(Account).where(Account.paddle_customer_id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_account_by_email(
        self,
        email: str,
        paddle_customer_id: Optional[str] = None,
    ) -> UUID:
        """
        Create the account for email if missing and return its id.

        When paddle_customer_id is given it is attached to the existing row;
        otherwise an existing row is left untouched.
        """
        stmt = self._insert(Account).values(email=email, paddle_customer_id=paddle_customer_id)
        if paddle_customer_id is None:
            set_ = {"email": stmt.excluded.email}
        else:
            set_ = {"paddle_customer_id": stmt.excluded.paddle_customer_id}
        stmt = stmt.on_conflict_do_update(
            index_elements=[Account.email],
            set_=set_,
        ).returning(Account.id)

        result = await self.session.execute(stmt)
        account_id = result.scalar_one()
        await self.session.commit()
        return account_id

    async def upsert_account_by_customer_id(self, customer_id: str, email: str) -> UUID:
        """Create the account for a Paddle customer if missing and return its id."""
        stmt = self._insert(Account).values(email=email, paddle_customer_id=customer_id)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Account.paddle_customer_id],
            set_={"paddle_customer_id": stmt.excluded.paddle_customer_id},
        ).returning(Account.id)

        result = await self.session.execute(stmt)
        account_id = result.scalar_one()
        await self.session.commit()
        return account_id

    async def update_account(
        self,
        account_id: UUID,
        email: str,
        paddle_customer_id: str,
    ) -> None:
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(email=email, paddle_customer_id=paddle_customer_id)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    # ─── Magic codes ───────────────────────────────────────────────────────

    async def insert_magic_code(
        self,
        email: str,
        code_hash: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> MagicCode:
        magic_code = MagicCode(
            email=email,
            code_hash=code_hash,
            expires_at=expires_at,
            created_at=created_at or utcnow(),
        )
        self.session.add(magic_code)
        await self.session.commit()
        await self.session.refresh(magic_code)
        return magic_code

    async def find_latest_active_code(self, email: str, now: datetime) -> Optional[MagicCode]:
        """Most recent unconsumed code for email that expires strictly after now."""
        stmt = (
            select(MagicCode)
            .where(
                MagicCode.email == email,
                MagicCode.consumed_at.is_(None),
                MagicCode.expires_at > now,
            )
            .order_by(MagicCode.created_at.desc(), MagicCode.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def consume_code(self, code_id: UUID, now: datetime) -> bool:
        """
        Mark a code consumed. Returns False if another request consumed it first.

        The consumed_at IS NULL guard makes redemption single-use even when
        two verifications race on the same code.
        """
        stmt = (
            update(MagicCode)
            .where(MagicCode.id == code_id, MagicCode.consumed_at.is_(None))
            .values(consumed_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    # ─── Sessions ──────────────────────────────────────────────────────────

    async def insert_session(
        self,
        account_id: UUID,
        token_hash: str,
        expires_at: datetime,
    ) -> AppSession:
        app_session = AppSession(
            account_id=account_id,
            token_hash=token_hash,
            expires_at=expires_at,
        )
        self.session.add(app_session)
        await self.session.commit()
        await self.session.refresh(app_session)
        return app_session

    async def find_active_session(self, token_hash: str, now: datetime) -> Optional[AppSession]:
        """Session for token_hash that expires strictly after now."""
        stmt = select(AppSession).where(
            AppSession.token_hash == token_hash,
            AppSession.expires_at > now,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # ─── Subscriptions ─────────────────────────────────────────────────────

    async def latest_subscription(self, account_id: UUID) -> Optional[AccountSubscription]:
        stmt = (
            select(AccountSubscription)
            .where(AccountSubscription.account_id == account_id)
            .order_by(AccountSubscription.updated_at.desc(), AccountSubscription.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_subscription(
        self,
        account_id: UUID,
        paddle_subscription_id: str,
        status: str,
        plan_name: Optional[str],
        current_period_ends_at: Optional[datetime],
        raw_payload: dict[str, Any],
    ) -> None:
        now = utcnow()
        stmt = self._insert(AccountSubscription).values(
            account_id=account_id,
            paddle_subscription_id=paddle_subscription_id,
            status=status,
            plan_name=plan_name,
            current_period_ends_at=current_period_ends_at,
            raw_payload=raw_payload,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AccountSubscription.paddle_subscription_id],
            set_={
                "account_id": stmt.excluded.account_id,
                "status": stmt.excluded.status,
                "plan_name": stmt.excluded.plan_name,
                "current_period_ends_at": stmt.excluded.current_period_ends_at,
                "raw_payload": stmt.excluded.raw_payload,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)
        await self.session.commit()

    # ─── Webhook events ────────────────────────────────────────────────────

    async def record_webhook_event(
        self,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> bool:
        """
        Append an event to the ledger. Returns False if event_id was already recorded.

        The unique constraint on event_id decides the winner when the same
        event is delivered concurrently; the losing insert rolls back.
        """
        self.session.add(
            PaddleWebhookEvent(event_id=event_id, event_type=event_type, payload=payload)
        )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Paddle event %s already recorded", event_id)
            return False
        return True


async def get_store(session: AsyncSession = Depends(get_session)) -> AsyncGenerator[LicenseStore, None]:
    """Provide the persistence gateway for dependency injection."""
    yield LicenseStore(session)
