"""
Test fixtures for the license service.

Provides an in-memory SQLite database per test, a LicenseStore bound to
it, explicit Settings, and an httpx client against the ASGI app with the
session and settings dependencies overridden.
"""

import os

# Settings are read when app modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings
from app.core.security import random_token
from app.auth.session import SessionService
from app.db import get_session
from app.db.store import LicenseStore
from app.main import app
from app.models import Account, Base

TEST_PEPPER = "test-pepper-0123456789"
TEST_WEBHOOK_SECRET = "pdl_ntfset_test_secret"


def build_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "environment": "development",
        "magic_code_pepper": TEST_PEPPER,
        "paddle_webhook_secret": TEST_WEBHOOK_SECRET,
        "allow_dev_magic_code": True,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def make_settings():
    """Factory for Settings with test secrets and per-test overrides."""
    return build_settings


@pytest.fixture
async def engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def store(session_factory) -> AsyncGenerator[LicenseStore, None]:
    """Persistence gateway on its own session, separate from request sessions."""
    async with session_factory() as session:
        yield LicenseStore(session)


@pytest.fixture
async def client(session_factory, settings) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def make_account(session_factory):
    """Insert an account created a given number of days ago."""
    async def _make(email: str = "user@example.com", days_ago: float = 0, customer_id=None) -> Account:
        async with session_factory() as session:
            account = Account(
                email=email,
                paddle_customer_id=customer_id,
                created_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
            )
            session.add(account)
            await session.commit()
            await session.refresh(account)
            return account

    return _make


@pytest.fixture
def make_session_token(session_factory):
    """Create a session for an account and return its plaintext bearer token."""
    async def _make(account: Account, lifetime_days: int = 30, now=None) -> str:
        async with session_factory() as session:
            token, _ = await SessionService.create_session(
                LicenseStore(session),
                account_id=account.id,
                pepper=TEST_PEPPER,
                lifetime_days=lifetime_days,
                now=now or datetime.now(timezone.utc),
            )
            return token

    return _make


@pytest.fixture
def unknown_token() -> str:
    return random_token()


@pytest.fixture
def fetch_all(session_factory):
    """Select rows of a model in a fresh session, bypassing any cached identities."""
    async def _fetch(model, *criteria) -> list:
        stmt = select(model)
        if criteria:
            stmt = stmt.where(*criteria)
        async with session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    return _fetch
