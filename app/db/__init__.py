"""
Database engine and request sessions for the license tables.

Production connects to the Supabase Postgres database through asyncpg.
Tests override get_session with an in-memory SQLite session factory, so
nothing here is tied to one dialect; LicenseStore picks the upsert syntax
from the bound engine.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(settings.database_url, pool_pre_ping=True)

# Objects stay readable after commit; the store commits after every write
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request, rolled back if the request fails."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
