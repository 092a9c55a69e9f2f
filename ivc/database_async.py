"""Async SQLAlchemy sessions backing the admin user store."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ivc.config import settings

async_engine: AsyncEngine = create_async_engine(
    settings.resolved_async_database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(bind=async_engine, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session for fastapi-users dependencies."""
    async with AsyncSessionLocal() as session:
        yield session


async def dispose_async_engine() -> None:
    """Release pooled aiosqlite connections on shutdown."""
    await async_engine.dispose()
