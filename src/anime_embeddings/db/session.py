"""
Database Session Management

Async SQLAlchemy engine and session factory for the catalog database.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings


async_engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
)

# Sessions outlive commits: embedding writes commit per item and the
# batch keeps reading through the same session afterwards.
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Open a session for one unit of work, rolling back on error.

    Usage:
        async with session_scope() as session:
            engine = build_sql_engine(session)
            await engine.generate_all_anime_embeddings()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections; call once at process shutdown."""
    await async_engine.dispose()
