"""
Async database engine and session management.
Uses SQLAlchemy async with the asyncpg driver; the same session factory
backs API requests and Celery scan/uptime tasks.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from seo_health.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.postgres_url,
    pool_size=settings.POSTGRES_POOL_SIZE,
    max_overflow=settings.POSTGRES_MAX_OVERFLOW,
    pool_timeout=settings.POSTGRES_POOL_TIMEOUT,
    pool_pre_ping=True,
    pool_recycle=3600,
    echo=settings.POSTGRES_ECHO,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; rolled back if the handler raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DBSession = Annotated[AsyncSession, Depends(get_db)]


@asynccontextmanager
async def worker_sessionmaker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory for Celery tasks.

    Each task runs on a fresh event loop, so pooled asyncpg connections
    cannot be shared between tasks: use a NullPool engine per task run.
    """
    task_engine = create_async_engine(settings.postgres_url, poolclass=NullPool, echo=settings.POSTGRES_ECHO)
    try:
        yield async_sessionmaker(task_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    finally:
        await task_engine.dispose()
