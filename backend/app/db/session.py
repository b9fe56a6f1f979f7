"""
Async engine and session management.

The engine is created lazily from DATABASE_URL. An empty URL leaves storage
unconfigured: `get_optional_db` then yields None, which the payment webhook
reports as a configuration error, and `get_db` fails with 500.
"""

from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_session_factory() -> Optional[async_sessionmaker]:
    settings = get_settings()
    if not settings.DATABASE_URL:
        logger.error("database_not_configured")
        return None

    engine = create_async_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def dispose_engine() -> None:
    factory = get_session_factory()
    if factory is not None:
        await factory.kw["bind"].dispose()


async def get_optional_db() -> AsyncGenerator[Optional[AsyncSession], None]:
    """Yield a session, or None when storage is not configured."""
    factory = get_session_factory()
    if factory is None:
        yield None
        return

    async with factory() as session:
        yield session


async def get_db(
    session: Optional[AsyncSession] = Depends(get_optional_db),
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on error."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database is not configured",
        )

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
