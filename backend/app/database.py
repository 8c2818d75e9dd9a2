import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.models import Base

logger = logging.getLogger("healthadvisor.database")


def database_configured() -> bool:
    return bool(settings.database_url)


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine on first use."""
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=30,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=settings.database_pool_pre_ping,
    )


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Initialize database (creates tables in debug; use Alembic in production)."""
    if not database_configured():
        logger.warning("DATABASE_URL not set; chat runs without stored health context.")
        return
    if not settings.debug:
        logger.info("Skipping create_all in non-debug mode; run Alembic migrations.")
        return
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    if database_configured() and get_engine.cache_info().currsize:
        await get_engine().dispose()


async def get_db() -> AsyncGenerator[AsyncSession | None, None]:
    """Dependency for database sessions; yields None when no database is configured."""
    if not database_configured():
        yield None
        return
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
