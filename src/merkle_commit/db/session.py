"""
Merkle Commitment Service - Database Session

Async database session management with connection pooling.
The engine is created on first use so the in-memory root store runs
without a database driver configured.
"""

from functools import lru_cache

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from merkle_commit.core.config import settings

logger = structlog.get_logger(__name__)


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the shared async engine."""
    return create_async_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.DEBUG,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Create the shared session factory."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Verify connectivity and make sure the root table exists."""
    logger.info(
        "Initializing database connection",
        host=settings.DB_HOST,
        database=settings.DB_NAME,
    )
    async with get_engine().begin() as conn:
        await conn.execute(text("SELECT 1"))

    await _ensure_root_tables()

    logger.info("Database connection verified")


async def _ensure_root_tables() -> None:
    """Ensure the published root table exists."""
    async with get_session_factory()() as session:
        await session.execute(text("""
            CREATE TABLE IF NOT EXISTS merkle_roots (
                version BIGSERIAL PRIMARY KEY,
                root VARCHAR(130) NOT NULL,
                algorithm VARCHAR(32) NOT NULL DEFAULT 'sha256',
                leaf_count INTEGER NOT NULL CHECK (leaf_count > 0),
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """))

        await session.execute(text("""
            CREATE INDEX IF NOT EXISTS idx_merkle_roots_created_at
            ON merkle_roots(created_at DESC)
        """))

        await session.commit()

    logger.info("Merkle root table verified")


async def close_db() -> None:
    """Close database connections gracefully."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    logger.info("Database connections closed")

