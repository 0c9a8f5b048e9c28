"""
Database engine management

Provides:
- Lazily created async engines for the read-only and admin roles
- A connectivity check used by the readiness endpoint

Both roles point at the same Postgres database. The read-only role can run
the hybrid search procedure and read profiles; the admin role is only used
by embedding maintenance, which writes vectors back to the profile table.
"""

from functools import lru_cache

import structlog
from matchmaker.core.config import settings
from matchmaker.core.errors import ConfigurationError
from matchmaker.core.resilience import db_breaker
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = structlog.get_logger(__name__)


def _async_url(url: str) -> str:
    """Convert postgresql:// (or postgres://) to postgresql+asyncpg:// for the async driver."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix) :]
    return url


def _create_engine(url: str) -> AsyncEngine:
    return create_async_engine(
        _async_url(url),
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Engine for the read-only role used by search and profile reads."""
    if not settings.DATABASE_URL:
        raise ConfigurationError("Missing database environment variables")
    logger.info("database_engine_created", role="reader")
    return _create_engine(settings.DATABASE_URL)


@lru_cache(maxsize=1)
def get_admin_engine() -> AsyncEngine:
    """Engine for the service role. ONLY use this for embedding maintenance."""
    if not settings.ADMIN_DATABASE_URL:
        raise ConfigurationError("Missing admin database environment variables")
    logger.info("database_engine_created", role="admin")
    return _create_engine(settings.ADMIN_DATABASE_URL)


async def check_database_connection() -> bool:
    """
    Check database connectivity.

    Returns:
        True if the read-only role can run a trivial query, False otherwise.
        Always False while the database circuit breaker is open.
    """
    try:
        engine = get_engine()
        with db_breaker.calling():
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False


async def dispose_engines() -> None:
    """Close pooled connections on shutdown."""
    for factory in (get_engine, get_admin_engine):
        if factory.cache_info().currsize:
            await factory().dispose()
            factory.cache_clear()
