"""
Database configuration and session management.
Uses SQLAlchemy async engine (asyncpg for PostgreSQL in production).

The engine is created once at process start and disposed at shutdown.
Request handlers receive an AsyncSession through the get_db dependency
and pass it explicitly to repositories and services.
"""
import logging
from typing import AsyncGenerator, Tuple

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.models.base import Base

logger = logging.getLogger(__name__)


def create_engine_and_sessionmaker(
    database_url: str,
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """
    Build an async engine and a session factory bound to it.

    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    engine_kwargs = {
        "echo": False,  # Disable SQLAlchemy query logging
        "future": True,
        "pool_pre_ping": True,
    }
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(pool_size=10, max_overflow=20)

    engine = create_async_engine(database_url, **engine_kwargs)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    return engine, session_factory


# Create async engine and session factory
engine, AsyncSessionLocal = create_engine_and_sessionmaker(settings.database_url)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = None) -> None:
    """
    Initialize database: create tables.
    Called on application startup.
    Users are created automatically on first sign-in.
    """
    # Import models so they register with Base.metadata
    from app.models import User, UserCredits, Order  # noqa: F401

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def dispose_db(bind: AsyncEngine = None) -> None:
    """Release pooled connections. Called on application shutdown."""
    target = bind or engine
    await target.dispose()
    logger.info("Database engine disposed")
