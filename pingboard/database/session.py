"""Async engine and session factory construction."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from pingboard.config import DatabaseConfig


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """
    Create the async engine for the history database.

    SQLite gets a ``NullPool`` so connections are opened on demand;
    server databases get a bounded queue pool.

    Args:
        config: Database section of the application config

    Returns:
        AsyncEngine: Engine bound to ``config.url``
    """
    if config.url.startswith("sqlite"):
        return create_async_engine(config.url, echo=config.echo, poolclass=NullPool)

    return create_async_engine(
        config.url,
        echo=config.echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the history store."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
