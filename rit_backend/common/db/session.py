"""
Database Session Management

This module provides SQLAlchemy async engine and session management for the
SQL-backed item bank, assessment store and configuration provider.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)

from rit_backend.common.config import DatabaseConfig, get_config
from rit_backend.common.logger import app_logger
from rit_backend.database.base import Base

logger = app_logger.getChild("db.session")


def get_engine_kwargs(db_config: DatabaseConfig) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    Different databases support different connection options.
    """
    kwargs: Dict[str, Any] = {"echo": db_config.echo}

    if db_config.url.startswith("postgresql"):
        kwargs.update({
            "pool_size": db_config.pool_size,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })

    return kwargs


def create_engine_from_settings(db_config: Optional[DatabaseConfig] = None) -> AsyncEngine:
    """
    Create an async engine from the database configuration section.

    Args:
        db_config: Database configuration, defaults to the loaded app config

    Returns:
        AsyncEngine instance
    """
    db_config = db_config or get_config().database
    logger.info(f"Creating database engine for {db_config.url.split('://', 1)[0]}")
    return create_async_engine(db_config.url, **get_engine_kwargs(db_config))


def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build the session factory used by the SQL stores."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_session(factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """
    Get an async database session that commits on success.

    Example:
        async with get_session(factory) as session:
            result = await session.execute(query)
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        await session.close()


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables known to the declarative base."""
    # Registers the ORM tables on the shared metadata
    from rit_backend.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")
