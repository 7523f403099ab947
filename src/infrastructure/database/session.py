"""Async database engine and session lifecycle management.

Core functionality:
- **Connection pooling**: Configurable pool with overflow and recycling
  (PostgreSQL)
- **Session factory**: Async session creation with proper cleanup
- **Health checks**: Database connectivity validation for monitoring

The module uses a singleton pattern through _DatabaseManager to ensure
a single engine instance across the application lifecycle, maximizing
connection pool efficiency.
"""

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import get_settings
from src.infrastructure.constants import COMMAND_TIMEOUT_SECONDS, POOL_RECYCLE_SECONDS


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: Optional database URL. If not provided, uses the
                     configured database URL from settings.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    db_config = get_settings().database_config
    url = database_url or db_config.database_url

    engine_kwargs: dict[str, Any] = {
        "echo": db_config.echo,
        "pool_pre_ping": db_config.pool_pre_ping,
    }
    if url.startswith("postgresql+asyncpg://"):
        engine_kwargs.update(
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_recycle=POOL_RECYCLE_SECONDS,
            connect_args={
                "server_settings": {"jit": "off"},
                "command_timeout": COMMAND_TIMEOUT_SECONDS,
            },
        )

    engine = create_async_engine(url, **engine_kwargs)

    logger.info(
        "Created database engine - dialect: {}, pool_size: {}",
        engine.dialect.name,
        engine_kwargs.get("pool_size", "default"),
    )

    return engine


class _DatabaseManager:
    """Internal class to manage database engine and session factory instances."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = threading.Lock()

    def get_engine(self) -> AsyncEngine:
        """Get or create the async engine instance."""
        if self._engine is None:
            with self._lock:
                # Double-checked locking pattern
                if self._engine is None:
                    self._engine = create_database_engine()
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the async session factory."""
        if self._async_session_factory is None:
            with self._lock:
                if self._async_session_factory is None:
                    engine = self.get_engine()
                    self._async_session_factory = async_sessionmaker(
                        engine,
                        class_=AsyncSession,
                        expire_on_commit=False,
                    )
                    logger.info("Created async session factory")
        return self._async_session_factory

    async def close(self) -> None:
        """Close the database engine and cleanup connections."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
            self._engine = None
            self._async_session_factory = None

    def reset(self) -> None:
        """Reset the manager state. Used primarily for testing."""
        self._engine = None
        self._async_session_factory = None


# Singleton instance
_db_manager = _DatabaseManager()


def get_engine() -> AsyncEngine:
    """Get or create the global async engine instance."""
    return _db_manager.get_engine()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the global async session factory."""
    return _db_manager.get_session_factory()


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get an async database session with automatic cleanup.

    The session is committed on success or rolled back on error.

    Yields:
        AsyncSession: Database session for performing operations.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(User))
            users = result.scalars().all()
    """
    async_session_factory = get_session_factory()
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.debug("Database session rolled back due to error")
            raise


async def close_database() -> None:
    """Close the database engine and cleanup connections.

    This should be called during application shutdown.
    """
    await _db_manager.close()


async def check_database_connection() -> tuple[bool, str | None]:
    """Check if database connection is available.

    Used by the health endpoint and startup validation.

    Returns:
        tuple[bool, str | None]: Success flag and the error message on failure.
    """
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            _ = result.scalar()
    except (SQLAlchemyError, OSError) as e:
        return False, str(e)
    else:
        return True, None
