"""Async SQLAlchemy engine and session management.

``init_database`` is called once from the application lifespan. Routes
receive a session through the ``get_db_session`` dependency, which commits
on success and rolls back on any exception.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tr_assessments.observability import get_logger
from tr_assessments.settings import Settings

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_database(settings: Settings) -> AsyncEngine:
    """Create the async engine and session factory.

    Args:
        settings: Service settings holding the database URL and pool options.

    Returns:
        The configured AsyncEngine.
    """
    global _engine, _session_factory

    _engine = create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info("Database initialised", pool_size=settings.database_pool_size)
    return _engine


async def close_database() -> None:
    """Dispose of the engine's connection pool."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional session for one request.

    Raises:
        RuntimeError: If init_database() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database is not initialised; call init_database() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
