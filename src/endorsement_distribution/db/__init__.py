"""Database module.

- SQLAlchemy 2.x Core table definitions
- Alembic migration configuration
- Connection pooling via psycopg
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from endorsement_distribution.core.config import DatabaseSettings

# Module-level engine and session factory (initialized on first use)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def to_psycopg_url(url: str) -> str:
    """Rewrite a PostgreSQL URL to use the psycopg (v3) driver.

    The psycopg dialect serves both the async engine and the sync engine
    Alembic runs migrations with.

    Args:
        url: postgresql:// or postgres:// connection URL.

    Returns:
        PostgreSQL connection URL for the psycopg driver.
    """
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


def init_engine(database: DatabaseSettings) -> async_sessionmaker[AsyncSession]:
    """Initialize the database engine and session factory.

    Subsequent calls return the already-initialized factory.

    Args:
        database: Connection and pool settings.

    Returns:
        Session factory bound to the pooled engine.
    """
    global _engine, _async_session_factory

    if _async_session_factory is not None:
        return _async_session_factory

    _engine = create_async_engine(
        to_psycopg_url(str(database.url)),
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        pool_timeout=database.pool_timeout,
        pool_pre_ping=True,
        echo=database.echo,
    )

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return _async_session_factory


async def close_engine() -> None:
    """Close the database engine.

    Call this during application shutdown to clean up connections.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
