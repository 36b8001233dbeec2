"""Database configuration and session management.

Provides the async SQLAlchemy engine, the session factory and schema
helpers. PostgreSQL (asyncpg) is the production target; SQLite
(aiosqlite) is supported for local runs and tests.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from catalog_api.infrastructure.config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Build engine keyword arguments for a database URL.

    Args:
        database_url: SQLAlchemy async URL.

    Returns:
        Options for ``create_async_engine``.
    """
    options: dict[str, Any] = {"echo": settings.debug}
    if make_url(database_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Session factory (objects stay readable after the unit of work commits)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def create_tables(reset: bool = False) -> None:
    """Create the catalog tables if they don't exist.

    Args:
        reset: Drop every catalog table first.
    """
    # Registers the catalog tables on Base.metadata
    import catalog_api.catalog.models  # noqa: F401

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Catalog writes commit their own unit of work; anything still pending
    when the request finishes is committed here, and rolled back on error.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
