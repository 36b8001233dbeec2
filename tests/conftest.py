"""Shared fixtures for catalog tests.

Every test gets its own in-memory SQLite database with the full schema.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog_api.catalog.models import Category, Product
from catalog_api.catalog.service import CatalogService
from catalog_api.infrastructure.database import Base


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database with all catalog tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the test database."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session on the test database."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def service(session: AsyncSession) -> CatalogService:
    """Create a catalog service on the test session."""
    return CatalogService(session)


# ============================================================================
# Data Helpers
# ============================================================================


@pytest.fixture
def make_category(service: CatalogService) -> Callable[..., Awaitable[Category]]:
    """Create categories through the service."""

    async def _make(name: str, parent_id: int | None = None, **values: Any) -> Category:
        return await service.create_taxonomy(
            "categories",
            {"name_en": name, "parent_id": parent_id, **values},
        )

    return _make


@pytest.fixture
def make_product(service: CatalogService) -> Callable[..., Awaitable[Product]]:
    """Create simple products through the service."""

    async def _make(name: str, sku: str, **values: Any) -> Product:
        return await service.create_product({"name_en": name, "sku": sku, **values})

    return _make
