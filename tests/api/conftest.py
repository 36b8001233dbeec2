"""Shared fixtures for API tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_api.infrastructure.config import settings
from catalog_api.infrastructure.database import get_session
from catalog_api.main import app

EDITOR_TOKEN = "test-editor-token"


@pytest.fixture(autouse=True)
def editor_tokens(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Configure a single known editor token."""
    tokens = {EDITOR_TOKEN: "tester"}
    monkeypatch.setattr(settings, "editor_tokens", tokens)
    return tokens


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the in-memory database."""

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Get editor authentication headers."""
    return {"Authorization": f"Bearer {EDITOR_TOKEN}"}
