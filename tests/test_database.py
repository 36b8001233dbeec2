"""Tests for database engine options."""

from catalog_api.infrastructure.database import engine_options


def test_sqlite_options() -> None:
    """SQLite connections may be shared across threads."""
    options = engine_options("sqlite+aiosqlite:///./catalog.db")
    assert options["connect_args"] == {"check_same_thread": False}
    assert "pool_pre_ping" not in options


def test_postgres_options() -> None:
    """Server databases are pinged before use."""
    options = engine_options("postgresql+asyncpg://catalog:secret@db:5432/catalog")
    assert options["pool_pre_ping"] is True
    assert "connect_args" not in options
