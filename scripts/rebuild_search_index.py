#!/usr/bin/env python3
"""Rebuild the product search index.

Disaster-recovery procedure: drops every search index row and re-derives
it from the products table in a single transaction. Safe to run at any
time; the products table is never modified.

Usage:
    python scripts/rebuild_search_index.py
"""

import asyncio

from catalog_api.catalog.service import CatalogService
from catalog_api.infrastructure.database import async_session_factory, engine


async def main() -> None:
    """Main entry point."""
    print("Rebuilding search index...")

    async with async_session_factory() as session:
        count = await CatalogService(session).rebuild_index()

    print(f"  ✓ Indexed {count} products")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
