"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from catalog_api.api.admin import router as admin_router
from catalog_api.api.categories import router as categories_router
from catalog_api.api.facets import router as facets_router
from catalog_api.api.health import router as health_router
from catalog_api.api.products import router as products_router
from catalog_api.api.reorder import router as reorder_router
from catalog_api.api.search import router as search_router

__all__ = [
    "admin_router",
    "categories_router",
    "facets_router",
    "health_router",
    "products_router",
    "reorder_router",
    "search_router",
]
