"""Product Catalog Service.

Provides the category tree and facets, products with their derived text
index, listing and search queries, and manual ordering.
"""

from catalog_api.catalog.models import (
    Brand,
    Category,
    Product,
    ProductRelation,
    ProductType,
    ProductVariant,
    SearchToken,
)
from catalog_api.catalog.ordering import MoveResult, OrderingProtocol
from catalog_api.catalog.query import PaginatedResult, ProductQuery, QueryBuilder
from catalog_api.catalog.repository import ProductRepository
from catalog_api.catalog.search_index import TextIndex
from catalog_api.catalog.service import CatalogService, CatalogStats, ImportResult
from catalog_api.catalog.taxonomy import (
    CategoryEntry,
    CategoryStore,
    FacetStore,
    TaxonomyStore,
    flatten_categories,
)

__all__ = [
    # Models
    "Brand",
    "Category",
    "Product",
    "ProductRelation",
    "ProductType",
    "ProductVariant",
    "SearchToken",
    # Taxonomy
    "CategoryEntry",
    "CategoryStore",
    "FacetStore",
    "TaxonomyStore",
    "flatten_categories",
    # Products
    "ProductRepository",
    "TextIndex",
    # Querying
    "PaginatedResult",
    "ProductQuery",
    "QueryBuilder",
    # Ordering
    "MoveResult",
    "OrderingProtocol",
    # Service
    "CatalogService",
    "CatalogStats",
    "ImportResult",
]
