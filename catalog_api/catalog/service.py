"""Catalog service for product and taxonomy operations.

High-level service that composes the taxonomy store, the product store,
the query builder and the ordering protocol. It is the transaction
boundary: every write runs as one unit of work that commits on success
and rolls back completely on any exception.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.catalog.models import Product
from catalog_api.catalog.ordering import MoveResult, OrderingProtocol
from catalog_api.catalog.query import PaginatedResult, ProductQuery, QueryBuilder
from catalog_api.catalog.repository import ProductRepository
from catalog_api.catalog.search_index import TextIndex
from catalog_api.catalog.taxonomy import CategoryEntry, FacetStore, TaxonomyStore
from catalog_api.domain.exceptions import DomainError, NotFoundError, ValidationError
from catalog_api.domain.value_objects import Audience, MoveDirection, OrderScope

logger = structlog.get_logger()

TAXONOMY_KINDS = ("categories", "types", "brands")

IMPORT_FIELDS = (
    "name_en",
    "name_ko",
    "category_id",
    "type_id",
    "brand_id",
    "description_en",
    "description_ko",
    "is_published",
)


@dataclass
class ImportResult:
    """Outcome of a bulk product import.

    Attributes:
        created: Rows inserted as new products.
        updated: Rows that updated the product with the same SKU.
        errors: One message per skipped or failed row.
    """

    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class CatalogStats:
    """Dashboard counters."""

    total_products: int
    published_products: int
    featured_products: int
    categories: int
    types: int
    brands: int


class CatalogService:
    """Service for catalog operations.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService(session)

            # List a category subtree
            page = await service.list_products(
                ProductQuery(category_id=3, search="scanner"),
            )

            # Editors reorder brands
            await service.move(OrderScope.BRANDS, 7, MoveDirection.UP)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session
        self.taxonomy = TaxonomyStore(session)
        self.index = TextIndex(session)
        self.products = ProductRepository(session, self.index)
        self.queries = QueryBuilder(session)
        self.ordering = OrderingProtocol(session)

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        """Commit on success, roll back everything on any exception."""
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # ========================================================================
    # Product reads
    # ========================================================================

    async def list_products(
        self,
        query: ProductQuery,
        audience: Audience = Audience.PUBLIC,
    ) -> PaginatedResult[Product]:
        """List products with filters, search and pagination.

        Args:
            query: Filter parameters.
            audience: Admin listings include unpublished products.

        Returns:
            Paginated product results.
        """
        return await self.queries.filter(query, audience)

    async def featured_products(self, audience: Audience = Audience.PUBLIC) -> list[Product]:
        """Get featured products in featured order."""
        return await self.queries.featured(audience)

    async def quick_search(self, term: str | None, limit: int | None = None) -> list[Product]:
        """Get the top ranked published matches for a term."""
        return await self.queries.quick_search(term, limit)

    async def get_product(self, product_id: int, audience: Audience = Audience.PUBLIC) -> Product:
        """Get product by ID.

        Raises:
            NotFoundError: If missing, or unpublished for a public audience.
        """
        product = await self.products.get_by_id(product_id)
        return self._visible(product, product_id, audience)

    async def get_product_by_slug(self, slug: str, audience: Audience = Audience.PUBLIC) -> Product:
        """Get product by slug.

        Raises:
            NotFoundError: If missing, or unpublished for a public audience.
        """
        product = await self.products.get_by_slug(slug)
        return self._visible(product, slug, audience)

    async def related_ids(self, product_id: int) -> list[int]:
        """Get ids of products linked as related."""
        return await self.products.related_ids(product_id)

    async def resolve_filters(
        self,
        category: str | None = None,
        type_: str | None = None,
        brand: str | None = None,
    ) -> dict[str, int | None]:
        """Resolve id-or-slug filter references to ids.

        Returns:
            ``category_id``, ``type_id`` and ``brand_id`` entries.
        """
        return {
            "category_id": await self.taxonomy.categories.resolve_ref(category),
            "type_id": await self.taxonomy.types.resolve_ref(type_),
            "brand_id": await self.taxonomy.brands.resolve_ref(brand),
        }

    @staticmethod
    def _visible(product: Product | None, ref: Any, audience: Audience) -> Product:
        if product is None or (audience is Audience.PUBLIC and not product.is_published):
            raise NotFoundError("Product", ref)
        return product

    # ========================================================================
    # Product writes
    # ========================================================================

    async def create_product(
        self,
        values: dict[str, Any],
        variants: Sequence[dict[str, Any]] | None = None,
        related_ids: Sequence[int] | None = None,
    ) -> Product:
        """Create a product (and its index rows) in one unit of work."""
        async with self.unit_of_work():
            product = await self.products.create(values, variants, related_ids)
        return await self.products.get_or_raise(product.id)

    async def update_product(
        self,
        product_id: int,
        values: dict[str, Any],
        variants: Sequence[dict[str, Any]] | None = None,
        related_ids: Sequence[int] | None = None,
    ) -> Product:
        """Update a product (and its index rows) in one unit of work."""
        async with self.unit_of_work():
            await self.products.update(product_id, values, variants, related_ids)
        return await self.products.get_or_raise(product_id)

    async def delete_product(self, product_id: int) -> None:
        """Delete a product in one unit of work."""
        async with self.unit_of_work():
            await self.products.delete(product_id)

    async def import_products(self, rows: Sequence[dict[str, Any]]) -> ImportResult:
        """Upsert products by SKU.

        Each row is its own unit of work: a failing row is reported and
        skipped without affecting the others.

        Args:
            rows: Product values; ``name_en`` and ``sku`` are required.

        Returns:
            Created/updated counts and per-row errors.

        Raises:
            ValidationError: If there are no rows at all.
        """
        if not rows:
            raise ValidationError("No products to import", field="products")

        result = ImportResult()
        for number, row in enumerate(rows, start=1):
            sku = (row.get("sku") or "").strip()
            if not row.get("name_en") or not sku:
                result.errors.append(f"Row {number}: missing name_en or sku, skipped")
                continue

            values = {k: row[k] for k in IMPORT_FIELDS if k in row}
            try:
                async with self.unit_of_work():
                    existing = await self.products.get_by_sku(sku)
                    if existing is None:
                        await self.products.create({**values, "sku": sku})
                    else:
                        await self.products.update(existing.id, values)
            except DomainError as e:
                result.errors.append(f"Row {number} ({sku}): {e.message}")
                continue
            except SQLAlchemyError as e:
                logger.warning("Import row failed", row=number, sku=sku, error=str(e))
                result.errors.append(f"Row {number} ({sku}): database error")
                continue

            if existing is None:
                result.created += 1
            else:
                result.updated += 1

        logger.info(
            "Products imported",
            created=result.created,
            updated=result.updated,
            errors=len(result.errors),
        )
        return result

    # ========================================================================
    # Taxonomy
    # ========================================================================

    def store_for(self, kind: str) -> FacetStore:
        """Get the store for ``categories``, ``types`` or ``brands``."""
        if kind not in TAXONOMY_KINDS:
            raise ValidationError(f"Unknown taxonomy: {kind}", details={"kind": kind})
        return getattr(self.taxonomy, kind)

    async def list_categories(self) -> list[CategoryEntry]:
        """List categories flattened depth-first, orphans last."""
        return await self.taxonomy.categories.list_ordered()

    async def category_entry(self, category_id: int) -> CategoryEntry:
        """Get one category positioned in the tree.

        Raises:
            NotFoundError: If the category does not exist.
        """
        category = await self.taxonomy.categories.get_or_raise(category_id)
        return await self.taxonomy.categories.entry_for(category)

    async def list_facet(self, kind: str) -> list[Any]:
        """List types or brands ordered by ``(sort_order, id)``."""
        return await self.store_for(kind).list_ordered()

    async def create_taxonomy(self, kind: str, values: dict[str, Any]) -> Any:
        """Create a category, type or brand in one unit of work."""
        store = self.store_for(kind)
        async with self.unit_of_work():
            entity = await store.create(values)
        return entity

    async def update_taxonomy(self, kind: str, entity_id: int, values: dict[str, Any]) -> Any:
        """Update a category, type or brand in one unit of work."""
        store = self.store_for(kind)
        async with self.unit_of_work():
            entity = await store.update(entity_id, values)
        return entity

    async def delete_taxonomy(self, kind: str, entity_id: int) -> int:
        """Delete a category, type or brand; products are detached, never deleted.

        Returns:
            Number of products detached.
        """
        store = self.store_for(kind)
        async with self.unit_of_work():
            detached = await store.delete(entity_id)
        return detached

    # ========================================================================
    # Ordering
    # ========================================================================

    async def move(
        self,
        scope: str | OrderScope,
        entity_id: int,
        direction: MoveDirection,
    ) -> MoveResult:
        """Move an item one step within its sibling group."""
        async with self.unit_of_work():
            result = await self.ordering.move_step(scope, entity_id, direction)
        return result

    async def reorder(self, scope: str | OrderScope, ordered_ids: Sequence[int]) -> int:
        """Rewrite the order of a list of ids in one transaction."""
        async with self.unit_of_work():
            count = await self.ordering.reorder_all(scope, ordered_ids)
        return count

    # ========================================================================
    # Administration
    # ========================================================================

    async def stats(self) -> CatalogStats:
        """Get dashboard counters."""
        return CatalogStats(
            total_products=await self.products.count(),
            published_products=await self.products.count(is_published=True),
            featured_products=await self.products.count(is_featured=True),
            categories=await self.taxonomy.categories.count(),
            types=await self.taxonomy.types.count(),
            brands=await self.taxonomy.brands.count(),
        )

    async def rebuild_index(self) -> int:
        """Rebuild the text index from the products table.

        Returns:
            Number of products indexed.
        """
        async with self.unit_of_work():
            count = await self.index.rebuild()
        return count
