"""Product listing queries.

Translates a filter request into one bounded SQL statement: a filtered
subquery of product ids (with search relevance when a term is present)
from which both the total count and the requested page are read, so the
two always agree.
"""

from dataclasses import dataclass, field, replace
from typing import Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.catalog.models import Category, Product, ProductVariant
from catalog_api.catalog.search_index import TextIndex, query_tokens
from catalog_api.domain.value_objects import Audience, Locale, SortMode
from catalog_api.infrastructure.config import settings

T = TypeVar("T")


@dataclass
class ProductQuery:
    """Filter parameters for product listings.

    Attributes:
        category_id: Category whose subtree (two levels down) to include.
        type_id: Type facet filter.
        brand_id: Brand facet filter.
        search: Raw free-text term.
        page: Page number (1-indexed).
        page_size: Items per page.
        sort: Order used when no search term is active.
        locale: Locale whose name is used for alphabetical sort.
    """

    category_id: int | None = None
    type_id: int | None = None
    brand_id: int | None = None
    search: str | None = None
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.default_page_size)
    sort: SortMode = SortMode.NEWEST
    locale: Locale = Locale.EN

    def clamped(self, max_page_size: int | None = None) -> "ProductQuery":
        """Return a copy with page >= 1 and page_size in [1, max_page_size]."""
        upper = max_page_size or settings.max_page_size
        return replace(
            self,
            page=max(1, self.page),
            page_size=min(max(1, self.page_size), upper),
        )

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.page_size


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Attributes:
        items: List of items.
        total: Total count.
        page: Current page.
        page_size: Items per page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.page_size - 1) // self.page_size


# ============================================================================
# Predicates
# ============================================================================


def subtree_clause(category_id: int) -> ColumnElement[bool]:
    """Match products in a category, its children and its grandchildren.

    Expansion is fixed at two levels, the maximum tree depth below a root.
    """
    children = select(Category.id).where(Category.parent_id == category_id)
    grandchildren = select(Category.id).where(Category.parent_id.in_(children))
    return or_(
        Product.category_id == category_id,
        Product.category_id.in_(children),
        Product.category_id.in_(grandchildren),
    )


def sku_clause(term: str) -> ColumnElement[bool]:
    """Case-insensitive partial match on product or variant SKUs."""
    raw = term.strip()
    variant_hits = select(ProductVariant.product_id).where(
        ProductVariant.sku.icontains(raw, autoescape=True)
    )
    return or_(
        Product.sku.icontains(raw, autoescape=True),
        Product.id.in_(variant_hits),
    )


# ============================================================================
# Query Builder
# ============================================================================


class QueryBuilder:
    """Builds and runs product listing queries.

    Example usage:
        builder = QueryBuilder(session)
        result = await builder.filter(
            ProductQuery(category_id=3, search="scanner", page=2),
            Audience.PUBLIC,
        )
        result.items, result.total
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize builder with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    def filtered(self, query: ProductQuery, audience: Audience) -> Select:
        """Build the filtered id selection.

        Args:
            query: Filter parameters.
            audience: Public listings only see published products.

        Returns:
            Select of ``id`` and ``relevance`` columns.
        """
        tokens = query_tokens(query.search)

        if tokens:
            rank = TextIndex.rank_subquery(tokens)
            stmt = (
                select(Product.id.label("id"), func.coalesce(rank.c.relevance, 0).label("relevance"))
                .outerjoin(rank, rank.c.product_id == Product.id)
                .where(or_(rank.c.product_id.is_not(None), sku_clause(query.search or "")))
            )
        else:
            stmt = select(Product.id.label("id"), literal(0).label("relevance"))

        if audience is Audience.PUBLIC:
            stmt = stmt.where(Product.is_published.is_(True))
        if query.category_id is not None:
            stmt = stmt.where(subtree_clause(query.category_id))
        if query.type_id is not None:
            stmt = stmt.where(Product.type_id == query.type_id)
        if query.brand_id is not None:
            stmt = stmt.where(Product.brand_id == query.brand_id)
        return stmt

    async def filter(
        self,
        query: ProductQuery,
        audience: Audience = Audience.PUBLIC,
    ) -> PaginatedResult[Product]:
        """Run a product listing query.

        Relevance ordering (relevance desc, then id asc) replaces the
        requested sort only when the search term is non-empty after
        sanitization.

        Args:
            query: Filter parameters (pagination is clamped).
            audience: Who the listing is for.

        Returns:
            Page of products with the total match count.
        """
        query = query.clamped()
        filtered = self.filtered(query, audience).subquery("filtered")

        count_result = await self.session.execute(select(func.count()).select_from(filtered))
        total = count_result.scalar_one()

        stmt = (
            select(Product)
            .join(filtered, filtered.c.id == Product.id)
            .order_by(*self._ordering(query, filtered))
            .offset(query.offset)
            .limit(query.page_size)
        )
        result = await self.session.execute(stmt)

        return PaginatedResult(
            items=list(result.unique().scalars().all()),
            total=total,
            page=query.page,
            page_size=query.page_size,
        )

    async def featured(self, audience: Audience = Audience.PUBLIC) -> list[Product]:
        """Get featured products ordered by ``(featured_order, id)``."""
        stmt = (
            select(Product)
            .where(Product.is_featured.is_(True))
            .order_by(Product.featured_order, Product.id)
        )
        if audience is Audience.PUBLIC:
            stmt = stmt.where(Product.is_published.is_(True))
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def quick_search(self, term: str | None, limit: int | None = None) -> list[Product]:
        """Get the top published matches for a search box.

        Args:
            term: Raw search input.
            limit: Maximum results.

        Returns:
            Ranked products; empty when the sanitized term is empty.
        """
        if not query_tokens(term):
            return []
        limit = limit or settings.quick_search_limit
        filtered = self.filtered(ProductQuery(search=term), Audience.PUBLIC).subquery("filtered")
        stmt = (
            select(Product)
            .join(filtered, filtered.c.id == Product.id)
            .order_by(filtered.c.relevance.desc(), Product.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    @staticmethod
    def _ordering(query: ProductQuery, filtered) -> list[ColumnElement]:
        if query_tokens(query.search):
            return [filtered.c.relevance.desc(), Product.id.asc()]
        if query.sort is SortMode.NAME:
            name = getattr(Product, f"name_{query.locale.value}")
            return [func.lower(name).asc(), Product.id.asc()]
        return [Product.id.desc()]
