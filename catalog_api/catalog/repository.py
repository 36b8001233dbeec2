"""Product repository for database operations.

The product store owns product rows, their variants and related links,
and keeps the derived text index in step with every write: each create
and update re-indexes the product through the same session, so the
record and its index rows commit or roll back together.
"""

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.catalog.models import (
    Brand,
    Category,
    Product,
    ProductRelation,
    ProductType,
    ProductVariant,
)
from catalog_api.catalog.search_index import TextIndex
from catalog_api.domain.exceptions import (
    ConflictError,
    NotFoundError,
    SlugConflictError,
    ValidationError,
)
from catalog_api.domain.value_objects import ProductMode, make_slug

logger = structlog.get_logger()

PRODUCT_FIELDS = (
    "name_en",
    "name_ko",
    "slug",
    "sku",
    "mode",
    "category_id",
    "type_id",
    "brand_id",
    "description_en",
    "description_ko",
    "features_en",
    "features_ko",
    "detail_en",
    "detail_ko",
    "image",
    "is_published",
    "is_featured",
    "featured_order",
)

_REFERENCES: dict[str, type] = {
    "category_id": Category,
    "type_id": ProductType,
    "brand_id": Brand,
}


class ProductRepository:
    """Repository for Product database operations.

    Example usage:
        async with get_session() as session:
            repo = ProductRepository(session)
            product = await repo.create(
                {"name_en": "Slide Scanner", "sku": "SS-100", "category_id": 3},
            )
            same = await repo.get_by_slug("slide-scanner")
    """

    def __init__(self, session: AsyncSession, index: TextIndex | None = None) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
            index: Text index to keep in sync (defaults to one on the same session).
        """
        self.session = session
        self.index = index or TextIndex(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(self, product_id: int) -> Product | None:
        """Get product by ID, with its category, type, brand and variants.

        Args:
            product_id: Product ID.

        Returns:
            Product if found, None otherwise.
        """
        result = await self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_or_raise(self, product_id: int) -> Product:
        """Get product by ID.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def get_by_slug(self, slug: str) -> Product | None:
        """Get product by slug.

        Args:
            slug: Product slug.

        Returns:
            Product if found, None otherwise.
        """
        result = await self.session.execute(
            select(Product)
            .where(Product.slug == slug)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_by_sku(self, sku: str) -> Product | None:
        """Get the oldest product carrying a SKU."""
        result = await self.session.execute(
            select(Product).where(Product.sku == sku).order_by(Product.id).limit(1)
        )
        return result.unique().scalar_one_or_none()

    async def related_ids(self, product_id: int) -> list[int]:
        """Get ids of products linked as related."""
        result = await self.session.execute(
            select(ProductRelation.related_id)
            .where(ProductRelation.product_id == product_id)
            .order_by(ProductRelation.related_id)
        )
        return list(result.scalars().all())

    async def count(
        self,
        is_published: bool | None = None,
        is_featured: bool | None = None,
    ) -> int:
        """Count products matching flags.

        Args:
            is_published: Filter by published flag.
            is_featured: Filter by featured flag.

        Returns:
            Count of matching products.
        """
        query = select(func.count(Product.id))
        if is_published is not None:
            query = query.where(Product.is_published == is_published)
        if is_featured is not None:
            query = query.where(Product.is_featured == is_featured)
        result = await self.session.execute(query)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        values: dict[str, Any],
        variants: Sequence[dict[str, Any]] | None = None,
        related_ids: Sequence[int] | None = None,
    ) -> Product:
        """Create a product and index it.

        Args:
            values: Column values; ``name_en`` is required.
            variants: Variant values (``name_en``, ``name_ko``, ``sku``).
            related_ids: Ids of related products.

        Returns:
            The created product.

        Raises:
            ValidationError: If input is malformed.
            SlugConflictError: If the slug is taken.
        """
        values = self._clean(values)
        if not values.get("name_en"):
            raise ValidationError("name_en is required", field="name_en")

        variant_rows = self._apply_mode(values, variants, existing=None)
        await self._check_references(values)

        values["slug"] = make_slug(values.get("slug") or values["name_en"])
        await self._ensure_slug_free(values["slug"])

        if values.get("is_featured") and values.get("featured_order") is None:
            values["featured_order"] = await self._next_featured_order()
        values = {k: v for k, v in values.items() if v is not None or k in _REFERENCES}

        product = Product(**values)
        self.set_variants(product, variant_rows or [])
        self.session.add(product)
        await self._flush()

        if related_ids:
            await self.set_related(product.id, related_ids)
        await self.index.reindex(product)

        logger.info(
            "Product created",
            product_id=product.id,
            slug=product.slug,
            sku=product.sku,
        )
        return product

    async def update(
        self,
        product_id: int,
        values: dict[str, Any],
        variants: Sequence[dict[str, Any]] | None = None,
        related_ids: Sequence[int] | None = None,
    ) -> Product:
        """Apply a partial update and re-index the product.

        The slug is re-derived when ``name_en`` changes, unless a slug is
        given explicitly.

        Args:
            product_id: Product to update.
            values: Columns to change.
            variants: Replacement variants, or None to keep the current ones.
            related_ids: Replacement related ids, or None to keep them.

        Returns:
            The updated product.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: If input is malformed.
            SlugConflictError: If the new slug is taken.
        """
        product = await self.get_or_raise(product_id)
        values = self._clean(values)
        # null on a required column means "leave unchanged"
        values = {
            k: v
            for k, v in values.items()
            if v is not None or k in _REFERENCES or k in _NULLABLE_TEXT
        }

        if "name_en" in values and not values["name_en"]:
            raise ValidationError("name_en cannot be empty", field="name_en")

        variant_rows = self._apply_mode(values, variants, existing=product)
        await self._check_references(values)

        if values.get("slug"):
            values["slug"] = make_slug(values["slug"])
        elif values.get("name_en") and values["name_en"] != product.name_en:
            values["slug"] = make_slug(values["name_en"])
        else:
            values.pop("slug", None)
        if "slug" in values and values["slug"] != product.slug:
            await self._ensure_slug_free(values["slug"], exclude_id=product.id)

        becomes_featured = values.get("is_featured") and not product.is_featured
        if becomes_featured and values.get("featured_order") is None:
            values["featured_order"] = await self._next_featured_order()

        for key, value in values.items():
            setattr(product, key, value)

        if variant_rows is not None:
            self.set_variants(product, variant_rows)
        await self._flush()

        if related_ids is not None:
            await self.set_related(product.id, related_ids)
        await self.index.reindex(product)

        logger.info(
            "Product updated",
            product_id=product.id,
            fields=sorted(values),
        )
        return product

    async def delete(self, product_id: int) -> None:
        """Delete a product together with its index rows and links.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.get_or_raise(product_id)

        await self.index.remove(product_id)
        await self.session.execute(
            delete(ProductRelation).where(
                or_(
                    ProductRelation.product_id == product_id,
                    ProductRelation.related_id == product_id,
                )
            )
        )
        await self.session.delete(product)
        await self.session.flush()

        logger.info("Product deleted", product_id=product_id)

    @staticmethod
    def set_variants(product: Product, rows: Sequence[dict[str, Any]]) -> None:
        """Replace a product's variants, keeping the given order.

        Variants dropped from the collection are deleted on flush.
        """
        product.variants = [
            ProductVariant(
                name_en=row["name_en"],
                name_ko=row.get("name_ko") or "",
                sku=row["sku"],
                sort_order=i,
            )
            for i, row in enumerate(rows)
        ]

    async def set_related(self, product_id: int, related_ids: Sequence[int]) -> None:
        """Replace the related-product links of a product.

        Raises:
            ValidationError: If a related id does not exist.
        """
        wanted = [rid for rid in dict.fromkeys(related_ids) if rid != product_id]
        if wanted:
            result = await self.session.execute(select(Product.id).where(Product.id.in_(wanted)))
            missing = sorted(set(wanted) - set(result.scalars().all()))
            if missing:
                raise ValidationError(
                    f"Related products do not exist: {missing}",
                    field="related_ids",
                    details={"missing_ids": missing},
                )

        await self.session.execute(
            delete(ProductRelation).where(ProductRelation.product_id == product_id)
        )
        if wanted:
            await self.session.execute(
                insert(ProductRelation),
                [{"product_id": product_id, "related_id": rid} for rid in wanted],
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clean(self, values: dict[str, Any]) -> dict[str, Any]:
        unknown = set(values) - set(PRODUCT_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown product fields: {sorted(unknown)}",
                details={"fields": sorted(unknown)},
            )
        cleaned = dict(values)
        for key in _REFERENCES:
            # 0 and "" mean "unassigned"
            if key in cleaned and not cleaned[key]:
                cleaned[key] = None
        if "name_ko" in cleaned and cleaned["name_ko"] is None:
            cleaned["name_ko"] = ""
        return cleaned

    def _apply_mode(
        self,
        values: dict[str, Any],
        variants: Sequence[dict[str, Any]] | None,
        existing: Product | None,
    ) -> list[dict[str, Any]] | None:
        """Enforce simple/variable rules and derive the product SKU.

        Returns:
            Variant rows to store, or None to leave variants untouched.
        """
        raw_mode = values.get("mode") or (existing.mode if existing else ProductMode.SIMPLE.value)
        try:
            mode = ProductMode(raw_mode)
        except ValueError as e:
            raise ValidationError(f"Invalid product mode: {raw_mode}", field="mode") from e
        values["mode"] = mode.value

        rows = None
        if variants is not None:
            rows = [
                {
                    "name_en": v["name_en"],
                    "name_ko": v.get("name_ko") or "",
                    "sku": v["sku"],
                }
                for v in variants
                if v.get("name_en") and v.get("sku")
            ]

        if mode is ProductMode.SIMPLE:
            if rows:
                raise ValidationError(
                    "simple products cannot include variants",
                    field="variants",
                )
            sku = values.get("sku") if "sku" in values else (existing.sku if existing else None)
            if not sku:
                raise ValidationError("sku is required for simple products", field="sku")
            if existing is not None and existing.variants:
                rows = []
            return rows

        effective = rows
        if effective is None and existing is not None:
            effective = [{"sku": v.sku} for v in existing.variants]
        if not effective:
            raise ValidationError(
                "variable products must include at least one variant",
                field="variants",
            )
        values["sku"] = effective[0]["sku"]
        return rows

    async def _check_references(self, values: dict[str, Any]) -> None:
        for key, model in _REFERENCES.items():
            ref = values.get(key)
            if ref is not None and await self.session.get(model, ref) is None:
                raise ValidationError(
                    f"{model.__name__} does not exist: {ref}",
                    field=key,
                    details={key: ref},
                )

    async def _ensure_slug_free(self, slug: str, exclude_id: int | None = None) -> None:
        query = select(Product.id).where(Product.slug == slug)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        result = await self.session.execute(query)
        if result.first() is not None:
            raise SlugConflictError("Product", slug)

    async def _next_featured_order(self) -> int:
        result = await self.session.execute(
            select(func.max(Product.featured_order)).where(Product.is_featured.is_(True))
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def _flush(self) -> None:
        """Flush, turning unique violations from concurrent writers into conflicts."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(
                "Product write conflicts with an existing record",
                details={"error": str(e.orig)},
            ) from e


# Text columns a caller may clear explicitly
_NULLABLE_TEXT = {
    "description_en",
    "description_ko",
    "features_en",
    "features_ko",
    "detail_en",
    "detail_ko",
    "image",
}
