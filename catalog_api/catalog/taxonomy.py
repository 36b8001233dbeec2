"""Taxonomy store: category tree and flat facets.

Categories form a tree of at most three levels stored in a flat table:

    Slide Scanners                  (root, depth 1)
    Slide Scanners > Brightfield    (child, depth 2)
    Slide Scanners > Brightfield > Whole Slide   (grandchild, depth 3)

Parent links are lookups, never ownership: deleting a parent leaves its
children in place, and the ordered listing renders them after everything
else. Types and brands are flat facets with their own ``sort_order``.
"""

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.catalog.models import Brand, Category, Product, ProductType
from catalog_api.domain.exceptions import (
    CategoryDepthError,
    ConflictError,
    NotFoundError,
    SlugConflictError,
    ValidationError,
)
from catalog_api.domain.value_objects import LocalizedText, make_slug

logger = structlog.get_logger()

MAX_CATEGORY_DEPTH = 3


# ============================================================================
# Flattened Listing
# ============================================================================


@dataclass
class CategoryEntry:
    """A category positioned in the flattened tree.

    Attributes:
        category: The category row.
        depth: Level in the tree (1 = root or orphan).
        is_orphan: Whether the parent no longer exists.
        parent_name: Name of the resolved parent, if any.
    """

    category: Category
    depth: int = 1
    is_orphan: bool = False
    parent_name: LocalizedText | None = None


def _order_key(category: Category) -> tuple[int, int]:
    return (category.sort_order, category.id)


def flatten_categories(categories: Sequence[Category]) -> list[CategoryEntry]:
    """Flatten categories depth-first.

    Each root is followed by its children, each child by its own children;
    every level is ordered by ``(sort_order, id)``. Categories whose parent
    does not resolve are appended at the end, ordered among themselves and
    followed by their own subtrees.

    Args:
        categories: All category rows.

    Returns:
        Every category exactly once, in display order.
    """
    by_id = {c.id: c for c in categories}
    children: dict[int | None, list[Category]] = defaultdict(list)
    for category in categories:
        children[category.parent_id].append(category)
    for group in children.values():
        group.sort(key=_order_key)

    entries: list[CategoryEntry] = []
    visited: set[int] = set()

    def visit(node: Category, depth: int, is_orphan: bool) -> None:
        if node.id in visited:
            return
        visited.add(node.id)
        parent = by_id.get(node.parent_id) if node.parent_id is not None else None
        entries.append(
            CategoryEntry(
                category=node,
                depth=depth,
                is_orphan=is_orphan,
                parent_name=parent.name if parent else None,
            )
        )
        for child in children.get(node.id, []):
            visit(child, depth + 1, False)

    for root in children.get(None, []):
        visit(root, 1, False)

    orphans = sorted(
        (c for c in categories if c.parent_id is not None and c.parent_id not in by_id),
        key=_order_key,
    )
    for orphan in orphans:
        visit(orphan, 1, True)

    # Parent chains that loop never reach a root; render them last as well
    for category in sorted(categories, key=_order_key):
        visit(category, 1, True)

    return entries


# ============================================================================
# Facet Store
# ============================================================================


class FacetStore:
    """Store for a flat, slugged, orderable facet table (types, brands).

    Example usage:
        async with get_session() as session:
            types = FacetStore(session, ProductType)
            microscope = await types.create({"name_en": "Microscope"})
            ordered = await types.list_ordered()
    """

    #: Columns a caller may write
    fields: ClassVar[dict[type, tuple[str, ...]]] = {
        ProductType: ("name_en", "name_ko", "slug", "sort_order"),
        Brand: (
            "name_en",
            "name_ko",
            "slug",
            "logo",
            "website",
            "description_en",
            "description_ko",
            "is_featured",
            "sort_order",
        ),
        Category: ("name_en", "name_ko", "slug", "parent_id", "sort_order"),
    }

    #: Product column referencing each facet
    product_columns: ClassVar[dict[type, str]] = {
        ProductType: "type_id",
        Brand: "brand_id",
        Category: "category_id",
    }

    def __init__(self, session: AsyncSession, model: type) -> None:
        """Initialize store.

        Args:
            session: Async SQLAlchemy session.
            model: Mapped facet class.
        """
        self.session = session
        self.model = model

    @property
    def entity_name(self) -> str:
        """Human-readable entity name for errors."""
        return self.model.__name__

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entity_id: int) -> Any | None:
        """Get entity by ID."""
        return await self.session.get(self.model, entity_id)

    async def get_or_raise(self, entity_id: int) -> Any:
        """Get entity by ID.

        Raises:
            NotFoundError: If the entity does not exist.
        """
        entity = await self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    async def get_by_slug(self, slug: str) -> Any | None:
        """Get entity by slug."""
        result = await self.session.execute(select(self.model).where(self.model.slug == slug))
        return result.scalar_one_or_none()

    async def resolve_ref(self, ref: str | int | None) -> int | None:
        """Resolve a numeric id or slug to an id.

        An unknown slug resolves to -1 so that a filter on it matches
        nothing instead of being dropped.

        Args:
            ref: Id, numeric string, slug or None.

        Returns:
            Entity id, -1 for unknown slugs, None when no ref was given.
        """
        if ref is None or ref == "":
            return None
        if isinstance(ref, int):
            return ref
        if ref.isdigit():
            return int(ref)
        entity = await self.get_by_slug(ref)
        return entity.id if entity else -1

    async def list_ordered(self) -> list[Any]:
        """List entities ordered by ``(sort_order, id)``."""
        result = await self.session.execute(
            select(self.model).order_by(self.model.sort_order, self.model.id)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count entities."""
        result = await self.session.execute(select(func.count(self.model.id)))
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, values: dict[str, Any]) -> Any:
        """Create an entity.

        Args:
            values: Column values; ``name_en`` is required. ``slug`` is
                derived from ``name_en`` unless given. ``sort_order``
                defaults to the end of the sibling group.

        Returns:
            Flushed entity.

        Raises:
            ValidationError: If input is malformed.
            SlugConflictError: If the slug is taken.
        """
        values = self._clean(values)
        if not values.get("name_en"):
            raise ValidationError("name_en is required", field="name_en")

        values["slug"] = make_slug(values.get("slug") or values["name_en"])
        await self._ensure_slug_free(values["slug"])
        await self._validate(None, values)

        if values.get("sort_order") is None:
            values["sort_order"] = await self._next_sort_order(values)

        entity = self.model(**values)
        self.session.add(entity)
        await self._flush()

        logger.info(
            f"{self.entity_name} created",
            entity_id=entity.id,
            slug=entity.slug,
        )
        return entity

    async def update(self, entity_id: int, values: dict[str, Any]) -> Any:
        """Apply a partial update.

        The slug is re-derived when ``name_en`` changes, unless a slug is
        given explicitly.

        Args:
            entity_id: Entity to update.
            values: Columns to change.

        Returns:
            Updated entity.

        Raises:
            NotFoundError: If the entity does not exist.
            ValidationError: If input is malformed.
            SlugConflictError: If the new slug is taken.
        """
        entity = await self.get_or_raise(entity_id)
        values = self._clean(values)

        if "name_en" in values and not values["name_en"]:
            raise ValidationError("name_en cannot be empty", field="name_en")

        if values.get("slug"):
            values["slug"] = make_slug(values["slug"])
        elif values.get("name_en") and values["name_en"] != entity.name_en:
            values["slug"] = make_slug(values["name_en"])
        else:
            values.pop("slug", None)

        if "slug" in values and values["slug"] != entity.slug:
            await self._ensure_slug_free(values["slug"], exclude_id=entity.id)

        await self._validate(entity, values)

        # null on a required column means "leave unchanged"
        columns = self.model.__table__.c
        values = {k: v for k, v in values.items() if v is not None or columns[k].nullable}

        for key, value in values.items():
            setattr(entity, key, value)
        await self._flush()

        logger.info(
            f"{self.entity_name} updated",
            entity_id=entity.id,
            fields=sorted(values),
        )
        return entity

    async def delete(self, entity_id: int) -> int:
        """Delete an entity, detaching the products that reference it.

        Products are never deleted: their reference is set to null.

        Args:
            entity_id: Entity to delete.

        Returns:
            Number of products detached.

        Raises:
            NotFoundError: If the entity does not exist.
        """
        entity = await self.get_or_raise(entity_id)
        column = getattr(Product, self.product_columns[self.model])

        result = await self.session.execute(
            update(Product)
            .where(column == entity_id)
            .values({column.key: None})
            .execution_options(synchronize_session="fetch")
        )
        await self.session.delete(entity)
        await self.session.flush()

        logger.info(
            f"{self.entity_name} deleted",
            entity_id=entity_id,
            products_detached=result.rowcount,
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clean(self, values: dict[str, Any]) -> dict[str, Any]:
        allowed = self.fields[self.model]
        unknown = set(values) - set(allowed)
        if unknown:
            raise ValidationError(
                f"Unknown fields for {self.entity_name}: {sorted(unknown)}",
                details={"fields": sorted(unknown)},
            )
        cleaned = dict(values)
        if "name_ko" in cleaned and cleaned["name_ko"] is None:
            cleaned["name_ko"] = ""
        return cleaned

    async def _ensure_slug_free(self, slug: str, exclude_id: int | None = None) -> None:
        query = select(self.model.id).where(self.model.slug == slug)
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        result = await self.session.execute(query)
        if result.first() is not None:
            raise SlugConflictError(self.entity_name, slug)

    async def _flush(self) -> None:
        """Flush, turning unique violations from concurrent writers into conflicts."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"{self.entity_name} write conflicts with an existing record",
                details={"error": str(e.orig)},
            ) from e

    async def _validate(self, entity: Any | None, values: dict[str, Any]) -> None:
        """Hook for entity-specific invariants."""
        return None

    async def _next_sort_order(self, values: dict[str, Any]) -> int:
        result = await self.session.execute(select(func.max(self.model.sort_order)))
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1


# ============================================================================
# Category Store
# ============================================================================


class CategoryStore(FacetStore):
    """Store for the category tree.

    Enforces the depth invariant on every write: a category's depth plus
    the height of its own subtree never exceeds three levels.

    Example usage:
        categories = CategoryStore(session)
        root = await categories.create({"name_en": "Scanners"})
        child = await categories.create({"name_en": "Brightfield", "parent_id": root.id})
        entries = await categories.list_ordered()
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize store with database session."""
        super().__init__(session, Category)

    async def list_ordered(self) -> list[CategoryEntry]:  # type: ignore[override]
        """List categories flattened depth-first (see :func:`flatten_categories`)."""
        result = await self.session.execute(select(Category))
        return flatten_categories(list(result.scalars().all()))

    async def update(self, entity_id: int, values: dict[str, Any]) -> Category:
        """Apply a partial update.

        A category moved to another parent without an explicit
        ``sort_order`` goes to the end of its new sibling group.
        """
        if "parent_id" in values and values.get("sort_order") is None:
            entity = await self.get_or_raise(entity_id)
            if values["parent_id"] != entity.parent_id:
                values = {**values, "sort_order": await self._next_sort_order(values)}
        return await super().update(entity_id, values)

    async def entry_for(self, category: Category) -> CategoryEntry:
        """Position a single category in the tree."""
        parent = (
            await self.session.get(Category, category.parent_id)
            if category.parent_id is not None
            else None
        )
        is_orphan = category.parent_id is not None and parent is None
        return CategoryEntry(
            category=category,
            depth=1 if is_orphan else await self.depth_of(category.id),
            is_orphan=is_orphan,
            parent_name=parent.name if parent else None,
        )

    async def depth_of(self, category_id: int) -> int:
        """Count the resolvable levels from a category up to its top ancestor.

        Args:
            category_id: Category to measure.

        Returns:
            1 for a root, 2 for a child, 3 for a grandchild.
        """
        depth = 0
        seen: set[int] = set()
        current_id: int | None = category_id
        while current_id is not None and current_id not in seen:
            seen.add(current_id)
            category = await self.session.get(Category, current_id)
            if category is None:
                break
            depth += 1
            current_id = category.parent_id
        return depth

    async def ancestor_ids(self, category_id: int) -> list[int]:
        """Ids from a category up through its resolvable ancestors."""
        ids: list[int] = []
        current_id: int | None = category_id
        while current_id is not None and current_id not in ids:
            category = await self.session.get(Category, current_id)
            if category is None:
                break
            ids.append(current_id)
            current_id = category.parent_id
        return ids

    async def child_ids(self, parent_ids: Sequence[int]) -> list[int]:
        """Ids of the direct children of the given categories."""
        if not parent_ids:
            return []
        result = await self.session.execute(
            select(Category.id).where(Category.parent_id.in_(parent_ids))
        )
        return list(result.scalars().all())

    async def height_of(self, category_id: int) -> int:
        """Number of levels below a category (0 for a leaf)."""
        children = await self.child_ids([category_id])
        if not children:
            return 0
        grandchildren = await self.child_ids(children)
        return 2 if grandchildren else 1

    async def _validate(self, entity: Category | None, values: dict[str, Any]) -> None:
        if "parent_id" not in values:
            return
        parent_id = values["parent_id"]
        if parent_id is None:
            return
        if entity is not None and parent_id == entity.parent_id:
            return

        parent = await self.session.get(Category, parent_id)
        if parent is None:
            raise ValidationError(
                f"Parent category does not exist: {parent_id}",
                field="parent_id",
                details={"parent_id": parent_id},
            )

        height = 0
        if entity is not None:
            if entity.id in await self.ancestor_ids(parent_id):
                raise ValidationError(
                    f"Category {entity.id} cannot be moved under its own subtree",
                    field="parent_id",
                    details={"category_id": entity.id, "parent_id": parent_id},
                )
            height = await self.height_of(entity.id)

        if await self.depth_of(parent_id) + 1 + height > MAX_CATEGORY_DEPTH:
            raise CategoryDepthError(parent_id, MAX_CATEGORY_DEPTH)

    async def _next_sort_order(self, values: dict[str, Any]) -> int:
        parent_id = values.get("parent_id")
        condition = (
            Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
        )
        result = await self.session.execute(
            select(func.max(Category.sort_order)).where(condition)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1


# ============================================================================
# Aggregate
# ============================================================================


class TaxonomyStore:
    """All taxonomy tables behind one session.

    Attributes:
        categories: Category tree store.
        types: Type facet store.
        brands: Brand facet store.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize stores with database session."""
        self.categories = CategoryStore(session)
        self.types = FacetStore(session, ProductType)
        self.brands = FacetStore(session, Brand)
