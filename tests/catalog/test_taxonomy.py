"""Tests for the category tree and facet stores."""

import pytest

from catalog_api.catalog.models import Category, ProductType
from catalog_api.catalog.service import CatalogService
from catalog_api.catalog.taxonomy import FacetStore, flatten_categories
from catalog_api.domain.exceptions import (
    CategoryDepthError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def _category(id: int, name: str, parent_id: int | None = None, sort_order: int = 0) -> Category:
    return Category(
        id=id,
        name_en=name,
        name_ko="",
        slug=name.lower(),
        parent_id=parent_id,
        sort_order=sort_order,
    )


class TestFlattenCategories:
    """Tests for depth-first flattening."""

    def test_children_follow_their_parent(self) -> None:
        """Roots A then B, with C under A, flatten to [A, C, B]."""
        a = _category(1, "A", sort_order=0)
        b = _category(2, "B", sort_order=1)
        c = _category(3, "C", parent_id=1)

        entries = flatten_categories([b, c, a])

        assert [e.category.slug for e in entries] == ["a", "c", "b"]
        assert [e.depth for e in entries] == [1, 2, 1]
        assert entries[1].parent_name.en == "A"

    def test_ties_broken_by_id(self) -> None:
        """Equal sort orders keep insertion order."""
        entries = flatten_categories(
            [_category(5, "Late"), _category(2, "Early"), _category(9, "Last")]
        )
        assert [e.category.id for e in entries] == [2, 5, 9]

    def test_orphans_listed_last_with_subtree(self) -> None:
        """Categories whose parent is gone come after every rooted category."""
        root = _category(1, "Root", sort_order=5)
        orphan = _category(2, "Orphan", parent_id=99, sort_order=0)
        orphan_child = _category(3, "Child", parent_id=2)

        entries = flatten_categories([orphan_child, orphan, root])

        assert [e.category.id for e in entries] == [1, 2, 3]
        assert entries[1].is_orphan is True
        assert entries[1].depth == 1
        assert entries[2].is_orphan is False
        assert entries[2].depth == 2

    def test_every_category_appears_once(self) -> None:
        """A parent loop still renders each category exactly once."""
        first = _category(1, "First", parent_id=2)
        second = _category(2, "Second", parent_id=1)
        root = _category(3, "Root")

        entries = flatten_categories([first, second, root])

        assert sorted(e.category.id for e in entries) == [1, 2, 3]
        assert entries[0].category.id == 3


class TestCategoryStore:
    """Tests for category writes."""

    @pytest.mark.asyncio
    async def test_slug_derived_from_name(self, make_category) -> None:
        """Slug is derived from the English name."""
        category = await make_category("Digital Pathology")
        assert category.slug == "digital-pathology"

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, make_category) -> None:
        """Two categories with the same derived slug conflict."""
        await make_category("Staining")
        with pytest.raises(ConflictError):
            await make_category("staining")

    @pytest.mark.asyncio
    async def test_depth_limited_to_three_levels(self, make_category) -> None:
        """A fourth level is rejected."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)
        grandchild = await make_category("Grandchild", parent_id=child.id)

        with pytest.raises(CategoryDepthError) as exc_info:
            await make_category("Too Deep", parent_id=grandchild.id)

        assert exc_info.value.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_moving_subtree_respects_depth(
        self, service: CatalogService, make_category
    ) -> None:
        """Moving a category with children under a child would exceed depth."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)
        other = await make_category("Other")
        await make_category("Other Child", parent_id=other.id)

        with pytest.raises(CategoryDepthError):
            await service.update_taxonomy("categories", other.id, {"parent_id": child.id})

    @pytest.mark.asyncio
    async def test_cannot_become_own_ancestor(
        self, service: CatalogService, make_category
    ) -> None:
        """A category cannot be moved under its own descendant."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)

        with pytest.raises(ValidationError):
            await service.update_taxonomy("categories", root.id, {"parent_id": child.id})

    @pytest.mark.asyncio
    async def test_unknown_parent_rejected(self, make_category) -> None:
        """Parent must exist."""
        with pytest.raises(ValidationError):
            await make_category("Lost", parent_id=404)

    @pytest.mark.asyncio
    async def test_sort_order_defaults_to_end_of_siblings(self, make_category) -> None:
        """New categories go to the end of their sibling group."""
        root = await make_category("Root")
        first = await make_category("First", parent_id=root.id)
        second = await make_category("Second", parent_id=root.id)
        other_root = await make_category("Other Root")

        assert first.sort_order == 0
        assert second.sort_order == 1
        assert other_root.sort_order == root.sort_order + 1

    @pytest.mark.asyncio
    async def test_rename_rederives_slug(self, service: CatalogService, make_category) -> None:
        """Changing the English name changes the slug."""
        category = await make_category("Old Name")
        updated = await service.update_taxonomy("categories", category.id, {"name_en": "New Name"})
        assert updated.slug == "new-name"

    @pytest.mark.asyncio
    async def test_deleted_id_not_reused(self, service: CatalogService, make_category) -> None:
        """A new category never takes the id of a deleted parent."""
        child = await make_category("Child")
        parent = await make_category("Parent")
        await service.update_taxonomy("categories", child.id, {"parent_id": parent.id})
        await service.delete_taxonomy("categories", parent.id)

        newcomer = await make_category("Newcomer")

        assert newcomer.id != parent.id
        entries = await service.list_categories()
        orphan = next(e for e in entries if e.category.id == child.id)
        assert orphan.is_orphan is True
        assert orphan.depth == 1

    @pytest.mark.asyncio
    async def test_update_missing_category(self, service: CatalogService) -> None:
        """Updating a missing id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.update_taxonomy("categories", 12345, {"name_en": "Nope"})

    @pytest.mark.asyncio
    async def test_delete_detaches_products_and_orphans_children(
        self, service: CatalogService, make_category, make_product
    ) -> None:
        """Deleting a parent keeps its products and children."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)
        product = await make_product("Scanner", "SC-1", category_id=root.id)

        detached = await service.delete_taxonomy("categories", root.id)

        assert detached == 1
        reloaded = await service.get_product(product.id)
        assert reloaded.category_id is None

        entries = await service.list_categories()
        assert [e.category.id for e in entries] == [child.id]
        assert entries[0].is_orphan is True
        assert entries[0].category.parent_id == root.id


class TestFacetStore:
    """Tests for flat facets."""

    @pytest.mark.asyncio
    async def test_list_ordered_by_sort_order_then_id(self, service: CatalogService) -> None:
        """Facets list by (sort_order, id)."""
        await service.create_taxonomy("types", {"name_en": "Reagents", "sort_order": 2})
        await service.create_taxonomy("types", {"name_en": "Instruments", "sort_order": 0})
        await service.create_taxonomy("types", {"name_en": "Consumables", "sort_order": 0})

        types = await service.list_facet("types")

        assert [t.slug for t in types] == ["instruments", "consumables", "reagents"]

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, service: CatalogService) -> None:
        """Columns outside the facet are rejected."""
        with pytest.raises(ValidationError):
            await service.create_taxonomy("types", {"name_en": "X", "logo": "x.png"})

    @pytest.mark.asyncio
    async def test_unique_violation_on_flush_is_conflict(
        self, service: CatalogService, monkeypatch
    ) -> None:
        """A slug taken between the check and the write still maps to a conflict."""

        async def _slug_check_passes(self, slug, exclude_id=None) -> None:
            return None

        await service.create_taxonomy("brands", {"name_en": "Epredia"})
        monkeypatch.setattr(FacetStore, "_ensure_slug_free", _slug_check_passes)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_taxonomy("brands", {"name_en": "Epredia"})

        assert exc_info.value.error_code == "CONFLICT"
        assert [b.slug for b in await service.list_facet("brands")] == ["epredia"]

    @pytest.mark.asyncio
    async def test_resolve_ref(self, session, service: CatalogService) -> None:
        """Refs resolve ids, numeric strings and slugs."""
        brand = await service.create_taxonomy("brands", {"name_en": "Epredia"})
        store = FacetStore(session, ProductType)
        brands = service.taxonomy.brands

        assert await brands.resolve_ref("epredia") == brand.id
        assert await brands.resolve_ref(str(brand.id)) == brand.id
        assert await brands.resolve_ref("missing") == -1
        assert await store.resolve_ref(None) is None
        assert await store.resolve_ref("") is None
