"""Tests for product writes."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from catalog_api.catalog.models import Product, ProductRelation, SearchToken
from catalog_api.catalog.repository import ProductRepository
from catalog_api.catalog.search_index import TextIndex
from catalog_api.catalog.service import CatalogService
from catalog_api.domain.exceptions import (
    ConflictError,
    NotFoundError,
    SlugConflictError,
    ValidationError,
)
from catalog_api.domain.value_objects import Audience


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestSlugs:
    """Tests for product slugs."""

    @pytest.mark.asyncio
    async def test_slug_derived_from_name(self, make_product) -> None:
        """The slug comes from the English name."""
        product = await make_product("Whole Slide Scanner", "WSS-1")
        assert product.slug == "whole-slide-scanner"

    @pytest.mark.asyncio
    async def test_same_name_conflicts(self, make_product) -> None:
        """Names deriving the same slug conflict."""
        await make_product("Microtome", "M-1")
        with pytest.raises(SlugConflictError) as exc_info:
            await make_product("microtome", "M-2")

        assert isinstance(exc_info.value, ConflictError)
        assert exc_info.value.error_code == "CONFLICT"

    @pytest.mark.asyncio
    async def test_explicit_slug_checked(self, make_product) -> None:
        """An explicit slug that is taken also conflicts."""
        await make_product("Microtome", "M-1")
        with pytest.raises(SlugConflictError):
            await make_product("Rotary Microtome", "M-2", slug="microtome")

    @pytest.mark.asyncio
    async def test_rename_rederives_slug(self, service: CatalogService, make_product) -> None:
        """Changing the English name changes the slug."""
        product = await make_product("Old Name", "O-1")
        updated = await service.update_product(product.id, {"name_en": "New Name"})
        assert updated.slug == "new-name"

    @pytest.mark.asyncio
    async def test_rename_onto_taken_slug(self, service: CatalogService, make_product) -> None:
        """Renaming onto another product's slug conflicts and changes nothing."""
        await make_product("Taken", "T-1")
        product = await make_product("Free", "F-1")

        with pytest.raises(SlugConflictError):
            await service.update_product(product.id, {"name_en": "Taken"})

        reloaded = await service.get_product(product.id)
        assert reloaded.name_en == "Free"


class TestModes:
    """Tests for simple and variable products."""

    @pytest.mark.asyncio
    async def test_simple_requires_sku(self, service: CatalogService) -> None:
        """Simple products need a SKU."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_product({"name_en": "No SKU"})

        assert exc_info.value.field == "sku"

    @pytest.mark.asyncio
    async def test_simple_rejects_variants(self, service: CatalogService) -> None:
        """Simple products cannot carry variants."""
        with pytest.raises(ValidationError):
            await service.create_product(
                {"name_en": "Simple", "sku": "S-1"},
                variants=[{"name_en": "One", "sku": "S-1-A"}],
            )

    @pytest.mark.asyncio
    async def test_variable_requires_variants(self, service: CatalogService) -> None:
        """Variable products need at least one complete variant."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_product(
                {"name_en": "Variable", "mode": "variable"},
                variants=[{"name_en": "Nameless SKU", "sku": ""}],
            )

        assert exc_info.value.field == "variants"

    @pytest.mark.asyncio
    async def test_variable_sku_is_first_variant(self, service: CatalogService) -> None:
        """The product SKU mirrors its first variant, and variant order is kept."""
        product = await service.create_product(
            {"name_en": "Blade Pack", "mode": "variable", "sku": "IGNORED"},
            variants=[
                {"name_en": "Low Profile", "sku": "BL-LOW"},
                {"name_en": "High Profile", "name_ko": "하이", "sku": "BL-HIGH"},
            ],
        )

        assert product.sku == "BL-LOW"
        assert [v.sku for v in product.variants] == ["BL-LOW", "BL-HIGH"]
        assert product.variants[1].name_ko == "하이"

    @pytest.mark.asyncio
    async def test_switch_to_simple_clears_variants(self, service: CatalogService) -> None:
        """Turning a variable product simple drops its variants."""
        product = await service.create_product(
            {"name_en": "Blade Pack", "mode": "variable"},
            variants=[{"name_en": "Low", "sku": "BL-LOW"}],
        )

        updated = await service.update_product(product.id, {"mode": "simple", "sku": "BL"})

        assert updated.mode == "simple"
        assert updated.sku == "BL"
        assert updated.variants == []

    @pytest.mark.asyncio
    async def test_invalid_mode(self, service: CatalogService) -> None:
        """Unknown modes are rejected."""
        with pytest.raises(ValidationError):
            await service.create_product({"name_en": "Odd", "sku": "O-1", "mode": "bundle"})


class TestWrites:
    """Tests for field handling on create and update."""

    @pytest.mark.asyncio
    async def test_unknown_field(self, service: CatalogService) -> None:
        """Columns outside the product are rejected."""
        with pytest.raises(ValidationError):
            await service.create_product({"name_en": "X", "sku": "X-1", "price": 10})

    @pytest.mark.asyncio
    async def test_name_required(self, service: CatalogService) -> None:
        """The English name is required."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_product({"name_en": "", "sku": "X-1"})

        assert exc_info.value.field == "name_en"

    @pytest.mark.asyncio
    async def test_missing_reference(self, service: CatalogService) -> None:
        """References must point to existing taxonomy rows."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_product({"name_en": "X", "sku": "X-1", "brand_id": 404})

        assert exc_info.value.field == "brand_id"

    @pytest.mark.asyncio
    async def test_null_required_field_left_unchanged(
        self, service: CatalogService, make_product
    ) -> None:
        """Null on a required column keeps the current value."""
        product = await make_product("Scanner", "SC-1")

        updated = await service.update_product(product.id, {"sku": None, "name_en": None})

        assert updated.sku == "SC-1"
        assert updated.name_en == "Scanner"

    @pytest.mark.asyncio
    async def test_null_clears_optional_fields(
        self, service: CatalogService, make_category, make_product
    ) -> None:
        """Null clears nullable text and references."""
        category = await make_category("Scanners")
        product = await make_product(
            "Scanner", "SC-1", category_id=category.id, description_en="Fast"
        )

        updated = await service.update_product(
            product.id, {"category_id": None, "description_en": None}
        )

        assert updated.category_id is None
        assert updated.description_en is None

    @pytest.mark.asyncio
    async def test_featured_appended(self, service: CatalogService, make_product) -> None:
        """A product becoming featured goes to the end of the featured list."""
        await make_product("First", "F-1", is_featured=True)
        product = await make_product("Later", "L-1")

        updated = await service.update_product(product.id, {"is_featured": True})

        assert updated.featured_order == 1

    @pytest.mark.asyncio
    async def test_update_missing(self, service: CatalogService) -> None:
        """Updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.update_product(404, {"name_en": "X"})


class TestRelated:
    """Tests for related product links."""

    @pytest.mark.asyncio
    async def test_related_ids_deduped_and_self_dropped(
        self, service: CatalogService, make_product
    ) -> None:
        """Links are distinct and never point to the product itself."""
        a = await make_product("A", "A-1")
        b = await make_product("B", "B-1")
        c = await make_product("C", "C-1")

        await service.update_product(a.id, {}, related_ids=[c.id, b.id, c.id, a.id])

        assert await service.related_ids(a.id) == [b.id, c.id]

    @pytest.mark.asyncio
    async def test_missing_related_id(self, service: CatalogService, make_product) -> None:
        """Unknown related ids are rejected."""
        a = await make_product("A", "A-1")
        with pytest.raises(ValidationError) as exc_info:
            await service.update_product(a.id, {}, related_ids=[999])

        assert exc_info.value.details["missing_ids"] == [999]

    @pytest.mark.asyncio
    async def test_delete_removes_links_both_ways(
        self, session, service: CatalogService, make_product
    ) -> None:
        """Deleting a product removes links to and from it."""
        a = await make_product("A", "A-1")
        b = await service.create_product({"name_en": "B", "sku": "B-1"}, related_ids=[a.id])
        await service.update_product(a.id, {}, related_ids=[b.id])

        await service.delete_product(a.id)

        assert await _count(session, ProductRelation) == 0
        with pytest.raises(NotFoundError):
            await service.get_product(a.id)


class TestVisibility:
    """Tests for single-product reads."""

    @pytest.mark.asyncio
    async def test_unpublished_hidden_from_public(
        self, service: CatalogService, make_product
    ) -> None:
        """Unpublished products are not found publicly but are for admins."""
        product = await make_product("Draft", "D-1", is_published=False)

        with pytest.raises(NotFoundError):
            await service.get_product(product.id)
        with pytest.raises(NotFoundError):
            await service.get_product_by_slug("draft")

        assert (await service.get_product(product.id, Audience.ADMIN)).id == product.id
        assert (await service.get_product_by_slug("draft", Audience.ADMIN)).id == product.id


class TestAtomicity:
    """Tests for the product and index sharing a transaction."""

    @pytest.mark.asyncio
    async def test_index_failure_rolls_back_create(
        self, session, service: CatalogService, monkeypatch
    ) -> None:
        """If indexing fails, the product is not stored either."""

        async def _fail(self, product):
            raise RuntimeError("index unavailable")

        monkeypatch.setattr(TextIndex, "reindex", _fail)

        with pytest.raises(RuntimeError):
            await service.create_product({"name_en": "Scanner", "sku": "SC-1"})

        assert await _count(session, Product) == 0
        assert await _count(session, SearchToken) == 0

    @pytest.mark.asyncio
    async def test_index_failure_rolls_back_update(
        self, service: CatalogService, make_product, monkeypatch
    ) -> None:
        """A failed re-index leaves the previous product state."""
        product = await make_product("Scanner", "SC-1")

        async def _fail(self, product):
            raise RuntimeError("index unavailable")

        monkeypatch.setattr(TextIndex, "reindex", _fail)

        with pytest.raises(RuntimeError):
            await service.update_product(product.id, {"name_en": "Renamed"})

        reloaded = await service.get_product(product.id)
        assert reloaded.name_en == "Scanner"


class TestImport:
    """Tests for bulk import."""

    @pytest.mark.asyncio
    async def test_creates_and_updates_by_sku(
        self, service: CatalogService, make_product
    ) -> None:
        """Existing SKUs are updated, new SKUs created."""
        existing = await make_product("Old Name", "SKU-1")

        result = await service.import_products(
            [
                {"name_en": "New Name", "sku": "SKU-1"},
                {"name_en": "Fresh", "sku": "SKU-2", "description_en": "Imported"},
            ]
        )

        assert result.created == 1
        assert result.updated == 1
        assert result.errors == []
        assert (await service.get_product(existing.id)).name_en == "New Name"

    @pytest.mark.asyncio
    async def test_bad_rows_reported_and_skipped(
        self, session, service: CatalogService
    ) -> None:
        """A failing row does not stop the others."""
        result = await service.import_products(
            [
                {"name_en": "", "sku": "SKU-1"},
                {"name_en": "Broken", "sku": "SKU-2", "brand_id": 404},
                {"name_en": "Good", "sku": "SKU-3"},
            ]
        )

        assert result.created == 1
        assert result.errors[0] == "Row 1: missing name_en or sku, skipped"
        assert result.errors[1].startswith("Row 2 (SKU-2): ")
        assert await _count(session, Product) == 1

    @pytest.mark.asyncio
    async def test_database_error_reported_as_row_error(
        self, session, service: CatalogService, monkeypatch
    ) -> None:
        """A database failure on one row is reported and the import continues."""
        create = ProductRepository.create

        async def _create(self, values, **kwargs):
            if values["sku"] == "SKU-2":
                raise OperationalError("INSERT", {}, ConnectionResetError("reset"))
            return await create(self, values, **kwargs)

        monkeypatch.setattr(ProductRepository, "create", _create)

        result = await service.import_products(
            [
                {"name_en": "First", "sku": "SKU-1"},
                {"name_en": "Second", "sku": "SKU-2"},
                {"name_en": "Third", "sku": "SKU-3"},
            ]
        )

        assert result.created == 2
        assert result.errors == ["Row 2 (SKU-2): database error"]
        assert await _count(session, Product) == 2

    @pytest.mark.asyncio
    async def test_empty_import_rejected(self, service: CatalogService) -> None:
        """An import with no rows is a validation error."""
        with pytest.raises(ValidationError):
            await service.import_products([])
