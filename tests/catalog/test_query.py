"""Tests for product listing queries."""

import pytest

from catalog_api.catalog.query import ProductQuery, QueryBuilder
from catalog_api.catalog.service import CatalogService
from catalog_api.domain.value_objects import Audience, Locale, SortMode


class TestProductQuery:
    """Tests for pagination clamping."""

    def test_page_below_one_clamps(self) -> None:
        """Pages are 1-based."""
        assert ProductQuery(page=0).clamped().page == 1
        assert ProductQuery(page=-3).clamped().page == 1

    def test_page_size_clamped(self) -> None:
        """Page size stays within [1, 100]."""
        assert ProductQuery(page_size=0).clamped().page_size == 1
        assert ProductQuery(page_size=1000).clamped().page_size == 100
        assert ProductQuery(page_size=12).clamped().page_size == 12

    def test_offset(self) -> None:
        """Offset skips the previous pages."""
        assert ProductQuery(page=3, page_size=10).offset == 20


class TestCategoryFilter:
    """Tests for subtree expansion."""

    @pytest.mark.asyncio
    async def test_root_filter_includes_grandchildren(
        self, service: CatalogService, make_category, make_product
    ) -> None:
        """Filtering by a root returns products two levels down."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)
        grandchild = await make_category("Grandchild", parent_id=child.id)
        other = await make_category("Other")

        p_root = await make_product("In Root", "R-1", category_id=root.id)
        p_child = await make_product("In Child", "C-1", category_id=child.id)
        p_grand = await make_product("In Grandchild", "G-1", category_id=grandchild.id)
        await make_product("Elsewhere", "O-1", category_id=other.id)

        result = await service.list_products(ProductQuery(category_id=root.id, page_size=50))

        assert {p.id for p in result.items} == {p_root.id, p_child.id, p_grand.id}
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_child_filter_excludes_parent(
        self, service: CatalogService, make_category, make_product
    ) -> None:
        """Filtering by a child does not include its parent's products."""
        root = await make_category("Root")
        child = await make_category("Child", parent_id=root.id)
        await make_product("In Root", "R-1", category_id=root.id)
        p_child = await make_product("In Child", "C-1", category_id=child.id)

        result = await service.list_products(ProductQuery(category_id=child.id))

        assert [p.id for p in result.items] == [p_child.id]

    @pytest.mark.asyncio
    async def test_unknown_slug_matches_nothing(
        self, service: CatalogService, make_product
    ) -> None:
        """An unresolvable category slug filters everything out."""
        await make_product("Scanner", "S-1")
        refs = await service.resolve_filters(category="no-such-category")

        result = await service.list_products(ProductQuery(**refs))

        assert result.total == 0


class TestSearch:
    """Tests for free-text search."""

    @pytest.mark.asyncio
    async def test_tokens_are_ored(self, service: CatalogService, make_product) -> None:
        """A product matching any token is included."""
        flash = await make_product("Flash Scanner", "F-1")
        blade = await make_product("Microtome Blade", "B-1")
        await make_product("Coverslipper", "C-1")

        result = await service.list_products(ProductQuery(search="flash blade"))

        assert {p.id for p in result.items} == {flash.id, blade.id}

    @pytest.mark.asyncio
    async def test_prefix_match(self, service: CatalogService, make_product) -> None:
        """Tokens match as prefixes."""
        product = await make_product("Coverslipper", "C-1")
        result = await service.list_products(ProductQuery(search="cover"))
        assert [p.id for p in result.items] == [product.id]

    @pytest.mark.asyncio
    async def test_ranked_by_relevance_then_insertion(
        self, service: CatalogService, make_product
    ) -> None:
        """Name matches outrank description matches; ties keep insertion order."""
        described = await make_product("Processor", "P-1", description_en="scanner compatible")
        named_first = await make_product("Scanner One", "S-1")
        named_second = await make_product("Scanner Two", "S-2")

        result = await service.list_products(ProductQuery(search="scanner"))

        assert [p.id for p in result.items] == [named_first.id, named_second.id, described.id]

    @pytest.mark.asyncio
    async def test_sku_partial_match_broadens_results(
        self, service: CatalogService, make_product
    ) -> None:
        """A SKU fragment that is not a token prefix still matches, ranked last."""
        sku_only = await make_product("Embedding Center", "AB-123-XY")
        named = await make_product("B12 Stainer", "ST-9")

        result = await service.list_products(ProductQuery(search="b-12"))

        assert [p.id for p in result.items] == [named.id, sku_only.id]

    @pytest.mark.asyncio
    async def test_variant_sku_matches(self, service: CatalogService) -> None:
        """Variant SKUs take part in the SKU match."""
        product = await service.create_product(
            {"name_en": "Blade Pack", "mode": "variable"},
            variants=[
                {"name_en": "Small", "sku": "VAR-777"},
                {"name_en": "Large", "sku": "ZZ-900"},
            ],
        )

        result = await service.list_products(ProductQuery(search="z-90"))

        assert [p.id for p in result.items] == [product.id]

    @pytest.mark.asyncio
    async def test_empty_sanitized_term_means_no_filter(
        self, service: CatalogService, make_product
    ) -> None:
        """A term of only punctuation lists everything in default order."""
        first = await make_product("First", "F-1")
        second = await make_product("Second", "S-1")

        result = await service.list_products(ProductQuery(search="%%%"))

        assert [p.id for p in result.items] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, service: CatalogService, make_product) -> None:
        """Underscores in SKUs are matched literally."""
        await make_product("Plain", "AXB")
        literal = await make_product("Literal", "A_B")

        result = await service.list_products(ProductQuery(search="a_b"))

        assert [p.id for p in result.items] == [literal.id]


class TestAudienceAndSort:
    """Tests for visibility and ordering."""

    @pytest.mark.asyncio
    async def test_unpublished_hidden_from_public(
        self, service: CatalogService, make_product
    ) -> None:
        """Public listings exclude unpublished products; admin listings do not."""
        published = await make_product("Visible Scanner", "V-1")
        hidden = await make_product("Hidden Scanner", "H-1", is_published=False)

        public = await service.list_products(ProductQuery(search="scanner"), Audience.PUBLIC)
        admin = await service.list_products(ProductQuery(search="scanner"), Audience.ADMIN)

        assert [p.id for p in public.items] == [published.id]
        assert {p.id for p in admin.items} == {published.id, hidden.id}
        assert public.total == 1
        assert admin.total == 2

    @pytest.mark.asyncio
    async def test_newest_first_by_default(self, service: CatalogService, make_product) -> None:
        """Default sort is newest first."""
        first = await make_product("Alpha", "A-1")
        second = await make_product("Beta", "B-1")

        result = await service.list_products(ProductQuery())

        assert [p.id for p in result.items] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_name_sort_uses_locale(self, service: CatalogService, make_product) -> None:
        """Name sort is case-insensitive on the requested locale."""
        zulu = await make_product("zulu", "Z-1", name_ko="가")
        alpha = await make_product("Alpha", "A-1", name_ko="나")

        english = await service.list_products(ProductQuery(sort=SortMode.NAME))
        korean = await service.list_products(ProductQuery(sort=SortMode.NAME, locale=Locale.KO))

        assert [p.id for p in english.items] == [alpha.id, zulu.id]
        assert [p.id for p in korean.items] == [zulu.id, alpha.id]

    @pytest.mark.asyncio
    async def test_facet_filters(
        self, service: CatalogService, make_product
    ) -> None:
        """Type and brand filters are exact."""
        brand = await service.create_taxonomy("brands", {"name_en": "Epredia"})
        product_type = await service.create_taxonomy("types", {"name_en": "Instruments"})
        match = await make_product("Match", "M-1", brand_id=brand.id, type_id=product_type.id)
        await make_product("Brand Only", "B-1", brand_id=brand.id)

        result = await service.list_products(
            ProductQuery(brand_id=brand.id, type_id=product_type.id)
        )

        assert [p.id for p in result.items] == [match.id]


class TestPagination:
    """Tests for count/page agreement."""

    @pytest.mark.asyncio
    async def test_pages_cover_total_for_every_page_size(
        self, session, make_category, make_product
    ) -> None:
        """Concatenated pages equal the full result for page sizes 1 to 100."""
        root = await make_category("Root")
        for i in range(7):
            await make_product(
                f"Scanner {i}",
                f"S-{i}",
                category_id=root.id,
                is_published=i != 3,
            )
        builder = QueryBuilder(session)
        full = await builder.filter(ProductQuery(category_id=root.id, page_size=100))
        expected = [p.id for p in full.items]
        assert full.total == len(expected) == 6

        for page_size in range(1, 101):
            seen: list[int] = []
            first = await builder.filter(ProductQuery(category_id=root.id, page_size=page_size))
            for page in range(1, first.total_pages + 1):
                result = await builder.filter(
                    ProductQuery(category_id=root.id, page=page, page_size=page_size)
                )
                assert result.total == first.total
                seen.extend(p.id for p in result.items)
            assert seen == expected, page_size

    @pytest.mark.asyncio
    async def test_page_beyond_end_is_empty(self, service: CatalogService, make_product) -> None:
        """A page past the end has no items but reports the total."""
        await make_product("Only", "O-1")

        result = await service.list_products(ProductQuery(page=5, page_size=10))

        assert result.items == []
        assert result.total == 1
        assert result.total_pages == 1


class TestFeaturedAndQuickSearch:
    """Tests for featured listing and quick search."""

    @pytest.mark.asyncio
    async def test_featured_in_featured_order(
        self, service: CatalogService, make_product
    ) -> None:
        """Featured products list by (featured_order, id), published only for the public."""
        first = await make_product("First", "F-1", is_featured=True)
        second = await make_product("Second", "S-1", is_featured=True)
        hidden = await make_product("Hidden", "H-1", is_featured=True, is_published=False)
        await make_product("Plain", "P-1")

        public = await service.featured_products(Audience.PUBLIC)
        admin = await service.featured_products(Audience.ADMIN)

        assert [p.id for p in public] == [first.id, second.id]
        assert [p.id for p in admin] == [first.id, second.id, hidden.id]
        assert [p.featured_order for p in admin] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_quick_search_limit(self, service: CatalogService, make_product) -> None:
        """Quick search returns at most the limit, best first."""
        for i in range(5):
            await make_product(f"Blade {i}", f"B-{i}")

        results = await service.quick_search("blade", limit=3)

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_quick_search_empty_term(self, service: CatalogService, make_product) -> None:
        """Nothing searchable returns nothing."""
        await make_product("Blade", "B-1")
        assert await service.quick_search("!!!") == []
