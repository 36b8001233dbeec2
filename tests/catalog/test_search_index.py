"""Tests for the derived text index."""

import pytest
from sqlalchemy import delete, func, select

from catalog_api.catalog.models import SearchToken
from catalog_api.catalog.search_index import (
    TextIndex,
    query_tokens,
    sanitize_search_term,
    tokenize,
)
from catalog_api.catalog.service import CatalogService


class TestTokenize:
    """Tests for index tokenization."""

    def test_lowercases_and_dedupes(self) -> None:
        """Tokens are lowercase and distinct, in first-seen order."""
        assert tokenize("Slide Scanner slide SCANNER") == ["slide", "scanner"]

    def test_strips_markup(self) -> None:
        """Rich-text tags are not indexed."""
        assert tokenize("<p>Fast <strong>scanning</strong></p>") == ["fast", "scanning"]

    def test_hangul_tokens(self) -> None:
        """Korean words are kept whole."""
        assert tokenize("슬라이드 스캐너") == ["슬라이드", "스캐너"]

    def test_empty(self) -> None:
        """Missing text yields no tokens."""
        assert tokenize(None) == []
        assert tokenize("") == []


class TestQueryTokens:
    """Tests for search term sanitization."""

    def test_disallowed_characters_removed(self) -> None:
        """Punctuation outside words is stripped."""
        assert sanitize_search_term("scan*ner!") == "scanner"

    def test_splits_on_whitespace(self) -> None:
        """Each word becomes a token."""
        assert query_tokens("  Flash   Scanner ") == ["flash", "scanner"]

    def test_only_punctuation_means_no_filter(self) -> None:
        """A term with nothing searchable yields no tokens."""
        assert query_tokens("%%% ***") == []
        assert query_tokens(None) == []


class TestTextIndex:
    """Tests for index maintenance."""

    @pytest.mark.asyncio
    async def test_create_indexes_weighted_fields(self, session, make_product) -> None:
        """Name, SKU and description tokens are stored with their weights."""
        product = await make_product(
            "Flash Scanner",
            "P250",
            name_ko="스캐너",
            description_en="Fast slides",
        )

        rows = await TextIndex(session).tokens_for(product.id)

        assert ("name_en", "flash", 3) in rows
        assert ("name_ko", "스캐너", 3) in rows
        assert ("sku", "p250", 2) in rows
        assert ("description_en", "slides", 1) in rows

    @pytest.mark.asyncio
    async def test_update_replaces_rows(
        self, session, service: CatalogService, make_product
    ) -> None:
        """Old tokens disappear when the name changes."""
        product = await make_product("Old Blade", "B-1")
        await service.update_product(product.id, {"name_en": "New Knife"})

        tokens = {token for _, token, _ in await TextIndex(session).tokens_for(product.id)}

        assert "knife" in tokens
        assert "blade" not in tokens

    @pytest.mark.asyncio
    async def test_delete_removes_rows(
        self, session, service: CatalogService, make_product
    ) -> None:
        """Deleting a product drops its index rows."""
        product = await make_product("Blade", "B-1")
        await service.delete_product(product.id)

        assert await TextIndex(session).tokens_for(product.id) == []

    @pytest.mark.asyncio
    async def test_rebuild_matches_incremental_index(
        self, session, service: CatalogService, make_product
    ) -> None:
        """A rebuild re-derives exactly the rows kept by writes."""
        first = await make_product("Tissue Processor", "A841", description_en="Reduced time")
        second = await make_product("Coverslipper", "4568")
        await service.update_product(second.id, {"description_en": "Clean slides"})

        index = TextIndex(session)
        before = {
            first.id: await index.tokens_for(first.id),
            second.id: await index.tokens_for(second.id),
        }

        await session.execute(delete(SearchToken))
        await session.commit()
        count = await service.rebuild_index()

        assert count == 2
        after = {
            first.id: await index.tokens_for(first.id),
            second.id: await index.tokens_for(second.id),
        }
        assert after == before

    @pytest.mark.asyncio
    async def test_rank_sums_matching_weights(self, session, make_product) -> None:
        """Relevance is the sum of matching row weights."""
        named = await make_product("Scanner", "X-1")
        described = await make_product("Processor", "X-2", description_en="scanner ready")

        rank = TextIndex.rank_subquery(["scan"])
        result = await session.execute(select(rank.c.product_id, rank.c.relevance))
        relevance = dict(result.all())

        assert relevance[named.id] == 3
        assert relevance[described.id] == 1

    @pytest.mark.asyncio
    async def test_rows_only_written_through_index(self, session, make_product) -> None:
        """Every indexed row belongs to an existing product."""
        await make_product("Blade", "B-1")
        await make_product("Knife", "K-1")

        result = await session.execute(select(func.count(func.distinct(SearchToken.product_id))))
        assert result.scalar_one() == 2
