"""Derived text index for product search.

The index is a projection of each product's name, SKU and description
into one row per distinct lowercase token (``product_search_tokens``).
It exists only to answer ranked prefix queries, is written exclusively
through :class:`TextIndex`, and can be rebuilt from the products table
at any time.

Ranking: a product's relevance is the sum of the weights of the index
rows matched by any query token. Names weigh more than SKUs, which weigh
more than descriptions.
"""

import re
from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Subquery

from catalog_api.catalog.models import Product, SearchToken

logger = structlog.get_logger()

# Indexed columns and their relevance weight
INDEXED_FIELDS: dict[str, int] = {
    "name_en": 3,
    "name_ko": 3,
    "sku": 2,
    "description_en": 1,
    "description_ko": 1,
}

HANGUL_SYLLABLES = "가-힣"
MAX_TOKEN_LENGTH = 200

_TAG_RE = re.compile(r"<[^>]+>")
_TOKEN_RE = re.compile(rf"[\w{HANGUL_SYLLABLES}]+")
_DISALLOWED_RE = re.compile(rf"[^\w\s{HANGUL_SYLLABLES}]")


# ============================================================================
# Tokenizing
# ============================================================================


def tokenize(text: str | None) -> list[str]:
    """Split indexed text into distinct lowercase tokens.

    Markup tags are dropped first; descriptions are stored as rich text.

    Args:
        text: Field value.

    Returns:
        Distinct tokens in first-seen order.
    """
    if not text:
        return []
    plain = _TAG_RE.sub(" ", text)
    return list(dict.fromkeys(t.lower()[:MAX_TOKEN_LENGTH] for t in _TOKEN_RE.findall(plain)))


def sanitize_search_term(term: str | None) -> str:
    """Strip characters outside word characters and the Hangul range.

    Args:
        term: Raw user search input.

    Returns:
        Sanitized term, possibly empty.
    """
    if not term:
        return ""
    return _DISALLOWED_RE.sub("", term).strip()


def query_tokens(term: str | None) -> list[str]:
    """Turn a raw search term into prefix tokens.

    An empty result means "no text filter", never "match nothing".

    Args:
        term: Raw user search input.

    Returns:
        Distinct lowercase tokens.
    """
    sanitized = sanitize_search_term(term)
    if not sanitized:
        return []
    return list(dict.fromkeys(t.lower() for t in sanitized.split()))


# ============================================================================
# Index
# ============================================================================


class TextIndex:
    """Write-synchronized search index over products.

    Example usage:
        index = TextIndex(session)
        await index.reindex(product)        # inside the product's unit of work
        ranked = index.rank_subquery(["scan", "lens"])
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize index with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    @staticmethod
    def rows_for(product: Product) -> list[dict[str, Any]]:
        """Build the index rows for one product.

        Args:
            product: Product to project.

        Returns:
            Row values for the search token table.
        """
        return [
            {
                "product_id": product.id,
                "field": field,
                "token": token,
                "weight": weight,
            }
            for field, weight in INDEXED_FIELDS.items()
            for token in tokenize(getattr(product, field))
        ]

    async def _insert(self, rows: list[dict[str, Any]]) -> None:
        if rows:
            await self.session.execute(insert(SearchToken), rows)

    async def reindex(self, product: Product) -> None:
        """Replace the index rows of one product.

        Must run in the same transaction as the product write.

        Args:
            product: Flushed product (its id must be assigned).
        """
        await self.remove(product.id)
        await self._insert(self.rows_for(product))

    async def remove(self, product_id: int) -> None:
        """Drop the index rows of one product."""
        await self.session.execute(
            delete(SearchToken).where(SearchToken.product_id == product_id)
        )

    async def rebuild(self) -> int:
        """Rebuild the whole index from the products table.

        Disaster-recovery procedure: the products table is the system of
        record, so dropping and re-deriving every row is always safe.

        Returns:
            Number of products indexed.
        """
        await self.session.execute(delete(SearchToken))
        result = await self.session.execute(select(Product).order_by(Product.id))
        products = result.scalars().all()
        for product in products:
            await self._insert(self.rows_for(product))

        logger.info("Search index rebuilt", product_count=len(products))
        return len(products)

    async def tokens_for(self, product_id: int) -> list[tuple[str, str, int]]:
        """Get the stored rows of one product as sorted tuples."""
        result = await self.session.execute(
            select(SearchToken.field, SearchToken.token, SearchToken.weight)
            .where(SearchToken.product_id == product_id)
            .order_by(SearchToken.field, SearchToken.token)
        )
        return [tuple(row) for row in result.all()]

    @staticmethod
    def rank_subquery(tokens: Sequence[str]) -> Subquery:
        """Build the relevance subquery for a set of prefix tokens.

        Tokens are OR'ed: a product matching any token is included.

        Args:
            tokens: Lowercase query tokens (non-empty).

        Returns:
            Subquery with columns ``product_id`` and ``relevance``.
        """
        clauses = [SearchToken.token.startswith(token, autoescape=True) for token in tokens]
        return (
            select(
                SearchToken.product_id.label("product_id"),
                func.sum(SearchToken.weight).label("relevance"),
            )
            .where(or_(*clauses))
            .group_by(SearchToken.product_id)
            .subquery("search_rank")
        )

