"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

from slugify import slugify

from catalog_api.domain.base import ValueObject
from catalog_api.domain.exceptions import ValidationError


# ============================================================================
# Locales
# ============================================================================


class Locale(str, Enum):
    """Supported content locales.

    The set is closed: every localized field is stored once per member.
    """

    EN = "en"
    KO = "ko"


@dataclass(frozen=True)
class LocalizedText(ValueObject):
    """Parallel per-locale text.

    Persisted as ``<field>_en`` / ``<field>_ko`` column pairs. The data
    layer always stores both values; choosing one is a rendering concern.
    """

    en: str | None = None
    ko: str | None = None

    @classmethod
    def from_columns(cls, row: Any, field: str) -> Self:
        """Build from the ``<field>_en`` / ``<field>_ko`` attributes of a row.

        Args:
            row: ORM instance or mapping-like row.
            field: Column prefix (e.g., "name", "description").

        Returns:
            LocalizedText instance.
        """
        return cls(
            en=getattr(row, f"{field}_en", None),
            ko=getattr(row, f"{field}_ko", None),
        )


# ============================================================================
# Slugs
# ============================================================================


def make_slug(text: str) -> str:
    """Derive a URL slug from a canonical name.

    Deterministic: the same name always produces the same slug.

    Args:
        text: Canonical (English) name.

    Returns:
        Lowercase, hyphen-separated ASCII slug.

    Raises:
        ValidationError: If the name yields an empty slug.
    """
    slug = slugify(text or "")
    if not slug:
        raise ValidationError(
            f"Cannot derive a slug from '{text}'",
            field="slug",
        )
    return slug


# ============================================================================
# Ordering
# ============================================================================


class OrderScope(str, Enum):
    """Orderable dimensions.

    Categories are ordered within a parent; types and brands are flat;
    ``featured`` is the ``featured_order`` dimension of featured products.
    Products have no catalog order of their own.
    """

    CATEGORIES = "categories"
    TYPES = "types"
    BRANDS = "brands"
    FEATURED = "featured"


class MoveDirection(str, Enum):
    """Direction of a single-step move."""

    UP = "up"
    DOWN = "down"

    @property
    def offset(self) -> int:
        """Index offset of the neighbor to swap with."""
        return -1 if self is MoveDirection.UP else 1


# ============================================================================
# Querying
# ============================================================================


class SortMode(str, Enum):
    """Product listing order when no search term is active."""

    NEWEST = "newest"
    NAME = "name"


class Audience(str, Enum):
    """Who a product listing is for.

    Public listings never include unpublished products.
    """

    PUBLIC = "public"
    ADMIN = "admin"


class ProductMode(str, Enum):
    """Product shape: a single SKU, or a set of SKU-carrying variants."""

    SIMPLE = "simple"
    VARIABLE = "variable"


# ============================================================================
# Identity
# ============================================================================


@dataclass(frozen=True)
class Editor(ValueObject):
    """Authenticated catalog editor supplied by the identity collaborator."""

    name: str

    def __str__(self) -> str:
        """Return editor name."""
        return self.name
