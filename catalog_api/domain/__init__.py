"""Domain layer - value objects and exceptions.

This module exports the catalog's core building blocks:

- **Value Objects**: LocalizedText, Editor and the ordering/query enums
- **Exceptions**: Validation, not-found and conflict errors

Example usage:
    from catalog_api.domain import LocalizedText, OrderScope, make_slug

    name = LocalizedText(en="Slide Scanner", ko="슬라이드 스캐너")
    slug = make_slug(name.en)  # "slide-scanner"
"""

from catalog_api.domain.base import ValueObject
from catalog_api.domain.exceptions import (
    CategoryDepthError,
    ConflictError,
    DomainError,
    NonOrderableScopeError,
    NotFoundError,
    SlugConflictError,
    ValidationError,
)
from catalog_api.domain.value_objects import (
    Audience,
    Editor,
    Locale,
    LocalizedText,
    MoveDirection,
    OrderScope,
    ProductMode,
    SortMode,
    make_slug,
)

__all__ = [
    # Base
    "ValueObject",
    # Value objects
    "Audience",
    "Editor",
    "Locale",
    "LocalizedText",
    "MoveDirection",
    "OrderScope",
    "ProductMode",
    "SortMode",
    "make_slug",
    # Exceptions
    "CategoryDepthError",
    "ConflictError",
    "DomainError",
    "NonOrderableScopeError",
    "NotFoundError",
    "SlugConflictError",
    "ValidationError",
]
