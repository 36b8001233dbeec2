"""Domain exceptions.

All catalog-level errors that represent business rule violations.
These exceptions are raised by the stores, the query builder and the
ordering protocol, and are mapped to HTTP responses by the API layer.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the API layer.
    """

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Input Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised for malformed input, disallowed depth or non-orderable scope.

    Never retried automatically; the caller has to fix the request.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            field: Request field that caused the error, if any.
            details: Optional additional context.
        """
        merged = dict(details or {})
        if field is not None:
            merged["field"] = field
        super().__init__(message, details=merged)
        self.field = field


class CategoryDepthError(ValidationError):
    """Raised when a category write would exceed the maximum tree depth."""

    def __init__(self, parent_id: int, max_depth: int) -> None:
        """Initialize category depth error.

        Args:
            parent_id: Requested parent category.
            max_depth: Maximum number of levels allowed.
        """
        super().__init__(
            f"Category {parent_id} cannot take children: "
            f"tree depth is limited to {max_depth} levels",
            field="parent_id",
            details={"parent_id": parent_id, "max_depth": max_depth},
        )


class NonOrderableScopeError(ValidationError):
    """Raised when a reorder targets an entity that is not orderable."""

    def __init__(self, scope: str, allowed: list[str]) -> None:
        """Initialize non-orderable scope error.

        Args:
            scope: Requested scope.
            allowed: Scopes that may be reordered.
        """
        super().__init__(
            f"Scope '{scope}' cannot be reordered. Allowed scopes: {allowed}",
            field="scope",
            details={"scope": scope, "allowed_scopes": allowed},
        )


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(DomainError):
    """Raised when operating on an id that does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity (e.g., "Category", "Product").
            entity_id: Identifier that failed to resolve.
        """
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


# ============================================================================
# Uniqueness Errors
# ============================================================================


class ConflictError(DomainError):
    """Raised when a write collides with a unique identifier.

    Not retried; the caller must resubmit with a different identifier.
    """

    error_code = "CONFLICT"


class SlugConflictError(ConflictError):
    """Raised when a slug is already taken by another entity."""

    def __init__(self, entity_type: str, slug: str) -> None:
        """Initialize slug conflict error.

        Args:
            entity_type: Type of entity owning the slug.
            slug: The colliding slug.
        """
        super().__init__(
            f"{entity_type} slug '{slug}' is already in use",
            details={"entity_type": entity_type, "slug": slug},
        )
        self.slug = slug
