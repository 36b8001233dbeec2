"""API schemas for the Catalog API.

Pydantic models for request/response validation and serialization.
Write requests take flat per-locale columns (``name_en``, ``name_ko``);
responses nest them as localized text objects.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from catalog_api.domain.value_objects import LocalizedText, MoveDirection, ProductMode


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] | dict[str, Any] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class LocalizedTextSchema(BaseModel):
    """Text in every supported locale."""

    en: str | None = Field(default=None, description="English text")
    ko: str | None = Field(default=None, description="Korean text")

    @classmethod
    def from_columns(cls, row: Any, field: str) -> "LocalizedTextSchema":
        """Build from the ``<field>_en`` / ``<field>_ko`` attributes of a row."""
        text = LocalizedText.from_columns(row, field)
        return cls(en=text.en, ko=text.ko)


class SuccessResponse(BaseModel):
    """Acknowledgement of a write without a body."""

    success: bool = Field(default=True, description="Whether the operation succeeded")


class DeleteResponse(SuccessResponse):
    """Acknowledgement of a delete."""

    products_detached: int | None = Field(
        default=None, description="Products whose reference was cleared"
    )


# ============================================================================
# Taxonomy Schemas
# ============================================================================


class TypeResponse(BaseModel):
    """Type facet entry."""

    id: int = Field(..., description="Type identifier")
    name: LocalizedTextSchema = Field(..., description="Localized name")
    slug: str = Field(..., description="URL slug")
    sort_order: int = Field(..., description="Position in the listing")
    created_at: datetime = Field(..., description="When the type was created")


class BrandResponse(TypeResponse):
    """Brand facet entry."""

    logo: str | None = Field(default=None, description="Logo media reference")
    website: str | None = Field(default=None, description="Brand homepage")
    description: LocalizedTextSchema | None = Field(
        default=None, description="Localized description"
    )
    is_featured: bool = Field(..., description="Shown on partner listings")


class CategoryResponse(TypeResponse):
    """Category positioned in the flattened tree."""

    parent_id: int | None = Field(default=None, description="Parent category")
    depth: int = Field(..., ge=1, le=3, description="Level in the tree (1 = root)")
    is_orphan: bool = Field(default=False, description="Parent no longer exists")
    parent_name: LocalizedTextSchema | None = Field(
        default=None, description="Name of the parent category"
    )


class TaxonomyRef(BaseModel):
    """Compact reference to a category, type or brand."""

    id: int = Field(..., description="Identifier")
    name: LocalizedTextSchema = Field(..., description="Localized name")
    slug: str = Field(..., description="URL slug")


class TypeCreateRequest(BaseModel):
    """Request to create a type."""

    name_en: str = Field(..., min_length=1, max_length=200, description="English name")
    name_ko: str | None = Field(default=None, max_length=200, description="Korean name")
    slug: str | None = Field(default=None, description="Explicit slug (derived from name_en if omitted)")
    sort_order: int | None = Field(default=None, description="Position (end of list if omitted)")


class TypeUpdateRequest(BaseModel):
    """Partial update of a type."""

    name_en: str | None = Field(default=None, min_length=1, max_length=200)
    name_ko: str | None = Field(default=None, max_length=200)
    slug: str | None = None
    sort_order: int | None = None


class BrandCreateRequest(TypeCreateRequest):
    """Request to create a brand."""

    logo: str | None = Field(default=None, description="Logo media reference")
    website: str | None = Field(default=None, description="Brand homepage")
    description_en: str | None = None
    description_ko: str | None = None
    is_featured: bool = Field(default=True, description="Shown on partner listings")


class BrandUpdateRequest(TypeUpdateRequest):
    """Partial update of a brand."""

    logo: str | None = None
    website: str | None = None
    description_en: str | None = None
    description_ko: str | None = None
    is_featured: bool | None = None


class CategoryCreateRequest(TypeCreateRequest):
    """Request to create a category."""

    parent_id: int | None = Field(default=None, description="Parent category (root if omitted)")


class CategoryUpdateRequest(TypeUpdateRequest):
    """Partial update of a category; ``parent_id: null`` moves it to the root."""

    parent_id: int | None = None


# ============================================================================
# Product Schemas
# ============================================================================


class VariantSchema(BaseModel):
    """Product variant."""

    id: int | None = Field(default=None, description="Variant identifier")
    name: LocalizedTextSchema = Field(..., description="Localized variant name")
    sku: str = Field(..., description="Variant SKU")


class ProductResponse(BaseModel):
    """Product with its taxonomy references and variants."""

    id: int = Field(..., description="Product identifier")
    name: LocalizedTextSchema = Field(..., description="Localized name")
    slug: str = Field(..., description="URL slug")
    sku: str = Field(..., description="Stock keeping unit")
    mode: ProductMode = Field(..., description="simple or variable")
    category: TaxonomyRef | None = Field(default=None, description="Category")
    type: TaxonomyRef | None = Field(default=None, description="Type facet")
    brand: TaxonomyRef | None = Field(default=None, description="Brand facet")
    description: LocalizedTextSchema = Field(..., description="Rich-text description")
    features: LocalizedTextSchema = Field(..., description="Feature list")
    detail: LocalizedTextSchema = Field(..., description="Detail content")
    image: str | None = Field(default=None, description="Image media reference")
    is_published: bool = Field(..., description="Visible on public listings")
    is_featured: bool = Field(..., description="Member of the featured list")
    featured_order: int = Field(..., description="Position in the featured list")
    variants: list[VariantSchema] = Field(default_factory=list, description="Variants")
    related_ids: list[int] | None = Field(
        default=None, description="Related products (detail responses only)"
    )
    created_at: datetime = Field(..., description="When the product was created")
    updated_at: datetime = Field(..., description="When the product was last updated")


class ProductListResponse(BaseModel):
    """Paginated list of products."""

    items: list[ProductResponse] = Field(..., description="Products on this page")
    total: int = Field(..., description="Total number of matches")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., serialization_alias="pageSize", description="Items per page")
    total_pages: int = Field(..., serialization_alias="totalPages", description="Number of pages")


class FeaturedListResponse(BaseModel):
    """Featured products in featured order."""

    items: list[ProductResponse] = Field(..., description="Featured products")


class SearchHit(BaseModel):
    """Quick search result."""

    id: int = Field(..., description="Product identifier")
    name: LocalizedTextSchema = Field(..., description="Localized name")
    slug: str = Field(..., description="URL slug")
    sku: str = Field(..., description="Stock keeping unit")
    image: str | None = Field(default=None, description="Image media reference")
    category: TaxonomyRef | None = Field(default=None, description="Category")


class SearchResponse(BaseModel):
    """Quick search results, best match first."""

    query: str = Field(..., description="The search input")
    items: list[SearchHit] = Field(..., description="Ranked results")


class VariantRequest(BaseModel):
    """Variant supplied on product writes."""

    name_en: str = Field(..., min_length=1, description="English variant name")
    name_ko: str | None = Field(default=None, description="Korean variant name")
    sku: str = Field(..., min_length=1, description="Variant SKU")


class ProductCreateRequest(BaseModel):
    """Request to create a product."""

    name_en: str = Field(..., min_length=1, max_length=500, description="English name")
    name_ko: str | None = Field(default=None, max_length=500, description="Korean name")
    slug: str | None = Field(default=None, description="Explicit slug (derived from name_en if omitted)")
    sku: str | None = Field(default=None, description="SKU (required for simple products)")
    mode: ProductMode = Field(default=ProductMode.SIMPLE, description="simple or variable")
    category_id: int | None = None
    type_id: int | None = None
    brand_id: int | None = None
    description_en: str | None = None
    description_ko: str | None = None
    features_en: str | None = None
    features_ko: str | None = None
    detail_en: str | None = None
    detail_ko: str | None = None
    image: str | None = Field(default=None, description="Image media reference")
    is_published: bool = True
    is_featured: bool = False
    featured_order: int | None = Field(default=None, description="Appended to the featured list if omitted")
    variants: list[VariantRequest] | None = Field(default=None, description="Variants of a variable product")
    related_ids: list[int] | None = Field(default=None, description="Related product ids")


class ProductUpdateRequest(BaseModel):
    """Partial update of a product.

    ``variants`` and ``related_ids`` replace the stored sets when present.
    """

    name_en: str | None = Field(default=None, min_length=1, max_length=500)
    name_ko: str | None = Field(default=None, max_length=500)
    slug: str | None = None
    sku: str | None = None
    mode: ProductMode | None = None
    category_id: int | None = None
    type_id: int | None = None
    brand_id: int | None = None
    description_en: str | None = None
    description_ko: str | None = None
    features_en: str | None = None
    features_ko: str | None = None
    detail_en: str | None = None
    detail_ko: str | None = None
    image: str | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    featured_order: int | None = None
    variants: list[VariantRequest] | None = None
    related_ids: list[int] | None = None


class ImportRow(BaseModel):
    """One row of a bulk import; rows without name_en or sku are skipped."""

    name_en: str | None = None
    name_ko: str | None = None
    sku: str | None = None
    category_id: int | None = None
    type_id: int | None = None
    brand_id: int | None = None
    description_en: str | None = None
    description_ko: str | None = None
    is_published: bool = True


class ImportRequest(BaseModel):
    """Bulk product import."""

    products: list[ImportRow] = Field(..., description="Rows to upsert by SKU")


class ImportResponse(BaseModel):
    """Bulk import outcome."""

    created: int = Field(..., description="Products created")
    updated: int = Field(..., description="Products updated")
    errors: list[str] = Field(default_factory=list, description="Per-row errors")


# ============================================================================
# Ordering Schemas
# ============================================================================


class ReorderRequest(BaseModel):
    """Move one item a single step within its sibling group."""

    scope: str = Field(..., description="categories, types, brands or featured")
    id: int = Field(..., description="Item to move")
    direction: MoveDirection = Field(..., description="up or down")


class ReorderResponse(SuccessResponse):
    """Outcome of a single-step move."""

    scope: str = Field(..., description="Scope that was reordered")
    id: int = Field(..., description="Item that was moved")
    moved: bool = Field(..., description="False when already at the edge of its group")
    swapped_with: int | None = Field(default=None, description="Neighbor it swapped with")


class ReorderBatchRequest(BaseModel):
    """Overwrite the order of a list of ids with their positions."""

    model_config = ConfigDict(populate_by_name=True)

    scope: str = Field(..., description="categories, types, brands or featured")
    ordered_ids: list[int] = Field(..., alias="orderedIds", description="Ids in their new order")


class ReorderBatchResponse(SuccessResponse):
    """Outcome of a batch rewrite."""

    scope: str = Field(..., description="Scope that was reordered")
    updated: int = Field(..., description="Rows rewritten")


# ============================================================================
# Admin Schemas
# ============================================================================


class StatsResponse(BaseModel):
    """Dashboard counters."""

    total_products: int
    published_products: int
    featured_products: int
    categories: int
    types: int
    brands: int


class ReindexResponse(SuccessResponse):
    """Outcome of a text index rebuild."""

    products_indexed: int = Field(..., description="Products re-indexed")
