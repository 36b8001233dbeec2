"""Product API endpoints.

Provides filtered listings, featured products, product details and
editor writes including bulk import.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from catalog_api.api.dependencies import AudienceDep, EditorDep, ServiceDep
from catalog_api.api.schemas import (
    ErrorResponse,
    FeaturedListResponse,
    ImportRequest,
    ImportResponse,
    LocalizedTextSchema,
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
    SuccessResponse,
    TaxonomyRef,
    VariantSchema,
)
from catalog_api.catalog.models import Product
from catalog_api.catalog.query import PaginatedResult, ProductQuery
from catalog_api.catalog.service import CatalogService
from catalog_api.domain.value_objects import Audience, Locale, SortMode
from catalog_api.infrastructure.config import settings

router = APIRouter(prefix="/catalog/products", tags=["Products"])


# ============================================================================
# Converters
# ============================================================================


def taxonomy_ref(entity) -> TaxonomyRef | None:
    """Convert a category, type or brand row to a compact reference."""
    if entity is None:
        return None
    return TaxonomyRef(
        id=entity.id,
        name=LocalizedTextSchema.from_columns(entity, "name"),
        slug=entity.slug,
    )


def product_to_response(product: Product, related_ids: list[int] | None = None) -> ProductResponse:
    """Convert Product row to response schema."""
    return ProductResponse(
        id=product.id,
        name=LocalizedTextSchema.from_columns(product, "name"),
        slug=product.slug,
        sku=product.sku,
        mode=product.mode,
        category=taxonomy_ref(product.category),
        type=taxonomy_ref(product.type),
        brand=taxonomy_ref(product.brand),
        description=LocalizedTextSchema.from_columns(product, "description"),
        features=LocalizedTextSchema.from_columns(product, "features"),
        detail=LocalizedTextSchema.from_columns(product, "detail"),
        image=product.image,
        is_published=product.is_published,
        is_featured=product.is_featured,
        featured_order=product.featured_order,
        variants=[
            VariantSchema(
                id=variant.id,
                name=LocalizedTextSchema.from_columns(variant, "name"),
                sku=variant.sku,
            )
            for variant in product.variants
        ],
        related_ids=related_ids,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def page_to_response(result: PaginatedResult[Product]) -> ProductListResponse:
    """Convert a result page to response schema."""
    return ProductListResponse(
        items=[product_to_response(p) for p in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


async def build_query(
    service: CatalogService,
    category: str | None,
    type_: str | None,
    brand: str | None,
    search: str | None,
    page: int,
    page_size: int,
    sort: SortMode,
    locale: Locale,
) -> ProductQuery:
    """Build a product query, resolving slug references to ids."""
    refs = await service.resolve_filters(category, type_, brand)
    return ProductQuery(
        category_id=refs["category_id"],
        type_id=refs["type_id"],
        brand_id=refs["brand_id"],
        search=search,
        page=page,
        page_size=page_size,
        sort=sort,
        locale=locale,
    )


# Listing query parameters, shared with the admin listing
CategoryParam = Annotated[str | None, Query(description="Category id or slug (includes two sublevels)")]
TypeParam = Annotated[str | None, Query(alias="type", description="Type id or slug")]
BrandParam = Annotated[str | None, Query(description="Brand id or slug")]
SearchParam = Annotated[str | None, Query(description="Free-text search")]
PageParam = Annotated[int, Query(description="Page number (1-based; lower values clamp to 1)")]
PageSizeParam = Annotated[
    int | None,
    Query(alias="pageSize", description="Items per page (clamped to [1, 100])"),
]
SortParam = Annotated[SortMode, Query(description="newest or name (ignored while searching)")]
LocaleParam = Annotated[Locale, Query(description="Locale used for name sorting")]


# ============================================================================
# Read Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description=(
        "Published products filtered by category subtree, type, brand and "
        "free text. Search results are ranked by relevance."
    ),
)
async def list_products(
    service: ServiceDep,
    category: CategoryParam = None,
    type_: TypeParam = None,
    brand: BrandParam = None,
    search: SearchParam = None,
    page: PageParam = 1,
    page_size: PageSizeParam = None,
    sort: SortParam = SortMode.NEWEST,
    locale: LocaleParam = Locale.EN,
) -> ProductListResponse:
    """List published products."""
    query = await build_query(
        service,
        category,
        type_,
        brand,
        search,
        page,
        settings.default_page_size if page_size is None else page_size,
        sort,
        locale,
    )
    return page_to_response(await service.list_products(query, Audience.PUBLIC))


@router.get(
    "/featured",
    response_model=FeaturedListResponse,
    summary="List featured products",
)
async def list_featured(service: ServiceDep) -> FeaturedListResponse:
    """List published featured products in featured order."""
    products = await service.featured_products(Audience.PUBLIC)
    return FeaturedListResponse(items=[product_to_response(p) for p in products])


@router.get(
    "/by-slug/{slug}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product by slug",
)
async def get_product_by_slug(
    slug: str,
    service: ServiceDep,
    audience: AudienceDep,
) -> ProductResponse:
    """Get a product by slug; unpublished products are only visible to editors."""
    product = await service.get_product_by_slug(slug, audience)
    return product_to_response(product, await service.related_ids(product.id))


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(
    product_id: int,
    service: ServiceDep,
    audience: AudienceDep,
) -> ProductResponse:
    """Get a product by ID; unpublished products are only visible to editors."""
    product = await service.get_product(product_id, audience)
    return product_to_response(product, await service.related_ids(product.id))


# ============================================================================
# Write Endpoints
# ============================================================================


@router.post(
    "/import",
    response_model=ImportResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Import products",
    description="Upsert products by SKU. Failing rows are reported, not fatal.",
)
async def import_products(
    body: ImportRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> ImportResponse:
    """Bulk import products."""
    result = await service.import_products(
        [row.model_dump(exclude_unset=True) for row in body.products]
    )
    return ImportResponse(created=result.created, updated=result.updated, errors=result.errors)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Create product",
)
async def create_product(
    body: ProductCreateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> ProductResponse:
    """Create a product.

    The slug is derived from ``name_en`` unless given; a taken slug is a
    conflict. The product is searchable as soon as this returns.

    Args:
        body: Product fields, variants and related ids.
        service: Catalog service.
        editor: Authenticated editor.

    Returns:
        Created product.
    """
    values = body.model_dump(exclude_none=True, exclude={"variants", "related_ids"})
    variants = [v.model_dump() for v in body.variants] if body.variants is not None else None
    product = await service.create_product(values, variants, body.related_ids)
    return product_to_response(product, await service.related_ids(product.id))


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Update product",
)
async def update_product(
    product_id: int,
    body: ProductUpdateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> ProductResponse:
    """Update a product; only fields present in the body change."""
    values = body.model_dump(exclude_unset=True, exclude={"variants", "related_ids"})
    variants = [v.model_dump() for v in body.variants] if body.variants is not None else None
    product = await service.update_product(product_id, values, variants, body.related_ids)
    return product_to_response(product, await service.related_ids(product.id))


@router.delete(
    "/{product_id}",
    response_model=SuccessResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Delete product",
)
async def delete_product(
    product_id: int,
    service: ServiceDep,
    editor: EditorDep,
) -> SuccessResponse:
    """Delete a product with its variants, links and index rows."""
    await service.delete_product(product_id)
    return SuccessResponse()
