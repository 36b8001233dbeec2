"""Type and brand API endpoints.

Both facets are flat, slugged and manually ordered.
"""

from fastapi import APIRouter, Query, status

from catalog_api.api.dependencies import EditorDep, ServiceDep
from catalog_api.api.schemas import (
    BrandCreateRequest,
    BrandResponse,
    BrandUpdateRequest,
    DeleteResponse,
    ErrorResponse,
    LocalizedTextSchema,
    TypeCreateRequest,
    TypeResponse,
    TypeUpdateRequest,
)
from catalog_api.catalog.models import Brand, ProductType

router = APIRouter(prefix="/catalog", tags=["Facets"])

WRITE_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ============================================================================
# Converters
# ============================================================================


def type_to_response(product_type: ProductType) -> TypeResponse:
    """Convert ProductType row to response schema."""
    return TypeResponse(
        id=product_type.id,
        name=LocalizedTextSchema.from_columns(product_type, "name"),
        slug=product_type.slug,
        sort_order=product_type.sort_order,
        created_at=product_type.created_at,
    )


def brand_to_response(brand: Brand) -> BrandResponse:
    """Convert Brand row to response schema."""
    description = LocalizedTextSchema.from_columns(brand, "description")
    return BrandResponse(
        id=brand.id,
        name=LocalizedTextSchema.from_columns(brand, "name"),
        slug=brand.slug,
        sort_order=brand.sort_order,
        created_at=brand.created_at,
        logo=brand.logo,
        website=brand.website,
        description=description if description.en or description.ko else None,
        is_featured=brand.is_featured,
    )


# ============================================================================
# Type Endpoints
# ============================================================================


@router.get("/types", response_model=list[TypeResponse], summary="List types")
async def list_types(service: ServiceDep) -> list[TypeResponse]:
    """List types ordered by sort order."""
    return [type_to_response(t) for t in await service.list_facet("types")]


@router.post(
    "/types",
    response_model=TypeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_RESPONSES,
    summary="Create type",
)
async def create_type(
    body: TypeCreateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> TypeResponse:
    """Create a type; it is appended to the end of the list unless ordered."""
    product_type = await service.create_taxonomy("types", body.model_dump(exclude_none=True))
    return type_to_response(product_type)


@router.put(
    "/types/{type_id}",
    response_model=TypeResponse,
    responses=WRITE_RESPONSES,
    summary="Update type",
)
async def update_type(
    type_id: int,
    body: TypeUpdateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> TypeResponse:
    """Update a type."""
    product_type = await service.update_taxonomy(
        "types", type_id, body.model_dump(exclude_unset=True)
    )
    return type_to_response(product_type)


@router.delete(
    "/types/{type_id}",
    response_model=DeleteResponse,
    responses=WRITE_RESPONSES,
    summary="Delete type",
)
async def delete_type(
    type_id: int,
    service: ServiceDep,
    editor: EditorDep,
) -> DeleteResponse:
    """Delete a type; its products keep existing without a type."""
    detached = await service.delete_taxonomy("types", type_id)
    return DeleteResponse(products_detached=detached)


# ============================================================================
# Brand Endpoints
# ============================================================================


@router.get("/brands", response_model=list[BrandResponse], summary="List brands")
async def list_brands(
    service: ServiceDep,
    featured: bool | None = Query(default=None, description="Only brands shown on partner listings"),
) -> list[BrandResponse]:
    """List brands ordered by sort order."""
    brands = await service.list_facet("brands")
    if featured is not None:
        brands = [b for b in brands if b.is_featured == featured]
    return [brand_to_response(b) for b in brands]


@router.post(
    "/brands",
    response_model=BrandResponse,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_RESPONSES,
    summary="Create brand",
)
async def create_brand(
    body: BrandCreateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> BrandResponse:
    """Create a brand; ``logo`` is stored as given."""
    brand = await service.create_taxonomy("brands", body.model_dump(exclude_none=True))
    return brand_to_response(brand)


@router.put(
    "/brands/{brand_id}",
    response_model=BrandResponse,
    responses=WRITE_RESPONSES,
    summary="Update brand",
)
async def update_brand(
    brand_id: int,
    body: BrandUpdateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> BrandResponse:
    """Update a brand."""
    brand = await service.update_taxonomy("brands", brand_id, body.model_dump(exclude_unset=True))
    return brand_to_response(brand)


@router.delete(
    "/brands/{brand_id}",
    response_model=DeleteResponse,
    responses=WRITE_RESPONSES,
    summary="Delete brand",
)
async def delete_brand(
    brand_id: int,
    service: ServiceDep,
    editor: EditorDep,
) -> DeleteResponse:
    """Delete a brand; its products keep existing without a brand."""
    detached = await service.delete_taxonomy("brands", brand_id)
    return DeleteResponse(products_detached=detached)
