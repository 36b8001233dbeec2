"""Category API endpoints.

Provides the flattened category tree and editor writes.
"""

from fastapi import APIRouter, status

from catalog_api.api.dependencies import EditorDep, ServiceDep
from catalog_api.api.schemas import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    DeleteResponse,
    ErrorResponse,
    LocalizedTextSchema,
)
from catalog_api.catalog.taxonomy import CategoryEntry

router = APIRouter(prefix="/catalog/categories", tags=["Categories"])


# ============================================================================
# Converters
# ============================================================================


def category_to_response(entry: CategoryEntry) -> CategoryResponse:
    """Convert a positioned category to response schema."""
    category = entry.category
    return CategoryResponse(
        id=category.id,
        name=LocalizedTextSchema.from_columns(category, "name"),
        slug=category.slug,
        sort_order=category.sort_order,
        created_at=category.created_at,
        parent_id=category.parent_id,
        depth=entry.depth,
        is_orphan=entry.is_orphan,
        parent_name=(
            LocalizedTextSchema(en=entry.parent_name.en, ko=entry.parent_name.ko)
            if entry.parent_name
            else None
        ),
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List categories",
    description="All categories flattened depth-first; orphans are listed last.",
)
async def list_categories(service: ServiceDep) -> list[CategoryResponse]:
    """List categories in display order."""
    entries = await service.list_categories()
    return [category_to_response(entry) for entry in entries]


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Create category",
)
async def create_category(
    body: CategoryCreateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> CategoryResponse:
    """Create a category.

    The tree is limited to three levels; a parent at depth 3 is rejected.

    Args:
        body: Category fields.
        service: Catalog service.
        editor: Authenticated editor.

    Returns:
        Created category.
    """
    category = await service.create_taxonomy("categories", body.model_dump(exclude_none=True))
    return category_to_response(await service.category_entry(category.id))


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Update category",
)
async def update_category(
    category_id: int,
    body: CategoryUpdateRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> CategoryResponse:
    """Update a category; moving it re-validates depth and cycles."""
    await service.update_taxonomy("categories", category_id, body.model_dump(exclude_unset=True))
    return category_to_response(await service.category_entry(category_id))


@router.delete(
    "/{category_id}",
    response_model=DeleteResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Delete category",
    description="Products in the category are detached; child categories become orphans.",
)
async def delete_category(
    category_id: int,
    service: ServiceDep,
    editor: EditorDep,
) -> DeleteResponse:
    """Delete a category."""
    detached = await service.delete_taxonomy("categories", category_id)
    return DeleteResponse(products_detached=detached)
