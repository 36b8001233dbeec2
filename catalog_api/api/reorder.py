"""Reorder API endpoints.

Editors move categories, types, brands and featured products either one
step at a time or by submitting a whole ordered list.
"""

from fastapi import APIRouter

from catalog_api.api.dependencies import EditorDep, ServiceDep
from catalog_api.api.schemas import (
    ErrorResponse,
    ReorderBatchRequest,
    ReorderBatchResponse,
    ReorderRequest,
    ReorderResponse,
)
from catalog_api.catalog.ordering import parse_scope

router = APIRouter(prefix="/catalog", tags=["Ordering"])

REORDER_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "/reorder",
    response_model=ReorderResponse,
    responses=REORDER_RESPONSES,
    summary="Move one step",
    description=(
        "Swap an item with its neighbor in its sibling group. Moving past "
        "either end of the group succeeds without changes."
    ),
)
async def reorder(
    body: ReorderRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> ReorderResponse:
    """Move an item up or down one position.

    Args:
        body: Scope, item id and direction.
        service: Catalog service.
        editor: Authenticated editor.

    Returns:
        Whether the item moved and its new neighbor.
    """
    result = await service.move(parse_scope(body.scope), body.id, body.direction)
    return ReorderResponse(
        scope=result.scope.value,
        id=result.entity_id,
        moved=result.moved,
        swapped_with=result.swapped_with,
    )


@router.post(
    "/reorder-batch",
    response_model=ReorderBatchResponse,
    responses=REORDER_RESPONSES,
    summary="Rewrite order",
    description="Set each listed item's order to its position in orderedIds.",
)
async def reorder_batch(
    body: ReorderBatchRequest,
    service: ServiceDep,
    editor: EditorDep,
) -> ReorderBatchResponse:
    """Rewrite the order of a list of items in one transaction."""
    scope = parse_scope(body.scope)
    updated = await service.reorder(scope, body.ordered_ids)
    return ReorderBatchResponse(scope=scope.value, updated=updated)
