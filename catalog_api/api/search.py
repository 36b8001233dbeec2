"""Quick search endpoint for search boxes."""

from fastapi import APIRouter, Query

from catalog_api.api.dependencies import ServiceDep
from catalog_api.api.products import taxonomy_ref
from catalog_api.api.schemas import LocalizedTextSchema, SearchHit, SearchResponse
from catalog_api.infrastructure.config import settings

router = APIRouter(prefix="/catalog", tags=["Search"])


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Quick search",
    description="Top published matches by name, SKU and description, best first.",
)
async def quick_search(
    service: ServiceDep,
    q: str = Query(default="", description="Search input"),
) -> SearchResponse:
    """Search published products.

    An input with no searchable characters returns no results.
    """
    products = await service.quick_search(q, settings.quick_search_limit)
    return SearchResponse(
        query=q,
        items=[
            SearchHit(
                id=p.id,
                name=LocalizedTextSchema.from_columns(p, "name"),
                slug=p.slug,
                sku=p.sku,
                image=p.image,
                category=taxonomy_ref(p.category),
            )
            for p in products
        ],
    )
