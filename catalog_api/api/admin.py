"""Admin API endpoints.

Editor-only listings that include unpublished products, dashboard
counters and the text index rebuild.
"""

from fastapi import APIRouter

from catalog_api.api.dependencies import EditorDep, ServiceDep
from catalog_api.api.products import (
    BrandParam,
    CategoryParam,
    LocaleParam,
    PageParam,
    PageSizeParam,
    SearchParam,
    SortParam,
    TypeParam,
    build_query,
    page_to_response,
    product_to_response,
)
from catalog_api.api.schemas import (
    ErrorResponse,
    FeaturedListResponse,
    ProductListResponse,
    ReindexResponse,
    StatsResponse,
)
from catalog_api.domain.value_objects import Audience, Locale, SortMode
from catalog_api.infrastructure.config import settings

router = APIRouter(
    prefix="/catalog/admin",
    tags=["Admin"],
    responses={401: {"model": ErrorResponse}},
)


@router.get(
    "/products",
    response_model=ProductListResponse,
    summary="List all products",
    description="Same filters as the public listing, including unpublished products.",
)
async def list_all_products(
    service: ServiceDep,
    editor: EditorDep,
    category: CategoryParam = None,
    type_: TypeParam = None,
    brand: BrandParam = None,
    search: SearchParam = None,
    page: PageParam = 1,
    page_size: PageSizeParam = None,
    sort: SortParam = SortMode.NEWEST,
    locale: LocaleParam = Locale.EN,
) -> ProductListResponse:
    """List products for editors."""
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
    return page_to_response(await service.list_products(query, Audience.ADMIN))


@router.get(
    "/featured",
    response_model=FeaturedListResponse,
    summary="List featured products",
    description="Every featured product in featured order, published or not.",
)
async def list_all_featured(service: ServiceDep, editor: EditorDep) -> FeaturedListResponse:
    """List featured products for editors."""
    products = await service.featured_products(Audience.ADMIN)
    return FeaturedListResponse(items=[product_to_response(p) for p in products])


@router.get("/stats", response_model=StatsResponse, summary="Catalog counters")
async def get_stats(service: ServiceDep, editor: EditorDep) -> StatsResponse:
    """Get dashboard counters."""
    stats = await service.stats()
    return StatsResponse(
        total_products=stats.total_products,
        published_products=stats.published_products,
        featured_products=stats.featured_products,
        categories=stats.categories,
        types=stats.types,
        brands=stats.brands,
    )


@router.post(
    "/reindex",
    response_model=ReindexResponse,
    summary="Rebuild search index",
    description="Re-derive every search index row from the products table.",
)
async def rebuild_index(service: ServiceDep, editor: EditorDep) -> ReindexResponse:
    """Rebuild the text index."""
    count = await service.rebuild_index()
    return ReindexResponse(products_indexed=count)
