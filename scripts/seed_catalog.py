#!/usr/bin/env python3
"""Seed product catalog script.

Creates the catalog tables and seeds a sample pathology taxonomy with
brands, types and products. Products are written through the catalog
service, so the search index is populated as they are created.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --reset
"""

import argparse
import asyncio

from sqlalchemy import func, select

from catalog_api.catalog.models import Category
from catalog_api.catalog.service import CatalogService
from catalog_api.infrastructure.database import async_session_factory, create_tables, engine

BRANDS = [
    {
        "name_en": "Epredia",
        "name_ko": "에프레디아",
        "website": "https://www.epredia.com",
        "description_en": "Instruments, reagents and consumables for histology and cytology laboratories.",
        "description_ko": "조직병리 및 세포병리 검사실용 장비, 시약 및 소모품.",
    },
    {
        "name_en": "3DHISTECH",
        "name_ko": "3D히스테크",
        "website": "https://www.3dhistech.com",
        "description_en": "Slide scanners, image analysis and telepathology solutions.",
        "description_ko": "슬라이드 스캐너, 이미지 분석, 원격병리 솔루션.",
    },
    {
        "name_en": "Hologic",
        "name_ko": "홀로직",
        "website": "https://www.hologic.com",
        "description_en": "Women's health diagnostics including ThinPrep cytology systems.",
        "description_ko": "씬프렙 세포병리 시스템을 포함한 여성 건강 진단.",
    },
]

TYPES = [
    {"name_en": "Instruments", "name_ko": "장비"},
    {"name_en": "Consumables", "name_ko": "소모품"},
    {"name_en": "Reagents", "name_ko": "시약"},
]

# Root name -> list of (child name_en, child name_ko)
CATEGORIES = {
    ("Histology", "조직병리"): [
        ("Tissue Processing", "조직처리"),
        ("Microtomy", "박절"),
        ("Coverslipping", "커버슬리핑"),
    ],
    ("Cytology", "세포병리"): [
        ("ThinPrep", "씬프렙"),
        ("Cell Block", "셀블록"),
    ],
    ("Digital Pathology", "디지털 병리"): [
        ("Slide Scanners", "슬라이드 스캐너"),
        ("Image Analysis", "이미지 분석"),
    ],
}

PRODUCTS = [
    {
        "name_en": "Revos Tissue Processor",
        "name_ko": "Revos 자동 조직처리기",
        "sku": "A84100001A",
        "category": "tissue-processing",
        "type": "instruments",
        "brand": "epredia",
        "description_en": "Workflow-enhancing tissue processor with reduced processing time.",
        "description_ko": "처리 시간을 단축한 조직처리기.",
        "is_featured": True,
    },
    {
        "name_en": "ClearVue Coverslipper",
        "name_ko": "ClearVue 커버슬리퍼",
        "sku": "4568",
        "category": "coverslipping",
        "type": "instruments",
        "brand": "epredia",
        "description_en": "Speed and accuracy for the busiest laboratories.",
        "description_ko": "가장 바쁜 검사실의 커버슬리핑 작업을 빠르고 정확하게 완료합니다.",
        "is_featured": True,
    },
    {
        "name_en": "PANNORAMIC 250 Flash III",
        "name_ko": "PANNORAMIC 250 Flash III",
        "sku": "P250-F3",
        "category": "slide-scanners",
        "type": "instruments",
        "brand": "3dhistech",
        "description_en": "Flash scanning technology with a 300-slide capacity and continuous loading.",
        "description_ko": "300 슬라이드 용량과 연속 로딩을 갖춘 Flash 스캐닝 기술.",
        "is_featured": True,
    },
    {
        "name_en": "HP35 Disposable Microtome Blades",
        "name_ko": "HP35 일회용 마이크로톰 블레이드",
        "sku": "3052835",
        "category": "microtomy",
        "type": "consumables",
        "brand": "epredia",
        "description_en": "Coated for reliable and consistent thin sectioning.",
        "description_ko": "일관된 박절을 위해 코팅된 블레이드.",
    },
    {
        "name_en": "ThinPrep 5000 Processor",
        "name_ko": "ThinPrep 5000 프로세서",
        "sku": "TP5000",
        "category": "thinprep",
        "type": "instruments",
        "brand": "hologic",
        "description_en": "Automated liquid-based cytology slide preparation.",
        "description_ko": "자동 액상 세포병리 슬라이드 제작.",
        "is_published": False,
    },
]


async def seed(service: CatalogService) -> dict[str, int]:
    """Seed the sample catalog.

    Args:
        service: Catalog service bound to a session.

    Returns:
        Counts of created rows per table.
    """
    brand_ids: dict[str, int] = {}
    for values in BRANDS:
        brand = await service.create_taxonomy("brands", values)
        brand_ids[brand.slug] = brand.id

    type_ids: dict[str, int] = {}
    for values in TYPES:
        product_type = await service.create_taxonomy("types", values)
        type_ids[product_type.slug] = product_type.id

    category_ids: dict[str, int] = {}
    for (root_en, root_ko), children in CATEGORIES.items():
        root = await service.create_taxonomy("categories", {"name_en": root_en, "name_ko": root_ko})
        category_ids[root.slug] = root.id
        for child_en, child_ko in children:
            child = await service.create_taxonomy(
                "categories",
                {"name_en": child_en, "name_ko": child_ko, "parent_id": root.id},
            )
            category_ids[child.slug] = child.id

    for row in PRODUCTS:
        values = {k: v for k, v in row.items() if k not in ("category", "type", "brand")}
        values["category_id"] = category_ids[row["category"]]
        values["type_id"] = type_ids[row["type"]]
        values["brand_id"] = brand_ids[row["brand"]]
        await service.create_product(values)

    return {
        "brands": len(brand_ids),
        "types": len(type_ids),
        "categories": len(category_ids),
        "products": len(PRODUCTS),
    }


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed the product catalog with sample data",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all catalog tables before seeding",
    )

    args = parser.parse_args()

    print("=" * 60)
    print("Catalog Seeder")
    print("=" * 60)

    print("Resetting database tables..." if args.reset else "Creating database tables...")
    await create_tables(reset=args.reset)
    print("Tables ready.")
    print()

    async with async_session_factory() as session:
        existing = await session.execute(select(func.count(Category.id)))
        if existing.scalar_one() > 0:
            print("Catalog already seeded; use --reset to start over.")
            await engine.dispose()
            return

        result = await seed(CatalogService(session))

    print(f"  ✓ Brands: {result['brands']}")
    print(f"  ✓ Types: {result['types']}")
    print(f"  ✓ Categories: {result['categories']}")
    print(f"  ✓ Products: {result['products']}")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
