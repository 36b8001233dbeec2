"""SQLAlchemy models for the product catalog.

Defines the taxonomy tables (categories, types, brands), products with
their variants and related links, and the derived search token table.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_api.domain.value_objects import LocalizedText
from catalog_api.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(Base):
    """Node of the category tree.

    The tree is stored flat: ``parent_id`` is a lookup relation, not an
    ownership one. It carries no foreign key so that deleting a parent
    leaves its children in place as orphans.

    Attributes:
        id: Category identifier (insertion order).
        name_en: English name.
        name_ko: Korean name.
        slug: Unique URL slug.
        parent_id: Parent category, None for roots.
        sort_order: Position among siblings.
        created_at: Creation timestamp.
    """

    __tablename__ = "categories"
    # Deleted ids are never reissued
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    name_ko: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, slug={self.slug}, parent_id={self.parent_id})>"

    @property
    def name(self) -> LocalizedText:
        """Localized name."""
        return LocalizedText.from_columns(self, "name")


class ProductType(Base):
    """Flat "type" facet."""

    __tablename__ = "types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    name_ko: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductType(id={self.id}, slug={self.slug})>"

    @property
    def name(self) -> LocalizedText:
        """Localized name."""
        return LocalizedText.from_columns(self, "name")


class Brand(Base):
    """Flat "brand" facet.

    Attributes:
        logo: Opaque media reference, stored as given.
        website: Brand homepage.
        is_featured: Whether the brand is shown on partner listings.
    """

    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    name_ko: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    logo: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    website: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_ko: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Brand(id={self.id}, slug={self.slug})>"

    @property
    def name(self) -> LocalizedText:
        """Localized name."""
        return LocalizedText.from_columns(self, "name")


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Product identifier (insertion order).
        slug: Globally unique URL slug.
        sku: Stock Keeping Unit (first variant SKU for variable products).
        mode: "simple" or "variable".
        category_id: Category, if assigned.
        type_id: Type facet, if assigned.
        brand_id: Brand facet, if assigned.
        image: Opaque media reference.
        is_published: Visible on public listings.
        is_featured: Member of the featured list.
        featured_order: Position within the featured list.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_en: Mapped[str] = mapped_column(String(500), nullable=False)
    name_ko: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    slug: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    sku: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String(20), nullable=False, default="simple")
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("types.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    brand_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("brands.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_ko: Mapped[str | None] = mapped_column(Text, nullable=True)
    features_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    features_ko: Mapped[str | None] = mapped_column(Text, nullable=True)
    detail_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    detail_ko: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    featured_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # Relationships (eager: async sessions cannot lazy load)
    category: Mapped["Category | None"] = relationship("Category", lazy="joined")
    type: Mapped["ProductType | None"] = relationship("ProductType", lazy="joined")
    brand: Mapped["Brand | None"] = relationship("Brand", lazy="joined")
    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.sort_order",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, sku={self.sku}, slug={self.slug[:30]})>"

    @property
    def name(self) -> LocalizedText:
        """Localized name."""
        return LocalizedText.from_columns(self, "name")


class ProductVariant(Base):
    """SKU-carrying variant of a variable product."""

    __tablename__ = "product_variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    name_ko: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    sku: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped["Product"] = relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductVariant(id={self.id}, sku={self.sku})>"


class ProductRelation(Base):
    """Directed "related product" link."""

    __tablename__ = "product_related"

    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    related_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )


class SearchToken(Base):
    """One distinct token of one indexed product field.

    Derived from the products table by the search index; rebuildable at
    any time and never written by anything else.
    """

    __tablename__ = "product_search_tokens"

    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    field: Mapped[str] = mapped_column(String(40), primary_key=True)
    token: Mapped[str] = mapped_column(String(200), primary_key=True, index=True)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
