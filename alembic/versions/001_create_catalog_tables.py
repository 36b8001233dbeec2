"""Create catalog tables.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create taxonomy, product and search index tables."""
    # Category tree (parent_id is a lookup without a foreign key)
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name_en', sa.String(200), nullable=False),
        sa.Column('name_ko', sa.String(200), nullable=False, server_default=''),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('parent_id', sa.Integer(), nullable=True, index=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sqlite_autoincrement=True,
    )

    # Flat facets
    op.create_table(
        'types',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name_en', sa.String(200), nullable=False),
        sa.Column('name_ko', sa.String(200), nullable=False, server_default=''),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_table(
        'brands',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name_en', sa.String(200), nullable=False),
        sa.Column('name_ko', sa.String(200), nullable=False, server_default=''),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('logo', sa.String(1000), nullable=True),
        sa.Column('website', sa.String(1000), nullable=True),
        sa.Column('description_en', sa.Text(), nullable=True),
        sa.Column('description_ko', sa.Text(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Products table
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name_en', sa.String(500), nullable=False),
        sa.Column('name_ko', sa.String(500), nullable=False, server_default=''),
        sa.Column('slug', sa.String(500), nullable=False, unique=True),
        sa.Column('sku', sa.String(200), nullable=False, index=True),
        sa.Column('mode', sa.String(20), nullable=False, server_default='simple'),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('type_id', sa.Integer(),
                  sa.ForeignKey('types.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('brand_id', sa.Integer(),
                  sa.ForeignKey('brands.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('description_en', sa.Text(), nullable=True),
        sa.Column('description_ko', sa.Text(), nullable=True),
        sa.Column('features_en', sa.Text(), nullable=True),
        sa.Column('features_ko', sa.Text(), nullable=True),
        sa.Column('detail_en', sa.Text(), nullable=True),
        sa.Column('detail_ko', sa.Text(), nullable=True),
        sa.Column('image', sa.String(1000), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='false', index=True),
        sa.Column('featured_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Product variants table
    op.create_table(
        'product_variants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name_en', sa.String(200), nullable=False),
        sa.Column('name_ko', sa.String(200), nullable=False, server_default=''),
        sa.Column('sku', sa.String(200), nullable=False, index=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )

    # Related product links
    op.create_table(
        'product_related',
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('related_id', sa.Integer(),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
    )

    # Derived text index
    op.create_table(
        'product_search_tokens',
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('field', sa.String(40), primary_key=True),
        sa.Column('token', sa.String(200), primary_key=True),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index(
        'ix_product_search_tokens_token',
        'product_search_tokens',
        ['token'],
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_index('ix_product_search_tokens_token', table_name='product_search_tokens')
    op.drop_table('product_search_tokens')
    op.drop_table('product_related')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('brands')
    op.drop_table('types')
    op.drop_table('categories')
