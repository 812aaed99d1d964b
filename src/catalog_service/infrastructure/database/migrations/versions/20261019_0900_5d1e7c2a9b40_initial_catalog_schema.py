"""Initial catalog schema

Revision ID: 5d1e7c2a9b40
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5d1e7c2a9b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create stores table
    op.create_table('stores',
    sa.Column('id', sa.String(length=64), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('default_currency_code', sa.String(length=3), nullable=False),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )

    # Create product_categories table
    op.create_table('product_categories',
    sa.Column('id', sa.String(length=64), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('handle', sa.String(length=255), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('parent_category_id', sa.String(length=64), nullable=True),
    sa.Column('rank', sa.Integer(), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['parent_category_id'], ['catalog.product_categories.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_product_categories_handle'), 'product_categories', ['handle'], unique=True, schema='catalog')
    op.create_index(op.f('ix_catalog_product_categories_parent_category_id'), 'product_categories', ['parent_category_id'], unique=False, schema='catalog')
    op.create_index('ix_product_categories_parent_rank', 'product_categories', ['parent_category_id', 'rank'], unique=False, schema='catalog')

    # Create products table
    op.create_table('products',
    sa.Column('id', sa.String(length=64), nullable=False),
    sa.Column('title', sa.String(length=500), nullable=False),
    sa.Column('handle', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('status', sa.Enum('DRAFT', 'PUBLISHED', name='productstatus', schema='catalog'), nullable=False),
    sa.Column('external_id', sa.String(length=255), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_products_handle'), 'products', ['handle'], unique=True, schema='catalog')
    op.create_index(op.f('ix_catalog_products_external_id'), 'products', ['external_id'], unique=False, schema='catalog')

    # Create product_variants table
    op.create_table('product_variants',
    sa.Column('id', sa.String(length=64), nullable=False),
    sa.Column('product_id', sa.String(length=64), nullable=False),
    sa.Column('title', sa.String(length=500), nullable=False),
    sa.Column('sku', sa.String(length=255), nullable=False),
    sa.Column('options', sa.JSON(), nullable=False),
    sa.Column('prices', sa.JSON(), nullable=False),
    sa.Column('inventory_quantity', sa.Integer(), nullable=False),
    sa.Column('metadata', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['product_id'], ['catalog.products.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_product_variants_product_id'), 'product_variants', ['product_id'], unique=False, schema='catalog')
    op.create_index(op.f('ix_catalog_product_variants_sku'), 'product_variants', ['sku'], unique=True, schema='catalog')

    # Create batch_jobs table
    op.create_table('batch_jobs',
    sa.Column('id', sa.String(length=64), nullable=False),
    sa.Column('type', sa.String(length=100), nullable=False),
    sa.Column('status', sa.Enum('CREATED', 'PRE_PROCESSED', 'PROCESSING', 'COMPLETED', 'FAILED', name='batchjobstatus', schema='catalog'), nullable=False),
    sa.Column('context', sa.JSON(), nullable=False),
    sa.Column('result', sa.JSON(), nullable=True),
    sa.Column('pre_processed_at', sa.DateTime(), nullable=True),
    sa.Column('processing_at', sa.DateTime(), nullable=True),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    sa.Column('failed_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='catalog'
    )
    op.create_index(op.f('ix_catalog_batch_jobs_type'), 'batch_jobs', ['type'], unique=False, schema='catalog')
    op.create_index(op.f('ix_catalog_batch_jobs_status'), 'batch_jobs', ['status'], unique=False, schema='catalog')

    # Seed the default store used by scheduled imports
    op.execute(
        "INSERT INTO catalog.stores (id, name, default_currency_code, metadata) "
        "VALUES ('store_default', 'Default Store', 'usd', '{}')"
    )


def downgrade() -> None:
    op.drop_index(op.f('ix_catalog_batch_jobs_status'), table_name='batch_jobs', schema='catalog')
    op.drop_index(op.f('ix_catalog_batch_jobs_type'), table_name='batch_jobs', schema='catalog')
    op.drop_table('batch_jobs', schema='catalog')
    op.drop_index(op.f('ix_catalog_product_variants_sku'), table_name='product_variants', schema='catalog')
    op.drop_index(op.f('ix_catalog_product_variants_product_id'), table_name='product_variants', schema='catalog')
    op.drop_table('product_variants', schema='catalog')
    op.drop_index(op.f('ix_catalog_products_external_id'), table_name='products', schema='catalog')
    op.drop_index(op.f('ix_catalog_products_handle'), table_name='products', schema='catalog')
    op.drop_table('products', schema='catalog')
    op.drop_index('ix_product_categories_parent_rank', table_name='product_categories', schema='catalog')
    op.drop_index(op.f('ix_catalog_product_categories_parent_category_id'), table_name='product_categories', schema='catalog')
    op.drop_index(op.f('ix_catalog_product_categories_handle'), table_name='product_categories', schema='catalog')
    op.drop_table('product_categories', schema='catalog')
    op.drop_table('stores', schema='catalog')
    sa.Enum(name='batchjobstatus', schema='catalog').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='productstatus', schema='catalog').drop(op.get_bind(), checkfirst=True)
