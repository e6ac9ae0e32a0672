"""Initial schema: products, ledger, BOM, users, attachments

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers used by Alembic
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'])
    op.create_index(op.f('ix_users_name'), 'users', ['name'], unique=True)

    # Products and their stock
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('tag', sa.String(length=32)),
        sa.Column('product_code', sa.String(length=64)),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('current_stock', sa.Numeric(14, 3), nullable=False),
        sa.Column('min_stock_level', sa.Numeric(14, 3), nullable=False),
        sa.Column('unit_per_box', sa.Integer(), nullable=False),
        sa.Column('stock_boxes', sa.Integer(), nullable=False),
        sa.Column('supplier', sa.String()),
        sa.Column('supplier_code', sa.String()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('current_stock >= 0'),
        sa.CheckConstraint('unit_per_box >= 0'),
    )
    op.create_index(op.f('ix_products_id'), 'products', ['id'])
    op.create_index(op.f('ix_products_tag'), 'products', ['tag'])
    op.create_index(op.f('ix_products_product_code'), 'products', ['product_code'])
    op.create_index(op.f('ix_products_name'), 'products', ['name'])
    op.create_index(op.f('ix_products_category'), 'products', ['category'])

    op.create_table(
        'product_sequences',
        sa.Column('category', sa.String(length=32), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
    )

    op.create_table(
        'product_skus',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sku', sa.String(length=128), nullable=False),
        sa.Column('sku_type', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=64), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
    )
    op.create_index(op.f('ix_product_skus_id'), 'product_skus', ['id'])
    op.create_index(op.f('ix_product_skus_sku'), 'product_skus', ['sku'], unique=True)
    op.create_index(op.f('ix_product_skus_product_id'), 'product_skus', ['product_id'])

    op.create_table(
        'incoming_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.String(length=64), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_number', sa.String(length=64)),
        sa.Column('sku', sa.String(length=128)),
        sa.Column('quantity', sa.Numeric(14, 3), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_incoming_orders_id'), 'incoming_orders', ['id'])
    op.create_index(op.f('ix_incoming_orders_product_id'), 'incoming_orders', ['product_id'])

    # Stock ledger
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.String(length=64), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('product_code', sa.String(length=64)),
        sa.Column('product_name', sa.String()),
        sa.Column('category', sa.String(length=32)),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Numeric(14, 3), nullable=False),
        sa.Column('unit', sa.String(length=16)),
        sa.Column('balance_after', sa.Numeric(14, 3), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('shopify_order_id', sa.String(length=64)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('quantity > 0'),
    )
    op.create_index(op.f('ix_transactions_id'), 'transactions', ['id'])
    op.create_index(op.f('ix_transactions_product_id'), 'transactions', ['product_id'])
    op.create_index(op.f('ix_transactions_category'), 'transactions', ['category'])
    op.create_index(op.f('ix_transactions_type'), 'transactions', ['type'])
    op.create_index(op.f('ix_transactions_shopify_order_id'), 'transactions', ['shopify_order_id'])
    op.create_index(op.f('ix_transactions_created_at'), 'transactions', ['created_at'])

    op.create_table(
        'bom',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('variant', sa.String(length=32), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('component_code', sa.String(length=64), nullable=False),
        sa.Column('component_name', sa.String()),
        sa.Column('quantity', sa.Numeric(14, 3), nullable=False),
        sa.CheckConstraint('quantity > 0'),
        sa.UniqueConstraint('variant', 'component_code', name='uq_bom_variant_component'),
    )
    op.create_index(op.f('ix_bom_id'), 'bom', ['id'])
    op.create_index(op.f('ix_bom_variant'), 'bom', ['variant'])

    op.create_table(
        'processed_order_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_ref', sa.String(length=64), nullable=False),
        sa.Column('topic', sa.String(length=32), nullable=False),
        sa.Column('line_index', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=128)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('order_ref', 'topic', 'line_index', name='uq_processed_order_line'),
    )
    op.create_index(op.f('ix_processed_order_lines_id'), 'processed_order_lines', ['id'])
    op.create_index(op.f('ix_processed_order_lines_order_ref'), 'processed_order_lines', ['order_ref'])

    op.create_table(
        'attachments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('stored_file_name', sa.String(), nullable=False, unique=True),
        sa.Column('file_type', sa.String(length=128)),
        sa.Column('file_size', sa.Integer()),
        sa.Column('file_path', sa.String(), nullable=False),
        sa.Column('associated_oil_id', sa.String(length=64)),
        sa.Column('associated_oil_name', sa.String()),
        sa.Column('uploaded_by', sa.String(length=64)),
        sa.Column('notes', sa.Text()),
        sa.Column('upload_date', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_attachments_id'), 'attachments', ['id'])
    op.create_index(op.f('ix_attachments_associated_oil_id'), 'attachments', ['associated_oil_id'])
    op.create_index(op.f('ix_attachments_upload_date'), 'attachments', ['upload_date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(length=50)),
        sa.Column('resource', sa.String(length=50)),
        sa.Column('status', sa.String(length=20)),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'])
    op.create_index(op.f('ix_audit_logs_ts'), 'audit_logs', ['ts'])
    op.create_index(op.f('ix_audit_logs_action'), 'audit_logs', ['action'])
    op.create_index(op.f('ix_audit_logs_resource'), 'audit_logs', ['resource'])
    op.create_index(op.f('ix_audit_logs_status'), 'audit_logs', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('attachments')
    op.drop_table('processed_order_lines')
    op.drop_table('bom')
    op.drop_table('transactions')
    op.drop_table('incoming_orders')
    op.drop_table('product_skus')
    op.drop_table('product_sequences')
    op.drop_table('products')
    op.drop_table('users')
