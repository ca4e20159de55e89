"""create_inventory_tables

Revision ID: 3c1f9a7d2b10
Revises:
Create Date: 2026-10-18 09:12:41.530117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - users, credentials, materials, mappings, ledger and purchasing."""

    conn = op.get_bind()
    inspector = sa.inspect(conn)

    def table_exists(name):
        return inspector.has_table(name)

    if not table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('username', sa.String(length=50), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('email', sa.String(length=100), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('username')
        )

    if not table_exists('store_credentials'):
        op.create_table(
            'store_credentials',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('store_url', sa.String(length=500), nullable=False),
            sa.Column('consumer_key_encrypted', sa.Text(), nullable=False),
            sa.Column('consumer_secret_encrypted', sa.Text(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    if not table_exists('raw_materials'):
        op.create_table(
            'raw_materials',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('external_id', sa.Integer(), nullable=True),
            sa.Column('name', sa.String(length=500), nullable=False),
            sa.Column('sku', sa.String(length=100), nullable=True),
            sa.Column('type', sa.String(length=20), nullable=False, server_default='simple'),
            sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('manage_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
            sa.Column('image_url', sa.Text(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_raw_materials_external_id', 'raw_materials', ['external_id'])

    if not table_exists('raw_material_variations'):
        op.create_table(
            'raw_material_variations',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('material_id', sa.Integer(), nullable=False),
            sa.Column('external_id', sa.Integer(), nullable=True),
            sa.Column('name', sa.String(length=500), nullable=False),
            sa.Column('sku', sa.String(length=100), nullable=True),
            sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('manage_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
            sa.Column('attributes', sa.Text(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['material_id'], ['raw_materials.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_raw_material_variations_material_id', 'raw_material_variations', ['material_id'])
        op.create_index('ix_raw_material_variations_external_id', 'raw_material_variations', ['external_id'])

    if not table_exists('material_product_mappings'):
        op.create_table(
            'material_product_mappings',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=False),
            sa.Column('variation_id', sa.Integer(), nullable=True),
            sa.Column('material_product_id', sa.Integer(), nullable=False),
            sa.Column('material_variation_id', sa.Integer(), nullable=True),
            sa.Column('quantity_used', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_material_product_mappings_product_id', 'material_product_mappings', ['product_id'])
        op.create_index(
            'ix_material_product_mappings_material_product_id',
            'material_product_mappings',
            ['material_product_id'],
        )
        op.create_index(
            'uq_material_product_mapping',
            'material_product_mappings',
            [
                sa.text('material_product_id'),
                sa.text('coalesce(material_variation_id, 0)'),
                sa.text('product_id'),
                sa.text('coalesce(variation_id, 0)'),
            ],
            unique=True,
        )

    if not table_exists('stock_ledger'):
        op.create_table(
            'stock_ledger',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('material_product_id', sa.Integer(), nullable=False),
            sa.Column('material_variation_id', sa.Integer(), nullable=True),
            sa.Column('order_id', sa.Integer(), nullable=True),
            sa.Column('order_number', sa.String(length=50), nullable=True),
            sa.Column('quantity_change', sa.Integer(), nullable=False),
            sa.Column('previous_stock', sa.Integer(), nullable=False),
            sa.Column('new_stock', sa.Integer(), nullable=False),
            sa.Column('reason', sa.String(length=50), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_stock_ledger_target', 'stock_ledger', ['material_product_id', 'material_variation_id'])
        op.create_index('ix_stock_ledger_created_at', 'stock_ledger', ['created_at'])

    if not table_exists('processed_orders'):
        op.create_table(
            'processed_orders',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('order_id', sa.Integer(), nullable=False),
            sa.Column('order_number', sa.String(length=50), nullable=True),
            sa.Column('processed_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('order_id')
        )

    if not table_exists('suppliers'):
        op.create_table(
            'suppliers',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('contact_name', sa.String(length=255), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('phone', sa.String(length=50), nullable=True),
            sa.Column('address', sa.Text(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    if not table_exists('purchase_orders'):
        op.create_table(
            'purchase_orders',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('po_number', sa.String(length=50), nullable=False),
            sa.Column('supplier_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=30), nullable=False, server_default='draft'),
            sa.Column('order_date', sa.DateTime(), nullable=True),
            sa.Column('expected_delivery_date', sa.DateTime(), nullable=True),
            sa.Column('received_date', sa.DateTime(), nullable=True),
            sa.Column('subtotal', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('shipping_cost', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('shipping_vat_rate', sa.Numeric(5, 2), nullable=False, server_default='0'),
            sa.Column('shipping_vat', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('vat_total', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('grand_total', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('po_number')
        )
        op.create_index('ix_purchase_orders_supplier_id', 'purchase_orders', ['supplier_id'])
        op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    if not table_exists('purchase_order_items'):
        op.create_table(
            'purchase_order_items',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('purchase_order_id', sa.Integer(), nullable=False),
            sa.Column('material_product_id', sa.Integer(), nullable=False),
            sa.Column('material_variation_id', sa.Integer(), nullable=True),
            sa.Column('material_name', sa.String(length=500), nullable=False),
            sa.Column('quantity_ordered', sa.Integer(), nullable=False),
            sa.Column('quantity_received', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
            sa.Column('vat_rate', sa.Numeric(5, 2), nullable=False, server_default='23.00'),
            sa.Column('line_subtotal', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('line_vat', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('line_total', sa.Numeric(10, 2), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])


def downgrade() -> None:
    """Downgrade schema - drop every table created above."""
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('suppliers')
    op.drop_table('processed_orders')
    op.drop_table('stock_ledger')
    op.drop_table('material_product_mappings')
    op.drop_table('raw_material_variations')
    op.drop_table('raw_materials')
    op.drop_table('store_credentials')
    op.drop_table('users')
