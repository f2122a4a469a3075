"""create inventory ledger tables

Revision ID: 0001_inventory_ledger
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_inventory_ledger'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.CheckConstraint('cost_price >= 0', name='ck_products_cost_price'),
        sa.CheckConstraint('reorder_level >= 0', name='ck_products_reorder_level'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_code', 'products', ['code'], unique=True)

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(50)),
        sa.Column('resource', sa.String(50)),
        sa.Column('status', sa.String(20)),
        sa.Column('ip', sa.String(64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_logs_id', 'logs', ['id'])
    op.create_index('ix_logs_ts', 'logs', ['ts'])
    op.create_index('ix_logs_action', 'logs', ['action'])
    op.create_index('ix_logs_resource', 'logs', ['resource'])
    op.create_index('ix_logs_status', 'logs', ['status'])

    op.create_table(
        'inventory_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('batch_number', sa.String(100), nullable=False),
        sa.Column('source_type', sa.String(30), nullable=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('remaining_quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('received_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.CheckConstraint('quantity > 0', name='ck_batches_quantity_positive'),
        sa.CheckConstraint(
            'remaining_quantity >= 0 AND remaining_quantity <= quantity',
            name='ck_batches_remaining_range',
        ),
        sa.CheckConstraint('cost_price >= 0', name='ck_batches_cost_price'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_batches_id', 'inventory_batches', ['id'])
    op.create_index('ix_inventory_batches_product_id', 'inventory_batches', ['product_id'])
    op.create_index('ix_inventory_batches_batch_number', 'inventory_batches', ['batch_number'], unique=True)
    op.create_index('ix_inventory_batches_status', 'inventory_batches', ['status'])
    op.create_index('ix_batches_fefo', 'inventory_batches', ['product_id', 'status', 'expiry_date'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('batch_id', sa.Integer(), sa.ForeignKey('inventory_batches.id'), nullable=True),
        sa.Column('movement_type', sa.String(30), nullable=False),
        sa.Column('adjustment_type', sa.String(30), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('reference_type', sa.String(30), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reference_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.CheckConstraint('quantity <> 0', name='ck_movements_quantity_nonzero'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_movements_id', 'stock_movements', ['id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_batch_id', 'stock_movements', ['batch_id'])
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])
    op.create_index('ix_movements_reference', 'stock_movements', ['reference_type', 'reference_id'])

    op.create_table(
        'goods_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_number', sa.String(50), nullable=False),
        sa.Column(
            'status',
            sa.Enum('DRAFT', 'COMPLETED', 'CANCELLED', name='goodsreceiptstatus'),
            nullable=False,
        ),
        sa.Column('supplier_name', sa.String(), nullable=True),
        sa.Column('received_date', sa.DateTime(), nullable=False),
        sa.Column('received_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_goods_receipts_id', 'goods_receipts', ['id'])
    op.create_index('ix_goods_receipts_receipt_number', 'goods_receipts', ['receipt_number'], unique=True)

    op.create_table(
        'goods_receipt_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('goods_receipt_id', sa.Integer(), sa.ForeignKey('goods_receipts.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('received_quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('batch_number', sa.String(100), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_goods_receipt_items_id', 'goods_receipt_items', ['id'])
    op.create_index('ix_goods_receipt_items_goods_receipt_id', 'goods_receipt_items', ['goods_receipt_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('goods_receipt_items')
    op.drop_table('goods_receipts')
    op.drop_table('stock_movements')
    op.drop_table('inventory_batches')
    op.drop_table('logs')
    op.drop_table('products')
    op.drop_table('users')
    sa.Enum(name='goodsreceiptstatus').drop(op.get_bind(), checkfirst=True)
