"""initial shop schema

Revision ID: 3c7e1f0a9b21
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the complete schema:
- users: shop staff (deactivated, never deleted)
- customers: loyalty points and spend aggregates
- products: single table for ice / gas / water (polymorphic on category)
- discounts: percent, fixed and buy-x-get-y promotions
- sales, sale_items: completed sales with price snapshots
- stock_logs: append-only audit of every stock mutation
- stock_receipts: goods received
- daily_stock_counts: end-of-day ice counts and melt loss
- outstanding_cylinders: gas deposit liability
- queued_operations: offline write queue
- app_settings: key/value settings
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7e1f0a9b21'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='cashier'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_spent_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('visit_count', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'])
    op.create_index('ix_customers_phone', 'customers', ['phone'])

    # ============================================================================
    # products: category-specific columns are nullable
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('image', sa.String(length=512), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Float(), nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Float(), nullable=False, server_default='5'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        # ice
        sa.Column('melt_rate_percent', sa.Float(), nullable=True),
        # gas
        sa.Column('deposit_amount_cents', sa.Integer(), nullable=True),
        sa.Column('outright_price_cents', sa.Integer(), nullable=True),
        sa.Column('empty_stock', sa.Float(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_is_active', 'products', ['is_active'])
    op.create_index('ix_products_category_active', 'products', ['category', 'is_active'])

    # ============================================================================
    # discounts
    # ============================================================================
    op.create_table(
        'discounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_purchase_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buy_quantity', sa.Integer(), nullable=True),
        sa.Column('get_quantity', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # sales / sale_items
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deposit_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='cash'),
        sa.Column('payment_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('discount_id', sa.Integer(), nullable=True),
        sa.Column('discount_name', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('points_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('receipt_printed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('print_count', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['discount_id'], ['discounts.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_customer_created', 'sales', ['customer_id', 'created_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('gas_sale_type', sa.String(length=16), nullable=True),
        sa.Column('deposit_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # stock_logs: append-only
    # ============================================================================
    op.create_table(
        'stock_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('change_amount', sa.Float(), nullable=False),
        sa.Column('stock_type', sa.String(length=8), nullable=False, server_default='full'),
        sa.Column('stock_after', sa.Float(), nullable=True),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_logs_product_id', 'stock_logs', ['product_id'])
    op.create_index('ix_stock_logs_sale_id', 'stock_logs', ['sale_id'])
    op.create_index('ix_stock_logs_product_created', 'stock_logs', ['product_id', 'created_at'])
    op.create_index('ix_stock_logs_reason_created', 'stock_logs', ['reason', 'created_at'])

    op.create_table(
        'stock_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=True),
        sa.Column('total_cost_cents', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_receipts_product_id', 'stock_receipts', ['product_id'])
    op.create_index('ix_stock_receipts_received_at', 'stock_receipts', ['received_at'])

    # ============================================================================
    # daily_stock_counts: one row per product per day
    # ============================================================================
    op.create_table(
        'daily_stock_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('count_date', sa.Date(), nullable=False),
        sa.Column('system_stock', sa.Float(), nullable=False),
        sa.Column('sold_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('expected_stock', sa.Float(), nullable=False),
        sa.Column('actual_stock', sa.Float(), nullable=False),
        sa.Column('melt_loss', sa.Float(), nullable=False, server_default='0'),
        sa.Column('melt_loss_value_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('melt_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('expected_melt_percent', sa.Float(), nullable=False),
        sa.Column('surplus', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_abnormal', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'count_date', name='uq_daily_counts_product_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_daily_stock_counts_product_id', 'daily_stock_counts', ['product_id'])
    op.create_index('ix_daily_stock_counts_count_date', 'daily_stock_counts', ['count_date'])

    # ============================================================================
    # outstanding_cylinders: deposit liability
    # ============================================================================
    op.create_table(
        'outstanding_cylinders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('sale_item_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('deposit_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('returned_by_user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['sale_item_id'], ['sale_items.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['returned_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_outstanding_cylinders_sale_id', 'outstanding_cylinders', ['sale_id'])
    op.create_index('ix_outstanding_cylinders_product_id', 'outstanding_cylinders', ['product_id'])
    op.create_index('ix_outstanding_cylinders_customer_id', 'outstanding_cylinders', ['customer_id'])
    op.create_index('ix_outstanding_status_product', 'outstanding_cylinders', ['status', 'product_id'])

    # ============================================================================
    # queued_operations / app_settings
    # ============================================================================
    op.create_table(
        'queued_operations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('retries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_queued_operations_status', 'queued_operations', ['status', 'id'])

    op.create_table(
        'app_settings',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value_json', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('key')
    )


def downgrade():
    op.drop_table('app_settings')
    op.drop_index('ix_queued_operations_status', table_name='queued_operations')
    op.drop_table('queued_operations')
    op.drop_table('outstanding_cylinders')
    op.drop_table('daily_stock_counts')
    op.drop_table('stock_receipts')
    op.drop_table('stock_logs')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('discounts')
    op.drop_table('products')
    op.drop_table('customers')
    op.drop_table('users')
