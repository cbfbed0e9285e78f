"""inventory core schema

Revision ID: 0001_inventory_core
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the full stockroom schema:
- businesses, branches, users, owner_business_links: tenancy
- items, item_barcodes: catalog lookup
- stock_levels, inventory_movements: the stock ledger
- vendors, purchase_orders (+ items, activity): purchasing
- transfers (+ items), inventory_counts (+ items): stock documents
- document_sequences: per-business document numbering
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_inventory_core'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # Tenancy
    # ============================================================================
    op.create_table(
        'businesses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_businesses_is_active', 'businesses', ['is_active'])

    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'name', name='uq_branches_business_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_branches_business_id', 'branches', ['business_id'])
    op.create_index('ix_branches_is_active', 'branches', ['is_active'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        # owner, manager, employee
        sa.Column('role', sa.String(length=16), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_business_id', 'users', ['business_id'])
    op.create_index('ix_users_branch_id', 'users', ['branch_id'])

    op.create_table(
        'owner_business_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'business_id', name='uq_owner_business_links_user_business'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_owner_business_links_user_id', 'owner_business_links', ['user_id'])
    op.create_index('ix_owner_business_links_business_id', 'owner_business_links', ['business_id'])

    # ============================================================================
    # Catalog
    # ============================================================================
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='piece'),
        sa.Column('is_composite', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('cost_per_unit', sa.Numeric(15, 4), nullable=False, server_default='0'),
        sa.Column('last_purchase_cost', sa.Numeric(15, 4), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'sku', name='uq_items_business_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_business_id', 'items', ['business_id'])
    op.create_index('ix_items_is_active', 'items', ['is_active'])

    op.create_table(
        'item_barcodes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'barcode', name='uq_item_barcodes_business_barcode'),
        sa.UniqueConstraint('business_id', 'item_id', name='uq_item_barcodes_business_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_item_barcodes_business_id', 'item_barcodes', ['business_id'])
    op.create_index('ix_item_barcodes_item_id', 'item_barcodes', ['item_id'])

    # ============================================================================
    # Stock ledger
    # ============================================================================
    # stock_levels holds the current quantity per (business, branch, item);
    # inventory_movements is the append-only log explaining every change.
    op.create_table(
        'stock_levels',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(15, 4), nullable=False, server_default='0'),
        sa.Column('min_quantity', sa.Numeric(15, 4), nullable=True),
        sa.Column('max_quantity', sa.Numeric(15, 4), nullable=True),
        sa.Column('last_movement_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_count_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_count_quantity', sa.Numeric(15, 4), nullable=True),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'branch_id', 'item_id', name='uq_stock_levels_key'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_levels_business_id', 'stock_levels', ['business_id'])
    op.create_index('ix_stock_levels_branch_id', 'stock_levels', ['branch_id'])
    op.create_index('ix_stock_levels_item_id', 'stock_levels', ['item_id'])
    op.create_index('ix_stock_levels_business_branch', 'stock_levels', ['business_id', 'branch_id'])

    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=32), nullable=False),
        sa.Column('quantity_delta', sa.Numeric(15, 4), nullable=False),
        sa.Column('quantity_before', sa.Numeric(15, 4), nullable=False),
        sa.Column('quantity_after', sa.Numeric(15, 4), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['performed_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_movements_transaction_type', 'inventory_movements', ['transaction_type'])
    op.create_index('ix_inventory_movements_reason', 'inventory_movements', ['reason'])
    op.create_index('ix_inventory_movements_performed_by', 'inventory_movements', ['performed_by'])
    op.create_index('ix_movements_key', 'inventory_movements', ['business_id', 'branch_id', 'item_id'])
    op.create_index('ix_movements_reference', 'inventory_movements', ['reference_type', 'reference_id'])
    op.create_index('ix_movements_business_created', 'inventory_movements', ['business_id', 'created_at'])

    # ============================================================================
    # Purchasing
    # ============================================================================
    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        # NULL: shared by every branch of the business
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'code', name='uq_vendors_business_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendors_business_id', 'vendors', ['business_id'])
    op.create_index('ix_vendors_branch_id', 'vendors', ['branch_id'])
    op.create_index('ix_vendors_business_status', 'vendors', ['business_id', 'status'])

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        # pending, counted, received, cancelled
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('expected_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('invoice_image_url', sa.String(length=1024), nullable=True),
        sa.Column('total_amount', sa.Numeric(15, 4), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('counted_by', sa.Integer(), nullable=True),
        sa.Column('received_by', sa.Integer(), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['counted_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['received_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'order_number', name='uq_purchase_orders_business_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_orders_business_id', 'purchase_orders', ['business_id'])
    op.create_index('ix_purchase_orders_branch_id', 'purchase_orders', ['branch_id'])
    op.create_index('ix_purchase_orders_vendor_id', 'purchase_orders', ['vendor_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_business_status', 'purchase_orders', ['business_id', 'status'])

    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('ordered_quantity', sa.Numeric(15, 4), nullable=False),
        sa.Column('counted_quantity', sa.Numeric(15, 4), nullable=True),
        sa.Column('barcode_scanned', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_quantity', sa.Numeric(15, 4), nullable=True),
        sa.Column('unit_cost', sa.Numeric(15, 4), nullable=True),
        sa.Column('total_cost', sa.Numeric(15, 4), nullable=True),
        sa.Column('variance_reason', sa.String(length=16), nullable=True),
        sa.Column('variance_note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('purchase_order_id', 'item_id', name='uq_purchase_order_items_order_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])
    op.create_index('ix_purchase_order_items_item_id', 'purchase_order_items', ['item_id'])

    op.create_table(
        'purchase_order_activity',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('old_status', sa.String(length=16), nullable=True),
        sa.Column('new_status', sa.String(length=16), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['performed_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_activity_business_id', 'purchase_order_activity', ['business_id'])
    op.create_index('ix_po_activity_order_created', 'purchase_order_activity', ['purchase_order_id', 'created_at'])

    # ============================================================================
    # Transfers
    # ============================================================================
    op.create_table(
        'transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_number', sa.String(length=32), nullable=False),
        sa.Column('from_business_id', sa.Integer(), nullable=False),
        sa.Column('from_branch_id', sa.Integer(), nullable=False),
        sa.Column('to_business_id', sa.Integer(), nullable=False),
        sa.Column('to_branch_id', sa.Integer(), nullable=False),
        # pending, received, cancelled
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('received_by', sa.Integer(), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['from_business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['from_branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['to_business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['to_branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['received_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('from_business_id', 'transfer_number', name='uq_transfers_business_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transfers_from_business_id', 'transfers', ['from_business_id'])
    op.create_index('ix_transfers_from_branch_id', 'transfers', ['from_branch_id'])
    op.create_index('ix_transfers_to_business_id', 'transfers', ['to_business_id'])
    op.create_index('ix_transfers_to_branch_id', 'transfers', ['to_branch_id'])
    op.create_index('ix_transfers_status', 'transfers', ['status'])

    op.create_table(
        'transfer_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(15, 4), nullable=False),
        sa.Column('received_quantity', sa.Numeric(15, 4), nullable=True),
        sa.ForeignKeyConstraint(['transfer_id'], ['transfers.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transfer_id', 'item_id', name='uq_transfer_items_transfer_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transfer_items_transfer_id', 'transfer_items', ['transfer_id'])
    op.create_index('ix_transfer_items_item_id', 'transfer_items', ['item_id'])

    # ============================================================================
    # Inventory counts
    # ============================================================================
    op.create_table(
        'inventory_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('count_number', sa.String(length=32), nullable=False),
        sa.Column('count_type', sa.String(length=16), nullable=False, server_default='full'),
        # draft, completed
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('completed_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['completed_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'count_number', name='uq_inventory_counts_business_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_counts_business_id', 'inventory_counts', ['business_id'])
    op.create_index('ix_inventory_counts_branch_id', 'inventory_counts', ['branch_id'])
    op.create_index('ix_inventory_counts_status', 'inventory_counts', ['status'])

    op.create_table(
        'inventory_count_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('count_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('expected_quantity', sa.Numeric(15, 4), nullable=False, server_default='0'),
        sa.Column('counted_quantity', sa.Numeric(15, 4), nullable=True),
        sa.Column('variance', sa.Numeric(15, 4), nullable=True),
        sa.Column('variance_reason', sa.String(length=255), nullable=True),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['count_id'], ['inventory_counts.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('count_id', 'item_id', name='uq_inventory_count_items_count_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_count_items_count_id', 'inventory_count_items', ['count_id'])
    op.create_index('ix_inventory_count_items_item_id', 'inventory_count_items', ['item_id'])

    # ============================================================================
    # Document numbering
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        # YYMM for monthly documents, empty for vendor codes
        sa.Column('period', sa.String(length=8), nullable=False, server_default=''),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'document_type', 'period', name='uq_doc_sequences_business_type_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_business_id', 'document_sequences', ['business_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('document_sequences')
    op.drop_table('inventory_count_items')
    op.drop_table('inventory_counts')
    op.drop_table('transfer_items')
    op.drop_table('transfers')
    op.drop_table('purchase_order_activity')
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('vendors')
    op.drop_table('inventory_movements')
    op.drop_table('stock_levels')
    op.drop_table('item_barcodes')
    op.drop_table('items')
    op.drop_table('owner_business_links')
    op.drop_table('users')
    op.drop_table('branches')
    op.drop_table('businesses')
