"""purchase order templates and transfer destination items

Revision ID: 0002_po_templates
Revises: 0001_inventory_core
Create Date: 2026-10-19 00:00:00.000000

- po_templates, po_template_items: reusable purchase orders per vendor
- transfer_items.destination_item_id: item credited at the destination
  (the SKU counterpart for cross-business transfers). Existing rows are
  backfilled with item_id.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_po_templates'
down_revision = '0001_inventory_core'
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # Purchase order templates
    # ============================================================================
    op.create_table(
        'po_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_po_templates_business_id', 'po_templates', ['business_id'])
    op.create_index('ix_po_templates_business_vendor', 'po_templates', ['business_id', 'vendor_id'])

    op.create_table(
        'po_template_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(15, 4), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['po_templates.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('template_id', 'item_id', name='uq_po_template_items_template_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_po_template_items_template_id', 'po_template_items', ['template_id'])
    op.create_index('ix_po_template_items_item_id', 'po_template_items', ['item_id'])

    # ============================================================================
    # Transfer destination items
    # ============================================================================
    with op.batch_alter_table('transfer_items') as batch_op:
        batch_op.add_column(sa.Column('destination_item_id', sa.Integer(), nullable=True))

    op.execute('UPDATE transfer_items SET destination_item_id = item_id')

    with op.batch_alter_table('transfer_items') as batch_op:
        batch_op.alter_column('destination_item_id', existing_type=sa.Integer(), nullable=False)
        batch_op.create_foreign_key(
            'fk_transfer_items_destination_item_id', 'items', ['destination_item_id'], ['id']
        )
        batch_op.create_index('ix_transfer_items_destination_item_id', ['destination_item_id'])


def downgrade():
    with op.batch_alter_table('transfer_items') as batch_op:
        batch_op.drop_index('ix_transfer_items_destination_item_id')
        batch_op.drop_constraint('fk_transfer_items_destination_item_id', type_='foreignkey')
        batch_op.drop_column('destination_item_id')

    op.drop_index('ix_po_template_items_item_id', table_name='po_template_items')
    op.drop_index('ix_po_template_items_template_id', table_name='po_template_items')
    op.drop_table('po_template_items')
    op.drop_index('ix_po_templates_business_vendor', table_name='po_templates')
    op.drop_index('ix_po_templates_business_id', table_name='po_templates')
    op.drop_table('po_templates')
