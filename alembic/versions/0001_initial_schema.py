"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PAYMENT_STATUS = sa.Enum(
    'pending', 'success', 'failed', 'cancelled',
    name='payment_status', native_enum=False,
)
PAYMENT_MODE = sa.Enum(
    'card', 'upi', 'netbanking', 'wallet', 'unknown',
    name='payment_mode', native_enum=False,
)
WEBHOOK_PROCESSING_STATUS = sa.Enum(
    'received', 'invalid_payload', 'order_not_found', 'processed', 'error',
    name='webhook_processing_status', native_enum=False,
)


def upgrade() -> None:
    """Create orders, order_statuses and webhook_logs."""
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('school_id', sa.String(), nullable=False),
        sa.Column('trustee_id', sa.String(), nullable=False),
        sa.Column('student_info', sa.JSON(), nullable=False),
        sa.Column('gateway_name', sa.String(), nullable=False),
        sa.Column('custom_order_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_school_id', 'orders', ['school_id'])
    op.create_index('ix_orders_trustee_id', 'orders', ['trustee_id'])
    op.create_index('ix_orders_gateway_name', 'orders', ['gateway_name'])
    op.create_index('ix_orders_custom_order_id', 'orders', ['custom_order_id'], unique=True)

    op.create_table(
        'order_statuses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('order_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('transaction_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_mode', PAYMENT_MODE, nullable=False),
        sa.Column('payment_details', sa.JSON(), nullable=True),
        sa.Column('bank_reference', sa.String(), nullable=True),
        sa.Column('payment_message', sa.String(), nullable=True),
        sa.Column('status', PAYMENT_STATUS, nullable=False),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('payment_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    # One status row per order, the webhook upsert conflicts on this index
    op.create_index('ix_order_statuses_order_id', 'order_statuses', ['order_id'], unique=True)
    op.create_index('ix_order_statuses_status', 'order_statuses', ['status'])
    op.create_index('ix_order_statuses_payment_time', 'order_statuses', ['payment_time'])

    op.create_table(
        'webhook_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('raw_payload', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('webhook_source', sa.String(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=True),
        sa.Column('processing_status', WEBHOOK_PROCESSING_STATUS, nullable=False),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_webhook_logs_timestamp', 'webhook_logs', [sa.text('"timestamp" DESC')])
    op.create_index('ix_webhook_logs_webhook_source', 'webhook_logs', ['webhook_source'])
    op.create_index('ix_webhook_logs_event_type', 'webhook_logs', ['event_type'])
    op.create_index('ix_webhook_logs_processing_status', 'webhook_logs', ['processing_status'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_webhook_logs_processing_status', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_event_type', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_webhook_source', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_timestamp', table_name='webhook_logs')
    op.drop_table('webhook_logs')

    op.drop_index('ix_order_statuses_payment_time', table_name='order_statuses')
    op.drop_index('ix_order_statuses_status', table_name='order_statuses')
    op.drop_index('ix_order_statuses_order_id', table_name='order_statuses')
    op.drop_table('order_statuses')

    op.drop_index('ix_orders_custom_order_id', table_name='orders')
    op.drop_index('ix_orders_gateway_name', table_name='orders')
    op.drop_index('ix_orders_trustee_id', table_name='orders')
    op.drop_index('ix_orders_school_id', table_name='orders')
    op.drop_table('orders')
