"""payment attempts

Revision ID: 8b2d4e6f1a93
Revises: 3f1c9a7d2b10
Create Date: 2026-10-19 15:40:07.218904

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8b2d4e6f1a93'
down_revision: Union[str, Sequence[str], None] = '3f1c9a7d2b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.add_column('order', sa.Column('payment_initiated_at', sa.DateTime(), nullable=True))

    op.create_table(
        'payment_attempt',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('merchant_request_id', sa.String(), nullable=False),
        sa.Column('checkout_request_id', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('result_code', sa.Integer(), nullable=True),
        sa.Column('result_desc', sa.String(), nullable=True),
        sa.Column('mpesa_receipt_number', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index(
        'ix_payment_attempt_checkout_request_id', 'payment_attempt',
        ['checkout_request_id'], unique=True,
    )
    op.create_index('ix_payment_attempt_status', 'payment_attempt', ['status'])
    op.create_index(
        'ix_payment_attempt_order_created', 'payment_attempt', ['order_id', 'created_at']
    )

    # orders that already had a prompt keep it reachable
    op.execute(
        """
        INSERT INTO payment_attempt (
            order_id, merchant_request_id, checkout_request_id, phone, amount,
            status, created_at, updated_at
        )
        SELECT id, merchant_request_id, checkout_request_id, payment_phone, total,
               payment_status, updated_at, updated_at
        FROM "order"
        WHERE checkout_request_id IS NOT NULL
        """
    )


def downgrade():
    op.drop_table('payment_attempt')
    op.drop_column('order', 'payment_initiated_at')
