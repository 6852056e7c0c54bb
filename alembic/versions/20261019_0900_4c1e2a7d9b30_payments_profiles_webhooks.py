"""payments_profiles_webhooks

Revision ID: 4c1e2a7d9b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1e2a7d9b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'payments',
        sa.Column('payment_id', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=True),
        sa.Column('status', sa.TEXT(), nullable=False),
        sa.Column('amount', sa.NUMERIC(12, 2), nullable=True),
        sa.Column('payment_method', sa.TEXT(), nullable=True),
        sa.Column('observed_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('payment_id'),
    )
    op.create_index('idx_payments_email', 'payments', ['email'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=True),
        sa.Column('is_premium', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'webhook_settings',
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('webhook_url', sa.TEXT(), nullable=False),
        sa.Column('is_active', sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'webhook_logs',
        sa.Column('id', sa.BIGINT(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('webhook_url', sa.TEXT(), nullable=False),
        sa.Column('event_type', sa.TEXT(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('response_status', sa.INTEGER(), nullable=True),
        sa.Column('response_body', sa.TEXT(), nullable=True),
        sa.Column('success', sa.BOOLEAN(), nullable=False),
        sa.Column('source', sa.TEXT(), nullable=False, server_default='webhook_delivery'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "event_type IN ('payment_success', 'payment_pending', 'payment_failed', 'test')",
            name='ck_webhook_logs_event_type',
        ),
        sa.CheckConstraint(
            "source IN ('webhook_delivery', 'manual_test')",
            name='ck_webhook_logs_source',
        ),
    )
    op.create_index('idx_webhook_logs_user_created', 'webhook_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_webhook_logs_user_created', table_name='webhook_logs')
    op.drop_table('webhook_logs')
    op.drop_table('webhook_settings')
    op.drop_table('profiles')
    op.drop_index('idx_payments_email', table_name='payments')
    op.drop_table('payments')
