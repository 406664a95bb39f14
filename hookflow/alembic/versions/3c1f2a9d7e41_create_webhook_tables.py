"""create_webhook_tables

Revision ID: 3c1f2a9d7e41
Revises:
Create Date: 2026-10-19 10:12:04.518233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '3c1f2a9d7e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_provider_id', 'users', ['provider_id'], unique=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'organization_members',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('user_id', 'organization_id'),
    )

    op.create_table(
        'workflows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('is_deployed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('deployed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'webhooks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('workflow_id', sa.Integer(), nullable=False),
        sa.Column('block_id', sa.String(), nullable=True),
        sa.Column('path', sa.String(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('provider_config', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflows.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    # At most one active webhook per path
    op.create_index(
        'ix_webhooks_active_path',
        'webhooks',
        ['path'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )
    op.create_index('ix_webhooks_workflow_id', 'webhooks', ['workflow_id'])

    subscription_reference_type = sa.Enum(
        'user', 'organization', name='subscription_reference_type'
    )
    subscription_plan = sa.Enum(
        'free', 'pro', 'team', 'enterprise', name='subscription_plan'
    )
    subscription_status = sa.Enum(
        'active', 'past_due', 'canceled', name='subscription_status'
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reference_id', sa.Integer(), nullable=False),
        sa.Column('reference_type', subscription_reference_type, nullable=False),
        sa.Column('plan', subscription_plan, nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('seats', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_subscriptions_reference', 'subscriptions', ['reference_type', 'reference_id']
    )

    op.create_table(
        'user_stats',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('current_period_cost', sa.Float(), server_default=sa.text('0'), nullable=False),
        sa.Column('current_usage_limit', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'notification_webhooks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('workflow_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('secret', sa.String(length=256), nullable=True),
        sa.Column('include_final_output', sa.Boolean(), nullable=False),
        sa.Column('include_trace_spans', sa.Boolean(), nullable=False),
        sa.Column('include_rate_limits', sa.Boolean(), nullable=False),
        sa.Column('include_usage_data', sa.Boolean(), nullable=False),
        sa.Column('level_filter', sa.JSON(), nullable=False),
        sa.Column('trigger_filter', sa.JSON(), nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflows.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workflow_id', 'url', name='uq_notification_webhook_url'),
    )
    op.create_index(
        'ix_notification_webhooks_workflow_id', 'notification_webhooks', ['workflow_id']
    )


def downgrade() -> None:
    op.drop_index('ix_notification_webhooks_workflow_id', table_name='notification_webhooks')
    op.drop_table('notification_webhooks')
    op.drop_table('user_stats')
    op.drop_index('ix_subscriptions_reference', table_name='subscriptions')
    op.drop_table('subscriptions')
    sa.Enum(name='subscription_status').drop(op.get_bind())
    sa.Enum(name='subscription_plan').drop(op.get_bind())
    sa.Enum(name='subscription_reference_type').drop(op.get_bind())
    op.drop_index('ix_webhooks_workflow_id', table_name='webhooks')
    op.drop_index('ix_webhooks_active_path', table_name='webhooks')
    op.drop_table('webhooks')
    op.drop_table('workflows')
    op.drop_table('organization_members')
    op.drop_table('organizations')
    op.drop_index('ix_users_provider_id', table_name='users')
    op.drop_table('users')
