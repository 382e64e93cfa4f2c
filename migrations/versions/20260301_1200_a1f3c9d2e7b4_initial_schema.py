"""Initial marketplace schema

Revision ID: a1f3c9d2e7b4
Revises: 
Create Date: 2026-03-01 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a1f3c9d2e7b4'
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum('user', 'admin', name='user_role')
access_status = sa.Enum('active', 'expired', 'cancelled', name='access_status')
transaction_type = sa.Enum('topup', 'purchase', 'earning', 'refund', 'commission', name='transaction_type')
transaction_status = sa.Enum('pending', 'completed', 'failed', 'cancelled', name='transaction_status')
topup_status = sa.Enum('pending', 'approved', 'rejected', name='topup_status')
report_status = sa.Enum('pending', 'resolved', 'dismissed', name='report_status')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('balance >= 0', name='ck_users_balance_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)

    op.create_table(
        'subscription_platforms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscription_platforms_name', 'subscription_platforms', ['name'], unique=True)

    op.create_table(
        'platform_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_platform_settings_key', 'platform_settings', ['key'], unique=True)

    op.create_table(
        'shared_subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('platform_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('credentials_username', sa.Text(), nullable=False),
        sa.Column('credentials_password', sa.Text(), nullable=False),
        sa.Column('price_per_hour', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('verification_note', sa.Text(), nullable=True),
        sa.Column('verified_by_admin_id', sa.Integer(), nullable=True),
        sa.Column('total_grants', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('price_per_hour > 0', name='ck_shared_subscriptions_price_positive'),
        sa.ForeignKeyConstraint(['platform_id'], ['subscription_platforms.id']),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.ForeignKeyConstraint(['verified_by_admin_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_shared_subscriptions_platform_id', 'shared_subscriptions', ['platform_id'], unique=False)
    op.create_index('ix_shared_subscriptions_owner_id', 'shared_subscriptions', ['owner_id'], unique=False)
    op.create_index('ix_shared_subscriptions_listing', 'shared_subscriptions', ['is_active', 'is_verified'], unique=False)

    op.create_table(
        'subscription_access',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('price_paid', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('commission_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('commission_settled', sa.Boolean(), nullable=False),
        sa.Column('status', access_status, nullable=False),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('end_time', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='ck_subscription_access_window'),
        sa.ForeignKeyConstraint(['subscription_id'], ['shared_subscriptions.id']),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscription_access_subscription_id', 'subscription_access', ['subscription_id'], unique=False)
    op.create_index('ix_subscription_access_buyer_id', 'subscription_access', ['buyer_id'], unique=False)
    op.create_index('ix_subscription_access_status_end', 'subscription_access', ['status', 'end_time'], unique=False)
    # At most one active grant per buyer and subscription
    op.create_index(
        'uq_subscription_access_active_pair',
        'subscription_access',
        ['buyer_id', 'subscription_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('status', transaction_status, nullable=False),
        sa.Column('reference_id', sa.String(length=255), nullable=True),
        sa.Column('commission_percentage', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('commission_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('access_grant_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('processed_by_admin_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['access_grant_id'], ['subscription_access.id']),
        sa.ForeignKeyConstraint(['processed_by_admin_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'], unique=False)
    op.create_index('ix_transactions_type', 'transactions', ['type'], unique=False)
    op.create_index('ix_transactions_access_grant_id', 'transactions', ['access_grant_id'], unique=False)
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'], unique=False)
    op.create_index('ix_transactions_user_created', 'transactions', ['user_id', 'created_at'], unique=False)

    op.create_table(
        'topup_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('transaction_id', sa.String(length=255), nullable=False),
        sa.Column('screenshot_url', sa.String(length=500), nullable=True),
        sa.Column('status', topup_status, nullable=False),
        sa.Column('reviewed_by_admin_id', sa.Integer(), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by_admin_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id')
    )
    op.create_index('ix_topup_requests_user_id', 'topup_requests', ['user_id'], unique=False)
    op.create_index('ix_topup_requests_status', 'topup_requests', ['status'], unique=False)

    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reporter_id', sa.Integer(), nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', report_status, nullable=False),
        sa.Column('resolved_by_admin_id', sa.Integer(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['reporter_id'], ['users.id']),
        sa.ForeignKeyConstraint(['subscription_id'], ['shared_subscriptions.id']),
        sa.ForeignKeyConstraint(['resolved_by_admin_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reports_reporter_id', 'reports', ['reporter_id'], unique=False)
    op.create_index('ix_reports_subscription_id', 'reports', ['subscription_id'], unique=False)
    op.create_index('ix_reports_status', 'reports', ['status'], unique=False)
    # One open report per reporter and subscription
    op.create_index(
        'uq_reports_pending_pair',
        'reports',
        ['reporter_id', 'subscription_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index('uq_reports_pending_pair', table_name='reports')
    op.drop_table('reports')
    op.drop_table('topup_requests')
    op.drop_table('transactions')
    op.drop_index('uq_subscription_access_active_pair', table_name='subscription_access')
    op.drop_table('subscription_access')
    op.drop_table('shared_subscriptions')
    op.drop_table('platform_settings')
    op.drop_table('subscription_platforms')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (report_status, topup_status, transaction_status, transaction_type, access_status, user_role):
        enum_type.drop(bind, checkfirst=True)
