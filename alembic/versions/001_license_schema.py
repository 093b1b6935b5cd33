"""Create license tables: accounts, magic codes, sessions, subscriptions, webhook events

Revision ID: 001_license_schema
Revises:
Create Date: 2026-02-02 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op  # type: ignore[attr-defined]
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_license_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """Create the license schema."""
    op.create_table(
        'subscription_accounts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, comment='Lowercased, trimmed email address'),
        sa.Column('paddle_customer_id', sa.String(64), nullable=True, comment='Paddle customer ID once a billing event links it'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Account creation time; start of the trial window'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('paddle_customer_id'),
    )

    op.create_table(
        'magic_codes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, comment='Normalized email the code was issued to'),
        sa.Column('code_hash', sa.String(64), nullable=False, comment='sha256(code:pepper) hex digest'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='Code is redeemable strictly before this instant'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True, comment='When the code was redeemed; set exactly once'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_magic_codes_email_created_at', 'magic_codes', ['email', 'created_at'])

    op.create_table(
        'app_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False, comment='Account this session belongs to'),
        sa.Column('token_hash', sa.String(64), nullable=False, comment='sha256(token:pepper) hex digest'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='When the session expires'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When the session was created'),
        sa.ForeignKeyConstraint(['account_id'], ['subscription_accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )

    op.create_table(
        'account_subscriptions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('paddle_subscription_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, comment='Normalized status: trial, active, past_due, canceled, expired'),
        sa.Column('plan_name', sa.String(255), nullable=True),
        sa.Column('current_period_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('raw_payload', json_type, nullable=True, comment='Paddle event data kept for audit and debugging'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['subscription_accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('paddle_subscription_id'),
    )
    op.create_index('ix_account_subscriptions_account_updated', 'account_subscriptions', ['account_id', 'updated_at'])

    op.create_table(
        'paddle_webhook_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.String(64), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('payload', json_type, nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id'),
    )


def downgrade() -> None:
    """Drop the license schema."""
    op.drop_table('paddle_webhook_events')
    op.drop_index('ix_account_subscriptions_account_updated', table_name='account_subscriptions')
    op.drop_table('account_subscriptions')
    op.drop_table('app_sessions')
    op.drop_index('ix_magic_codes_email_created_at', table_name='magic_codes')
    op.drop_table('magic_codes')
    op.drop_table('subscription_accounts')
