"""Baseline schema: accounts, messages, payments, bot_settings, invite_codes

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create the five bot tables."""

    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('telegram_id', sa.BigInteger, nullable=False, unique=True, index=True),

        # Display attributes
        sa.Column('username', sa.String, index=True),
        sa.Column('first_name', sa.String),
        sa.Column('last_name', sa.String),

        # Quota
        sa.Column('free_messages_used', sa.Integer, server_default='0', nullable=False),
        sa.Column('free_messages_limit', sa.Integer, server_default='5', nullable=False),
        sa.Column('credits', sa.Integer, server_default='0', nullable=False),

        # Premium window
        sa.Column('is_premium', sa.Boolean, server_default='false', nullable=False),
        sa.Column('premium_until', sa.DateTime(timezone=True)),

        # Access control
        sa.Column('is_admin', sa.Boolean, server_default='false', nullable=False),
        sa.Column('is_banned', sa.Boolean, server_default='false', nullable=False),
        sa.Column('ban_reason', sa.String),
        sa.Column('is_authorized', sa.Boolean, server_default='false', nullable=False),

        # Audit counters
        sa.Column('total_messages_sent', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_spent', sa.Integer, server_default='0', nullable=False),

        sa.Column('stripe_customer_id', sa.String, index=True),
        sa.Column('last_active_at', sa.DateTime(timezone=True)),
        *_timestamps(),

        sa.CheckConstraint('credits >= 0', name='ck_accounts_credits_non_negative'),
        sa.CheckConstraint('free_messages_used >= 0', name='ck_accounts_free_used_non_negative'),
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('account_id', sa.Uuid, sa.ForeignKey('accounts.id'), nullable=False, index=True),
        sa.Column('telegram_id', sa.BigInteger, nullable=False, index=True),
        sa.Column('type', sa.String, server_default='text', nullable=False),
        sa.Column('content', sa.String),
        sa.Column('home_team', sa.String),
        sa.Column('away_team', sa.String),
        sa.Column('competition', sa.String),
        sa.Column('was_free', sa.Boolean, server_default='true', nullable=False),
        sa.Column('cost', sa.Integer, server_default='0', nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('account_id', sa.Uuid, sa.ForeignKey('accounts.id'), nullable=False, index=True),
        sa.Column('telegram_id', sa.BigInteger, nullable=False, index=True),

        # Stripe correlation
        sa.Column('stripe_session_id', sa.String, nullable=False, unique=True, index=True),
        sa.Column('reference', sa.String, nullable=False, unique=True, index=True),
        sa.Column('stripe_payment_intent_id', sa.String, index=True),
        sa.Column('stripe_customer_id', sa.String),

        sa.Column('amount', sa.Integer, server_default='0', nullable=False),
        sa.Column('currency', sa.String, server_default='eur', nullable=False),
        sa.Column('type', sa.String, server_default='credits', nullable=False),
        sa.Column('status', sa.String, server_default='pending', nullable=False, index=True),

        sa.Column('credits_added', sa.Integer),
        sa.Column('premium_days', sa.Integer),
        sa.Column('plan', sa.String),
        sa.Column('description', sa.String),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        'bot_settings',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('key', sa.String, nullable=False, unique=True, index=True),
        sa.Column('free_messages_limit', sa.Integer, server_default='5', nullable=False),
        sa.Column('cost_per_message', sa.Integer, server_default='1', nullable=False),
        sa.Column('credit_packages', sa.JSON, nullable=False),
        sa.Column('premium_enabled', sa.Boolean, server_default='true', nullable=False),
        sa.Column('premium_monthly_price', sa.Integer, server_default='999', nullable=False),
        sa.Column('premium_yearly_price', sa.Integer, server_default='7999', nullable=False),
        sa.Column('maintenance_mode', sa.Boolean, server_default='false', nullable=False),
        sa.Column('private_mode', sa.Boolean, server_default='false', nullable=False),
        sa.Column('access_codes', sa.JSON, nullable=False),
        sa.Column('welcome_message', sa.String),
        *_timestamps(),
    )

    op.create_table(
        'invite_codes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('code', sa.String, nullable=False, unique=True, index=True),
        sa.Column('type', sa.String, server_default='one_time', nullable=False),
        sa.Column('is_used', sa.Boolean, server_default='false', nullable=False),
        sa.Column('used_by', sa.BigInteger),
        sa.Column('used_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop the bot tables."""
    op.drop_table('invite_codes')
    op.drop_table('bot_settings')
    op.drop_table('payments')
    op.drop_table('messages')
    op.drop_table('accounts')
