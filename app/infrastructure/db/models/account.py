"""
Account Database Model

One row per Telegram user. The quota columns (free_messages_used,
credits, total_*) are only mutated through guarded UPDATE statements
in AccountRepository so concurrent debits serialize on the row.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class AccountModel(UUIDMixin, TimestampMixin, table=True):
    """Maps to the 'accounts' table."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_accounts_credits_non_negative"),
        CheckConstraint("free_messages_used >= 0", name="ck_accounts_free_used_non_negative"),
    )

    telegram_id: int = Field(sa_column=Column(BigInteger, unique=True, index=True, nullable=False))

    # Display attributes
    username: Optional[str] = Field(default=None, index=True)
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)

    # Quota
    free_messages_used: int = Field(default=0)
    free_messages_limit: int = Field(default=5)
    credits: int = Field(default=0)

    # Premium window
    is_premium: bool = Field(default=False)
    premium_until: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Access control
    is_admin: bool = Field(default=False)
    is_banned: bool = Field(default=False)
    ban_reason: Optional[str] = Field(default=None)
    is_authorized: bool = Field(default=False)

    # Audit counters
    total_messages_sent: int = Field(default=0)
    total_spent: int = Field(default=0)

    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    last_active_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
