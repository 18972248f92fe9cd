"""
Payment Database Model

Checkout intents and their settlement. stripe_session_id is the
idempotency key; status leaves 'pending' through a guarded UPDATE only.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class PaymentModel(UUIDMixin, TimestampMixin, table=True):
    """Maps to the 'payments' table."""

    __tablename__ = "payments"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    telegram_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))

    # Stripe correlation
    stripe_session_id: str = Field(unique=True, index=True)
    reference: str = Field(unique=True, index=True)
    stripe_payment_intent_id: Optional[str] = Field(default=None, index=True)
    stripe_customer_id: Optional[str] = Field(default=None)

    amount: int = Field(default=0)
    currency: str = Field(default="eur")
    type: str = Field(default="credits")
    status: str = Field(default="pending", index=True)

    credits_added: Optional[int] = Field(default=None)
    premium_days: Optional[int] = Field(default=None)
    plan: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
