"""
Payment Domain Models

Payments record checkout intents created with Stripe and their settlement.
A payment is created pending and reaches a terminal status exactly once.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


PREMIUM_PLAN_DAYS = {
    "monthly": 30,
    "yearly": 365,
}

DEFAULT_CURRENCY = "eur"


class PaymentType(str, Enum):
    CREDITS = "credits"
    PREMIUM = "premium"
    REFUND = "refund"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PremiumPlan(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def days(self) -> int:
        return PREMIUM_PLAN_DAYS[self.value]


# =============================================================================
# Domain Entities
# =============================================================================

class Payment(BaseModel):
    """Core payment entity."""
    id: Optional[str] = None
    telegram_id: int
    account_id: Optional[str] = None
    stripe_session_id: str
    reference: str
    stripe_payment_intent_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    amount: int
    currency: str = DEFAULT_CURRENCY
    type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    credits_added: Optional[int] = None
    premium_days: Optional[int] = None
    plan: Optional[PremiumPlan] = None
    description: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_terminal(self) -> bool:
        return self.status != PaymentStatus.PENDING


class SettlementOutcome(str, Enum):
    """What a settlement callback did."""
    APPLIED = "applied"
    ALREADY_SETTLED = "already_settled"
    PAYMENT_NOT_FOUND = "payment_not_found"
    ACCOUNT_NOT_FOUND = "account_not_found"
    MARKED_FAILED = "marked_failed"
    IGNORED = "ignored"


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreditsCheckoutRequest(BaseModel):
    """Request DTO for buying a credit package."""
    telegram_id: int = Field(..., description="Telegram user id")
    package_id: str = Field(..., description="Credit package id from the catalog")


class PremiumCheckoutRequest(BaseModel):
    """Request DTO for buying a premium plan."""
    telegram_id: int = Field(..., description="Telegram user id")
    plan: PremiumPlan = Field(default=PremiumPlan.MONTHLY)


class CheckoutResult(BaseModel):
    """Outcome of a checkout request: a URL or an error message."""
    success: bool
    payment_url: Optional[str] = None
    session_id: Optional[str] = None
    error: Optional[str] = None


def extend_premium_until(
    current_until: Optional[datetime],
    is_premium: bool,
    days: int,
    now: datetime,
) -> datetime:
    """
    New end of the premium window after buying `days` more.

    An active window is extended from its current end; an expired or
    absent one starts from now.
    """
    start = now
    if is_premium and current_until is not None:
        if current_until.tzinfo is None:
            current_until = current_until.replace(tzinfo=timezone.utc)
        if current_until > now:
            start = current_until
    return start + timedelta(days=days)
