"""
Account Ledger Domain Models

The per-user ledger (free allowance, credits, premium window, access flags)
and the spend-eligibility rule that decides which entitlement an analysis
consumes.

The rule is an ordered list of SpendRule entries evaluated top to bottom;
the first rule whose predicate holds decides both eligibility and cost:

    admin > banned (deny) > active premium > free allotment > credits > deny
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional
from pydantic import BaseModel, Field


DEFAULT_BAN_REASON = "account suspended"


class MessageType(str, Enum):
    """Kind of inbound event that consumed an analysis."""
    IMAGE = "image"
    TEXT = "text"
    COMMAND = "command"


class SpendClause(str, Enum):
    """Which entitlement a debit draws from."""
    ADMIN = "admin"
    BANNED = "banned"
    PREMIUM = "premium"
    FREE = "free"
    CREDITS = "credits"


# =============================================================================
# Domain Entities
# =============================================================================

class Account(BaseModel):
    """Core ledger entity, one per Telegram user."""
    id: Optional[str] = None
    telegram_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    free_messages_used: int = Field(default=0, ge=0)
    free_messages_limit: int = Field(default=5, ge=0)
    credits: int = Field(default=0, ge=0)
    is_premium: bool = False
    premium_until: Optional[datetime] = None
    is_admin: bool = False
    is_banned: bool = False
    ban_reason: Optional[str] = None
    is_authorized: bool = False
    total_messages_sent: int = 0
    total_spent: int = 0
    stripe_customer_id: Optional[str] = None
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def remaining_free_messages(self) -> int:
        return max(0, self.free_messages_limit - self.free_messages_used)

    def premium_active(self, now: Optional[datetime] = None) -> bool:
        """Premium is active iff flagged and the window has not elapsed."""
        if not self.is_premium or self.premium_until is None:
            return False
        return as_utc(self.premium_until) > (now or utcnow())


class ProfileHints(BaseModel):
    """Display attributes refreshed opportunistically on contact."""
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class MessageMetadata(BaseModel):
    """Classification fields logged with each debit."""
    type: MessageType = MessageType.TEXT
    content: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    competition: Optional[str] = None


class LedgerMessage(BaseModel):
    """Immutable record of one consumed analysis."""
    id: Optional[str] = None
    telegram_id: int
    type: MessageType
    content: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    competition: Optional[str] = None
    was_free: bool
    cost: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# Results
# =============================================================================

class QuotaSnapshot(BaseModel):
    """Balances shown to the user alongside any entitlement decision."""
    remaining_free_messages: int
    credits: int
    total_messages: int


class EntitlementResult(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    snapshot: QuotaSnapshot


class DebitResult(BaseModel):
    clause: SpendClause
    was_free: bool
    cost: int
    remaining_free: int
    remaining_credits: int


class AccountStats(BaseModel):
    """Account summary for the /compte command and admin views."""
    remaining_free: int
    free_messages_limit: int
    remaining_credits: int
    messages_with_credits: int
    total_messages: int
    total_spent: int
    is_premium: bool
    premium_until: Optional[datetime] = None
    cost_per_message: int


class DailyTotal(BaseModel):
    """One point of a per-day dashboard series (day is YYYY-MM-DD)."""
    day: str
    total: int


# =============================================================================
# Spend Rule (ordered predicate + effect list)
# =============================================================================

@dataclass(frozen=True)
class DebitEffect:
    """Mutation applied to an account when a rule is used for a debit."""
    clause: SpendClause
    free_slots: int = 0
    credits: int = 0

    @property
    def was_free(self) -> bool:
        return self.credits == 0

    @property
    def cost(self) -> int:
        return self.credits


@dataclass(frozen=True)
class SpendRule:
    """
    One clause of the spend-eligibility rule.

    eligible=False marks a denying clause: when its predicate matches,
    evaluation stops and the account may not spend.
    """
    clause: SpendClause
    applies: Callable[[Account, int, datetime], bool]
    effect: Callable[[int], DebitEffect]
    eligible: bool = True


SPEND_RULES: tuple[SpendRule, ...] = (
    SpendRule(
        clause=SpendClause.ADMIN,
        applies=lambda account, cost, now: account.is_admin,
        effect=lambda cost: DebitEffect(SpendClause.ADMIN),
    ),
    SpendRule(
        clause=SpendClause.BANNED,
        applies=lambda account, cost, now: account.is_banned,
        effect=lambda cost: DebitEffect(SpendClause.BANNED),
        eligible=False,
    ),
    SpendRule(
        clause=SpendClause.PREMIUM,
        applies=lambda account, cost, now: account.premium_active(now),
        effect=lambda cost: DebitEffect(SpendClause.PREMIUM),
    ),
    SpendRule(
        clause=SpendClause.FREE,
        applies=lambda account, cost, now: account.free_messages_used < account.free_messages_limit,
        effect=lambda cost: DebitEffect(SpendClause.FREE, free_slots=1),
    ),
    SpendRule(
        clause=SpendClause.CREDITS,
        applies=lambda account, cost, now: account.credits >= cost,
        effect=lambda cost: DebitEffect(SpendClause.CREDITS, credits=cost),
    ),
)


def select_spend_rule(
    account: Account,
    cost_per_message: int,
    now: Optional[datetime] = None,
) -> Optional[SpendRule]:
    """
    Evaluate SPEND_RULES in order.

    Returns:
        The first eligible rule that applies, or None when the account
        may not spend (a denying clause matched or nothing applied)
    """
    now = now or utcnow()
    for rule in SPEND_RULES:
        if rule.applies(account, cost_per_message, now):
            return rule if rule.eligible else None
    return None


def can_send(account: Account, cost_per_message: int, now: Optional[datetime] = None) -> bool:
    return select_spend_rule(account, cost_per_message, now) is not None


# =============================================================================
# Time helpers
# =============================================================================

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
