"""
In-memory repositories for ledger, settlement and concurrency tests.

Each fake honors the same contract as its SQL counterpart: guarded updates
re-check their predicate against the stored row and report a miss instead of
overdrawing. Every awaited call yields to the event loop once so concurrent
tasks interleave between the read and the write.
"""

import asyncio
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import uuid4

from app.domain.account import (
    Account,
    DailyTotal,
    DebitEffect,
    LedgerMessage,
    MessageMetadata,
    ProfileHints,
    SpendClause,
    utcnow,
)
from app.domain.bot_settings import BotSettings, BotSettingsUpdate
from app.domain.invite import InviteCode, InviteCodeCreate, InviteCodeType
from app.domain.payment import Payment, PaymentStatus, extend_premium_until
from app.infrastructure.db.repositories.account_repository import EDITABLE_FIELDS
from app.infrastructure.exceptions import DuplicateError, NotFoundError


class FakeAccountRepository:

    def __init__(self):
        self.accounts: dict[int, Account] = {}
        self.messages: list[LedgerMessage] = []

    def add(self, **fields: Any) -> Account:
        """Seed an account directly."""
        fields.setdefault("id", str(uuid4()))
        account = Account(**fields)
        self.accounts[account.telegram_id] = account
        return account

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[Account]:
        await asyncio.sleep(0)
        account = self.accounts.get(telegram_id)
        return account.model_copy() if account else None

    async def create(self, telegram_id: int, hints: ProfileHints, free_messages_limit: int) -> Account:
        await asyncio.sleep(0)
        if telegram_id in self.accounts:
            raise DuplicateError("Account already exists", details={"telegram_id": telegram_id})
        return self.add(
            telegram_id=telegram_id,
            free_messages_limit=free_messages_limit,
            last_active_at=utcnow(),
            created_at=utcnow(),
            **hints.model_dump(),
        ).model_copy()

    async def touch(self, telegram_id: int, hints: ProfileHints) -> Optional[Account]:
        await asyncio.sleep(0)
        account = self.accounts.get(telegram_id)
        if account is None:
            return None
        for field, value in hints.model_dump().items():
            if value is not None:
                setattr(account, field, value)
        account.last_active_at = utcnow()
        return account.model_copy()

    async def expire_premium(self, telegram_id: int, now: datetime) -> bool:
        await asyncio.sleep(0)
        account = self.accounts.get(telegram_id)
        if account is None or not account.is_premium or account.premium_active(now):
            return False
        account.is_premium = False
        return True

    def _guard_holds(self, account: Account, clause: SpendClause, cost: int, now: datetime) -> bool:
        if clause == SpendClause.ADMIN:
            return account.is_admin
        if account.is_banned:
            return False
        if clause == SpendClause.PREMIUM:
            return account.premium_active(now)
        if clause == SpendClause.FREE:
            return account.free_messages_used < account.free_messages_limit
        if clause == SpendClause.CREDITS:
            return account.credits >= cost
        raise ValueError(f"Clause {clause.value} cannot be debited")

    async def apply_debit(
        self,
        account_id: str,
        effect: DebitEffect,
        metadata: MessageMetadata,
        cost_per_message: int,
        now: datetime,
    ) -> Optional[Account]:
        await asyncio.sleep(0)
        account = next((a for a in self.accounts.values() if a.id == account_id), None)
        if account is None or not self._guard_holds(account, effect.clause, cost_per_message, now):
            return None

        account.free_messages_used += effect.free_slots
        account.credits -= effect.credits
        account.total_spent += effect.credits
        account.total_messages_sent += 1
        account.last_active_at = now
        self.messages.append(LedgerMessage(
            id=str(uuid4()),
            telegram_id=account.telegram_id,
            type=metadata.type,
            content=metadata.content,
            home_team=metadata.home_team,
            away_team=metadata.away_team,
            competition=metadata.competition,
            was_free=effect.was_free,
            cost=effect.cost,
            created_at=now,
        ))
        return account.model_copy()

    async def grant_credits(self, telegram_id: int, amount: int) -> Optional[Account]:
        await asyncio.sleep(0)
        account = self.accounts.get(telegram_id)
        if account is None:
            return None
        account.credits += amount
        return account.model_copy()

    async def update_fields(self, telegram_id: int, values: dict[str, Any]) -> Optional[Account]:
        await asyncio.sleep(0)
        account = self.accounts.get(telegram_id)
        if account is None:
            return None
        for field, value in values.items():
            if field in EDITABLE_FIELDS:
                setattr(account, field, value)
        return account.model_copy()

    async def set_stripe_customer_id(self, telegram_id: int, customer_id: str) -> None:
        self.accounts[telegram_id].stripe_customer_id = customer_id

    async def get_recent_messages(self, telegram_id: int, limit: int = 50) -> list[LedgerMessage]:
        return [m for m in reversed(self.messages) if m.telegram_id == telegram_id][:limit]

    async def list_accounts(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Account], int]:
        matches = [
            a for a in self.accounts.values()
            if not search
            or str(a.telegram_id) == search
            or any(search.lower() in (v or "").lower() for v in (a.username, a.first_name, a.last_name))
        ]

        def sort_key(account: Account):
            value = getattr(account, sort_by, None)
            return (value is not None, value or 0)

        matches.sort(key=sort_key, reverse=sort_order == "desc")
        start = (page - 1) * limit
        return [a.model_copy() for a in matches[start:start + limit]], len(matches)

    async def get_stats(self) -> dict[str, int]:
        accounts = list(self.accounts.values())
        return {
            "total_users": len(accounts),
            "premium_users": sum(a.premium_active() for a in accounts),
            "banned_users": sum(a.is_banned for a in accounts),
            "total_messages": len(self.messages),
            "paid_messages": sum(not m.was_free for m in self.messages),
            "credits_outstanding": sum(a.credits for a in accounts),
        }

    async def get_messages_per_day(self, days: int = 7, now: Optional[datetime] = None) -> list[DailyTotal]:
        since = (now or utcnow()) - timedelta(days=days)
        counts = Counter(
            m.created_at.date().isoformat()
            for m in self.messages
            if m.created_at and m.created_at >= since
        )
        return [DailyTotal(day=day, total=counts[day]) for day in sorted(counts)]

    async def get_top_spenders(self, limit: int = 10) -> list[Account]:
        ranked = sorted(
            self.accounts.values(),
            key=lambda a: (a.total_spent, a.total_messages_sent),
            reverse=True,
        )
        return [a.model_copy() for a in ranked[:limit]]


class FakePaymentRepository:

    def __init__(self, accounts: FakeAccountRepository):
        self.accounts = accounts
        self.payments: dict[str, Payment] = {}

    async def create(self, payment: Payment) -> Payment:
        await asyncio.sleep(0)
        payment = payment.model_copy(update={"id": payment.id or str(uuid4()), "created_at": utcnow()})
        self.payments[payment.id] = payment
        return payment.model_copy()

    def _find(self, **match: Any) -> Optional[Payment]:
        for payment in self.payments.values():
            if all(getattr(payment, k) == v for k, v in match.items()):
                return payment.model_copy()
        return None

    async def list_payments(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[PaymentStatus] = None,
        telegram_id: Optional[int] = None,
    ) -> tuple[list[Payment], int]:
        matches = [
            p for p in self.payments.values()
            if (status is None or p.status == status)
            and (telegram_id is None or p.telegram_id == telegram_id)
        ]
        start = (page - 1) * limit
        return [p.model_copy() for p in matches[start:start + limit]], len(matches)

    async def get_revenue_stats(self) -> dict[str, int]:
        stats = {f"{s.value}_payments": 0 for s in PaymentStatus}
        for payment in self.payments.values():
            stats[f"{payment.status.value}_payments"] += 1
        stats["total_revenue"] = sum(
            p.amount for p in self.payments.values() if p.status == PaymentStatus.COMPLETED
        )
        return stats

    async def get_revenue_per_day(self, days: int = 30, now: Optional[datetime] = None) -> list[DailyTotal]:
        since = (now or utcnow()) - timedelta(days=days)
        totals: Counter = Counter()
        for payment in self.payments.values():
            if payment.status == PaymentStatus.COMPLETED and payment.created_at and payment.created_at >= since:
                totals[payment.created_at.date().isoformat()] += payment.amount
        return [DailyTotal(day=day, total=totals[day]) for day in sorted(totals)]

    async def get_recent_completed(self, limit: int = 10) -> list[Payment]:
        completed = [p for p in self.payments.values() if p.status == PaymentStatus.COMPLETED]
        completed.sort(key=lambda p: p.created_at, reverse=True)
        return [p.model_copy() for p in completed[:limit]]

    async def get_by_session_id(self, stripe_session_id: str) -> Optional[Payment]:
        return self._find(stripe_session_id=stripe_session_id)

    async def get_by_reference(self, reference: str) -> Optional[Payment]:
        return self._find(reference=reference)

    async def get_by_payment_intent_id(self, payment_intent_id: str) -> Optional[Payment]:
        return self._find(stripe_payment_intent_id=payment_intent_id)

    async def settle_checkout(
        self,
        stripe_session_id: str,
        telegram_id: int,
        payment_intent_id: Optional[str] = None,
        credits: int = 0,
        premium_days: int = 0,
        now: Optional[datetime] = None,
    ) -> bool:
        await asyncio.sleep(0)
        now = now or utcnow()
        payment = next(
            (p for p in self.payments.values() if p.stripe_session_id == stripe_session_id),
            None,
        )
        if payment is None or payment.status != PaymentStatus.PENDING:
            return False

        account = self.accounts.accounts.get(telegram_id)
        if account is None:
            raise NotFoundError("Account not found during settlement")

        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = now
        if payment_intent_id:
            payment.stripe_payment_intent_id = payment_intent_id
        if credits:
            account.credits += credits
        if premium_days:
            account.premium_until = extend_premium_until(
                account.premium_until, account.is_premium, premium_days, now
            )
            account.is_premium = True
        return True

    async def mark_failed(self, payment_id: str) -> bool:
        await asyncio.sleep(0)
        payment = self.payments.get(payment_id)
        if payment is None or payment.status != PaymentStatus.PENDING:
            return False
        payment.status = PaymentStatus.FAILED
        return True


class FakeBotSettingsRepository:

    def __init__(self, bot_settings: Optional[BotSettings] = None):
        self.current = bot_settings or BotSettings()

    async def get(self) -> BotSettings:
        return self.current.model_copy()

    async def update(self, changes: BotSettingsUpdate) -> BotSettings:
        self.current = self.current.model_copy(update=changes.model_dump(exclude_unset=True))
        return self.current.model_copy()

    async def reset(self) -> BotSettings:
        self.current = BotSettings()
        return self.current.model_copy()


class FakeInviteCodeRepository:

    def __init__(self):
        self.codes: dict[str, InviteCode] = {}

    def add(self, code: str, code_type: InviteCodeType = InviteCodeType.ONE_TIME) -> InviteCode:
        invite = InviteCode(id=str(uuid4()), code=code, type=code_type)
        self.codes[code] = invite
        return invite

    async def get_by_code(self, code: str) -> Optional[InviteCode]:
        invite = self.codes.get(code)
        return invite.model_copy() if invite else None

    async def list_codes(self) -> list[InviteCode]:
        return [c.model_copy() for c in self.codes.values()]

    async def create(self, data: InviteCodeCreate) -> InviteCode:
        if data.code in self.codes:
            raise DuplicateError(f"Invite code {data.code} already exists")
        return self.add(data.code, data.type).model_copy()

    async def delete(self, code: str) -> bool:
        return self.codes.pop(code, None) is not None

    async def consume(self, code: str, telegram_id: int) -> bool:
        await asyncio.sleep(0)
        invite = self.codes.get(code)
        if invite is None or invite.is_used:
            return False
        invite.is_used = True
        invite.used_by = telegram_id
        invite.used_at = utcnow()
        return True
