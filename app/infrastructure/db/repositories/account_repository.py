"""
Account Repository

Data access layer for the per-user ledger and its message log.

Balance-changing writes are single guarded UPDATE statements: the spend
rule's predicate is repeated in the WHERE clause, so a write made against
stale state matches zero rows instead of overdrawing the account.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from app.domain.account import (
    Account,
    DailyTotal,
    DebitEffect,
    LedgerMessage,
    MessageMetadata,
    MessageType,
    ProfileHints,
    SpendClause,
    utcnow,
)
from app.infrastructure.db.database import get_session_context
from app.infrastructure.db.models.account import AccountModel
from app.infrastructure.db.models.ledger_message import LedgerMessageModel
from app.infrastructure.exceptions import DuplicateError


logger = logging.getLogger(__name__)

# Fields an operator may edit through the admin surface
EDITABLE_FIELDS = frozenset({
    "free_messages_limit",
    "free_messages_used",
    "credits",
    "is_premium",
    "premium_until",
    "is_admin",
    "is_banned",
    "ban_reason",
    "is_authorized",
})

SORTABLE_FIELDS = {
    "created_at": AccountModel.created_at,
    "last_active_at": AccountModel.last_active_at,
    "credits": AccountModel.credits,
    "total_messages_sent": AccountModel.total_messages_sent,
    "total_spent": AccountModel.total_spent,
    "telegram_id": AccountModel.telegram_id,
}


class AccountRepository:
    """
    Repository for account ledger data access.

    Every method opens its own session; methods that must be atomic
    (debit plus message insert) do all their work inside one.
    """

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[Account]:
        async with get_session_context() as session:
            statement = select(AccountModel).where(AccountModel.telegram_id == telegram_id)
            result = await session.execute(statement)
            model = result.scalar_one_or_none()

            if model:
                return self._to_domain(model)

            return None

    async def list_accounts(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Account], int]:
        """
        Paginated account listing for the admin surface.

        Args:
            page: 1-based page number
            limit: Page size
            search: Matches username/first/last name, or the exact telegram id
            sort_by: One of SORTABLE_FIELDS (unknown values fall back to created_at)
            sort_order: "asc" or "desc"

        Returns:
            (accounts on this page, total matching count)
        """
        async with get_session_context() as session:
            filters = []
            if search:
                pattern = f"%{search}%"
                clauses = [
                    col(AccountModel.username).ilike(pattern),
                    col(AccountModel.first_name).ilike(pattern),
                    col(AccountModel.last_name).ilike(pattern),
                ]
                if search.lstrip("-").isdigit():
                    clauses.append(AccountModel.telegram_id == int(search))
                filters.append(or_(*clauses))

            count_stmt = select(func.count()).select_from(AccountModel).where(*filters)
            total = (await session.execute(count_stmt)).scalar_one()

            sort_column = SORTABLE_FIELDS.get(sort_by, AccountModel.created_at)
            order = sort_column.asc() if sort_order == "asc" else sort_column.desc()

            statement = (
                select(AccountModel)
                .where(*filters)
                .order_by(order)
                .offset((max(page, 1) - 1) * limit)
                .limit(limit)
            )
            result = await session.execute(statement)
            return [self._to_domain(m) for m in result.scalars().all()], total

    async def get_recent_messages(self, telegram_id: int, limit: int = 50) -> list[LedgerMessage]:
        async with get_session_context() as session:
            statement = (
                select(LedgerMessageModel)
                .where(LedgerMessageModel.telegram_id == telegram_id)
                .order_by(col(LedgerMessageModel.created_at).desc())
                .limit(limit)
            )
            result = await session.execute(statement)
            return [self._message_to_domain(m) for m in result.scalars().all()]

    async def get_stats(self, now: Optional[datetime] = None) -> dict[str, int]:
        """Aggregate counters for the admin dashboard."""
        now = now or utcnow()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)

        async with get_session_context() as session:
            async def scalar(statement) -> int:
                return int((await session.execute(statement)).scalar_one() or 0)

            accounts = select(func.count()).select_from(AccountModel)
            messages = select(func.count()).select_from(LedgerMessageModel)

            return {
                "total_users": await scalar(accounts),
                "premium_users": await scalar(accounts.where(
                    col(AccountModel.is_premium).is_(True),
                    col(AccountModel.premium_until) > now,
                )),
                "banned_users": await scalar(accounts.where(col(AccountModel.is_banned).is_(True))),
                "active_today": await scalar(accounts.where(col(AccountModel.last_active_at) >= day_start)),
                "active_week": await scalar(accounts.where(col(AccountModel.last_active_at) >= week_ago)),
                "new_users_today": await scalar(accounts.where(col(AccountModel.created_at) >= day_start)),
                "total_messages": await scalar(messages),
                "messages_today": await scalar(messages.where(col(LedgerMessageModel.created_at) >= day_start)),
                "paid_messages": await scalar(messages.where(col(LedgerMessageModel.was_free).is_(False))),
                "credits_outstanding": await scalar(select(func.coalesce(func.sum(AccountModel.credits), 0))),
            }

    async def get_messages_per_day(self, days: int = 7, now: Optional[datetime] = None) -> list[DailyTotal]:
        """Ledger messages per calendar day over the last `days` days, oldest first."""
        since = (now or utcnow()) - timedelta(days=days)
        day = func.date(LedgerMessageModel.created_at)

        async with get_session_context() as session:
            rows = (await session.execute(
                select(day, func.count())
                .where(col(LedgerMessageModel.created_at) >= since)
                .group_by(day)
                .order_by(day)
            )).all()
        return [DailyTotal(day=str(d), total=count) for d, count in rows]

    async def get_top_spenders(self, limit: int = 10) -> list[Account]:
        """Accounts with the highest lifetime credit spend."""
        async with get_session_context() as session:
            result = await session.execute(
                select(AccountModel)
                .order_by(col(AccountModel.total_spent).desc(), col(AccountModel.total_messages_sent).desc())
                .limit(limit)
            )
            return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(
        self,
        telegram_id: int,
        hints: ProfileHints,
        free_messages_limit: int,
    ) -> Account:
        """
        Insert a new account.

        Raises:
            DuplicateError: Another request created the same telegram id first
        """
        now = utcnow()
        try:
            async with get_session_context() as session:
                model = AccountModel(
                    telegram_id=telegram_id,
                    username=hints.username,
                    first_name=hints.first_name,
                    last_name=hints.last_name,
                    free_messages_limit=free_messages_limit,
                    last_active_at=now,
                )
                session.add(model)
                await session.commit()
                await session.refresh(model)

                logger.info(f"Created account for telegram user {telegram_id}")
                return self._to_domain(model)
        except IntegrityError as e:
            raise DuplicateError(
                "Account already exists",
                details={"telegram_id": telegram_id},
                original_error=e,
            )

    async def touch(self, telegram_id: int, hints: ProfileHints) -> Optional[Account]:
        """Refresh display attributes and last_active_at."""
        values: dict[str, Any] = {"last_active_at": utcnow()}
        for field, value in hints.model_dump().items():
            if value is not None:
                values[field] = value

        async with get_session_context() as session:
            await session.execute(
                update(AccountModel)
                .where(AccountModel.telegram_id == telegram_id)
                .values(**values)
            )
            await session.commit()

        return await self.get_by_telegram_id(telegram_id)

    async def expire_premium(self, telegram_id: int, now: datetime) -> bool:
        """Clear the premium flag once the window has elapsed. Returns True when a row changed."""
        async with get_session_context() as session:
            result = await session.execute(
                update(AccountModel)
                .where(
                    AccountModel.telegram_id == telegram_id,
                    col(AccountModel.is_premium).is_(True),
                    or_(
                        col(AccountModel.premium_until).is_(None),
                        col(AccountModel.premium_until) <= now,
                    ),
                )
                .values(is_premium=False)
            )
            await session.commit()

            if result.rowcount:
                logger.info(f"Premium expired for telegram user {telegram_id}")
            return bool(result.rowcount)

    async def apply_debit(
        self,
        account_id: str,
        effect: DebitEffect,
        metadata: MessageMetadata,
        cost_per_message: int,
        now: datetime,
    ) -> Optional[Account]:
        """
        Apply a debit and append its message, in one transaction.

        The UPDATE only matches while the clause that produced `effect`
        still holds for the stored row.

        Returns:
            The updated account, or None when the guard matched no row
        """
        guard = self._debit_guard(effect.clause, cost_per_message, now)
        account_uuid = UUID(account_id)

        async with get_session_context() as session:
            result = await session.execute(
                update(AccountModel)
                .where(AccountModel.id == account_uuid, *guard)
                .values(
                    free_messages_used=AccountModel.free_messages_used + effect.free_slots,
                    credits=AccountModel.credits - effect.credits,
                    total_spent=AccountModel.total_spent + effect.credits,
                    total_messages_sent=AccountModel.total_messages_sent + 1,
                    last_active_at=now,
                )
            )
            if result.rowcount != 1:
                await session.rollback()
                return None

            model = (await session.execute(
                select(AccountModel).where(AccountModel.id == account_uuid)
            )).scalar_one()

            session.add(LedgerMessageModel(
                account_id=account_uuid,
                telegram_id=model.telegram_id,
                type=metadata.type.value,
                content=metadata.content,
                home_team=metadata.home_team,
                away_team=metadata.away_team,
                competition=metadata.competition,
                was_free=effect.was_free,
                cost=effect.cost,
            ))
            await session.commit()
            await session.refresh(model)

            return self._to_domain(model)

    async def grant_credits(self, telegram_id: int, amount: int) -> Optional[Account]:
        """Add credits to the stored balance. Returns None when the account does not exist."""
        async with get_session_context() as session:
            result = await session.execute(
                update(AccountModel)
                .where(AccountModel.telegram_id == telegram_id)
                .values(credits=AccountModel.credits + amount)
            )
            await session.commit()

            if not result.rowcount:
                return None

        logger.info(f"Granted {amount} credits to telegram user {telegram_id}")
        return await self.get_by_telegram_id(telegram_id)

    async def update_fields(self, telegram_id: int, values: dict[str, Any]) -> Optional[Account]:
        """
        Operator edit restricted to EDITABLE_FIELDS; other keys are dropped.
        """
        allowed = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
        if allowed:
            async with get_session_context() as session:
                await session.execute(
                    update(AccountModel)
                    .where(AccountModel.telegram_id == telegram_id)
                    .values(**allowed)
                )
                await session.commit()
            logger.info(f"Updated account {telegram_id}: {sorted(allowed)}")

        return await self.get_by_telegram_id(telegram_id)

    async def set_stripe_customer_id(self, telegram_id: int, customer_id: str) -> None:
        async with get_session_context() as session:
            await session.execute(
                update(AccountModel)
                .where(AccountModel.telegram_id == telegram_id)
                .values(stripe_customer_id=customer_id)
            )
            await session.commit()

    # =========================================================================
    # Guard Clauses
    # =========================================================================

    @staticmethod
    def _debit_guard(clause: SpendClause, cost_per_message: int, now: datetime) -> list:
        """SQL form of each spend rule's predicate."""
        not_banned = col(AccountModel.is_banned).is_(False)

        if clause == SpendClause.ADMIN:
            return [col(AccountModel.is_admin).is_(True)]
        if clause == SpendClause.PREMIUM:
            return [
                not_banned,
                col(AccountModel.is_premium).is_(True),
                col(AccountModel.premium_until) > now,
            ]
        if clause == SpendClause.FREE:
            return [
                not_banned,
                col(AccountModel.free_messages_used) < col(AccountModel.free_messages_limit),
            ]
        if clause == SpendClause.CREDITS:
            return [not_banned, col(AccountModel.credits) >= cost_per_message]

        raise ValueError(f"Clause {clause.value} cannot be debited")

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: AccountModel) -> Account:
        """Convert database model to domain entity."""
        return Account(
            id=str(model.id),
            telegram_id=model.telegram_id,
            username=model.username,
            first_name=model.first_name,
            last_name=model.last_name,
            free_messages_used=model.free_messages_used,
            free_messages_limit=model.free_messages_limit,
            credits=model.credits,
            is_premium=model.is_premium,
            premium_until=model.premium_until,
            is_admin=model.is_admin,
            is_banned=model.is_banned,
            ban_reason=model.ban_reason,
            is_authorized=model.is_authorized,
            total_messages_sent=model.total_messages_sent,
            total_spent=model.total_spent,
            stripe_customer_id=model.stripe_customer_id,
            last_active_at=model.last_active_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _message_to_domain(self, model: LedgerMessageModel) -> LedgerMessage:
        return LedgerMessage(
            id=str(model.id),
            telegram_id=model.telegram_id,
            type=MessageType(model.type),
            content=model.content,
            home_team=model.home_team,
            away_team=model.away_team,
            competition=model.competition,
            was_free=model.was_free,
            cost=model.cost,
            created_at=model.created_at,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_account_repository: Optional[AccountRepository] = None


def get_account_repository() -> AccountRepository:
    """Get or create the account repository singleton."""
    global _account_repository
    if _account_repository is None:
        _account_repository = AccountRepository()
    return _account_repository
