"""
Payment Repository

Data access layer for checkout payments.

Settlement is a single transaction: the pending -> completed transition is a
guarded UPDATE on the payment row, and the grant to the account is applied
only when that UPDATE matched. A replayed callback matches zero rows.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import col, select

from app.domain.account import DailyTotal, utcnow
from app.domain.payment import (
    Payment,
    PaymentStatus,
    PaymentType,
    PremiumPlan,
    extend_premium_until,
)
from app.infrastructure.db.database import get_session_context
from app.infrastructure.db.models.account import AccountModel
from app.infrastructure.db.models.payment import PaymentModel
from app.infrastructure.exceptions import NotFoundError


logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for payment persistence and atomic settlement."""

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_session_id(self, stripe_session_id: str) -> Optional[Payment]:
        return await self._get_one(PaymentModel.stripe_session_id == stripe_session_id)

    async def get_by_reference(self, reference: str) -> Optional[Payment]:
        return await self._get_one(PaymentModel.reference == reference)

    async def get_by_payment_intent_id(self, payment_intent_id: str) -> Optional[Payment]:
        return await self._get_one(PaymentModel.stripe_payment_intent_id == payment_intent_id)

    async def list_payments(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[PaymentStatus] = None,
        telegram_id: Optional[int] = None,
    ) -> tuple[list[Payment], int]:
        """
        Paginated payment listing, newest first.

        Returns:
            (payments on this page, total matching count)
        """
        filters = []
        if status is not None:
            filters.append(PaymentModel.status == status.value)
        if telegram_id is not None:
            filters.append(PaymentModel.telegram_id == telegram_id)

        async with get_session_context() as session:
            total = (await session.execute(
                select(func.count()).select_from(PaymentModel).where(*filters)
            )).scalar_one()

            result = await session.execute(
                select(PaymentModel)
                .where(*filters)
                .order_by(col(PaymentModel.created_at).desc())
                .offset((max(page, 1) - 1) * limit)
                .limit(limit)
            )
            return [self._to_domain(m) for m in result.scalars().all()], total

    async def get_revenue_stats(self) -> dict[str, int]:
        """Completed revenue (minor units) and payment counts by status."""
        async with get_session_context() as session:
            revenue = (await session.execute(
                select(func.coalesce(func.sum(PaymentModel.amount), 0))
                .where(PaymentModel.status == PaymentStatus.COMPLETED.value)
            )).scalar_one()

            rows = (await session.execute(
                select(PaymentModel.status, func.count()).group_by(PaymentModel.status)
            )).all()

        stats = {f"{status}_payments": count for status, count in rows}
        stats["total_revenue"] = int(revenue or 0)
        for status in PaymentStatus:
            stats.setdefault(f"{status.value}_payments", 0)
        return stats

    async def get_revenue_per_day(self, days: int = 30, now: Optional[datetime] = None) -> list[DailyTotal]:
        """Completed revenue (minor units) per calendar day, oldest first."""
        since = (now or utcnow()) - timedelta(days=days)
        day = func.date(PaymentModel.created_at)

        async with get_session_context() as session:
            rows = (await session.execute(
                select(day, func.coalesce(func.sum(PaymentModel.amount), 0))
                .where(
                    PaymentModel.status == PaymentStatus.COMPLETED.value,
                    col(PaymentModel.created_at) >= since,
                )
                .group_by(day)
                .order_by(day)
            )).all()
        return [DailyTotal(day=str(d), total=int(amount)) for d, amount in rows]

    async def get_recent_completed(self, limit: int = 10) -> list[Payment]:
        async with get_session_context() as session:
            result = await session.execute(
                select(PaymentModel)
                .where(PaymentModel.status == PaymentStatus.COMPLETED.value)
                .order_by(col(PaymentModel.created_at).desc())
                .limit(limit)
            )
            return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(self, payment: Payment) -> Payment:
        """Persist a new payment (normally pending)."""
        async with get_session_context() as session:
            model = self._to_model(payment)
            session.add(model)
            await session.commit()
            await session.refresh(model)

            logger.info(
                f"Created {model.type} payment {model.stripe_session_id} "
                f"for telegram user {model.telegram_id}"
            )
            return self._to_domain(model)

    async def settle_checkout(
        self,
        stripe_session_id: str,
        telegram_id: int,
        payment_intent_id: Optional[str] = None,
        credits: int = 0,
        premium_days: int = 0,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Complete a pending payment and apply its grant atomically.

        Returns:
            True when this call settled the payment, False when it was
            already terminal

        Raises:
            NotFoundError: The account vanished; the transaction is rolled back
        """
        now = now or utcnow()

        async with get_session_context() as session:
            values = {"status": PaymentStatus.COMPLETED.value, "completed_at": now}
            if payment_intent_id:
                values["stripe_payment_intent_id"] = payment_intent_id
            if credits:
                values["credits_added"] = credits
            if premium_days:
                values["premium_days"] = premium_days

            result = await session.execute(
                update(PaymentModel)
                .where(
                    PaymentModel.stripe_session_id == stripe_session_id,
                    PaymentModel.status == PaymentStatus.PENDING.value,
                )
                .values(**values)
            )
            if result.rowcount != 1:
                await session.rollback()
                return False

            account = (await session.execute(
                select(AccountModel)
                .where(AccountModel.telegram_id == telegram_id)
                .with_for_update()
            )).scalar_one_or_none()
            if account is None:
                raise NotFoundError(
                    "Account not found during settlement",
                    details={"telegram_id": telegram_id, "session_id": stripe_session_id},
                )

            if credits:
                account.credits = account.credits + credits
            if premium_days:
                account.premium_until = extend_premium_until(
                    account.premium_until, account.is_premium, premium_days, now
                )
                account.is_premium = True

            await session.commit()

        logger.info(
            f"Settled payment {stripe_session_id} for telegram user {telegram_id} "
            f"(credits={credits}, premium_days={premium_days})"
        )
        return True

    async def mark_failed(self, payment_id: str) -> bool:
        """pending -> failed. Returns False when the payment was already terminal."""
        async with get_session_context() as session:
            result = await session.execute(
                update(PaymentModel)
                .where(
                    PaymentModel.id == UUID(payment_id),
                    PaymentModel.status == PaymentStatus.PENDING.value,
                )
                .values(status=PaymentStatus.FAILED.value, completed_at=utcnow())
            )
            await session.commit()
            return bool(result.rowcount)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    async def _get_one(self, condition) -> Optional[Payment]:
        async with get_session_context() as session:
            result = await session.execute(select(PaymentModel).where(condition))
            model = result.scalar_one_or_none()

            if model:
                return self._to_domain(model)

            return None

    def _to_domain(self, model: PaymentModel) -> Payment:
        """Convert database model to domain entity."""
        return Payment(
            id=str(model.id),
            telegram_id=model.telegram_id,
            account_id=str(model.account_id),
            stripe_session_id=model.stripe_session_id,
            reference=model.reference,
            stripe_payment_intent_id=model.stripe_payment_intent_id,
            stripe_customer_id=model.stripe_customer_id,
            amount=model.amount,
            currency=model.currency,
            type=PaymentType(model.type),
            status=PaymentStatus(model.status),
            credits_added=model.credits_added,
            premium_days=model.premium_days,
            plan=PremiumPlan(model.plan) if model.plan else None,
            description=model.description,
            completed_at=model.completed_at,
            created_at=model.created_at,
        )

    def _to_model(self, payment: Payment) -> PaymentModel:
        """Convert domain entity to database model."""
        return PaymentModel(
            account_id=UUID(payment.account_id),
            telegram_id=payment.telegram_id,
            stripe_session_id=payment.stripe_session_id,
            reference=payment.reference,
            stripe_payment_intent_id=payment.stripe_payment_intent_id,
            stripe_customer_id=payment.stripe_customer_id,
            amount=payment.amount,
            currency=payment.currency,
            type=payment.type.value,
            status=payment.status.value,
            credits_added=payment.credits_added,
            premium_days=payment.premium_days,
            plan=payment.plan.value if payment.plan else None,
            description=payment.description,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_payment_repository: Optional[PaymentRepository] = None


def get_payment_repository() -> PaymentRepository:
    """Get or create the payment repository singleton."""
    global _payment_repository
    if _payment_repository is None:
        _payment_repository = PaymentRepository()
    return _payment_repository
