"""
Payment Service

Bridges the ledger and Stripe: creates checkout intents (persisting a
pending Payment before the URL is handed out) and settles them from
webhook callbacks exactly once.
"""

import logging
from typing import Any, Optional
from uuid import uuid4

from app.domain.account import ProfileHints
from app.domain.bot_settings import BotSettings, CreditPackage, find_credit_package, get_credit_packages
from app.domain.payment import (
    DEFAULT_CURRENCY,
    CheckoutResult,
    Payment,
    PaymentType,
    PremiumPlan,
    SettlementOutcome,
)
from app.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    get_account_repository,
)
from app.infrastructure.db.repositories.payment_repository import (
    PaymentRepository,
    get_payment_repository,
)
from app.infrastructure.exceptions import NotFoundError, PaymentError
from app.infrastructure.payments.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)
from app.services.quota_service import QuotaService, get_quota_service


logger = logging.getLogger(__name__)

PACKAGE_NOT_FOUND = "Package introuvable"
PREMIUM_DISABLED = "Les abonnements premium sont désactivés"
CHECKOUT_FAILED = "Erreur lors de la création du paiement"

PLAN_LABELS = {
    PremiumPlan.MONTHLY: "mensuel",
    PremiumPlan.YEARLY: "annuel",
}


class PaymentService:
    """Checkout creation and settlement callback handling."""

    def __init__(
        self,
        stripe_service: Optional[StripeService] = None,
        payments: Optional[PaymentRepository] = None,
        accounts: Optional[AccountRepository] = None,
        quota_service: Optional[QuotaService] = None,
    ):
        self._stripe = stripe_service or get_stripe_service()
        self._payments = payments or get_payment_repository()
        self._accounts = accounts or get_account_repository()
        self._quota = quota_service or get_quota_service()

    # =========================================================================
    # Catalog
    # =========================================================================

    @staticmethod
    def get_credit_packages(bot_settings: BotSettings) -> list[CreditPackage]:
        return get_credit_packages(bot_settings)

    # =========================================================================
    # Checkout
    # =========================================================================

    async def create_credits_checkout(
        self,
        telegram_id: int,
        package_id: str,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> CheckoutResult:
        """Start a checkout for one credit package."""
        package = find_credit_package(bot_settings, package_id)
        if package is None:
            return CheckoutResult(success=False, error=PACKAGE_NOT_FOUND)

        reference = uuid4().hex
        metadata = {
            "telegram_id": str(telegram_id),
            "package_id": package.id,
            "credits": str(package.credits),
            "type": PaymentType.CREDITS.value,
            "reference": reference,
        }
        return await self._start_checkout(
            telegram_id=telegram_id,
            bot_settings=bot_settings,
            hints=hints,
            amount=package.price,
            product_name=f"FootBot - {package.name}",
            product_description=f"{package.credits} analyses de match",
            metadata=metadata,
            payment=Payment(
                telegram_id=telegram_id,
                stripe_session_id="",
                reference=reference,
                amount=package.price,
                type=PaymentType.CREDITS,
                credits_added=package.credits,
                description=package.name,
            ),
        )

    async def create_premium_checkout(
        self,
        telegram_id: int,
        plan: PremiumPlan,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> CheckoutResult:
        """Start a checkout for a premium plan; fails fast when premium is disabled."""
        if not bot_settings.premium_enabled:
            return CheckoutResult(success=False, error=PREMIUM_DISABLED)

        price = (
            bot_settings.premium_monthly_price
            if plan == PremiumPlan.MONTHLY
            else bot_settings.premium_yearly_price
        )
        reference = uuid4().hex
        metadata = {
            "telegram_id": str(telegram_id),
            "plan": plan.value,
            "type": PaymentType.PREMIUM.value,
            "reference": reference,
        }
        return await self._start_checkout(
            telegram_id=telegram_id,
            bot_settings=bot_settings,
            hints=hints,
            amount=price,
            product_name=f"FootBot Premium {PLAN_LABELS[plan]}",
            product_description="Analyses illimitées",
            metadata=metadata,
            payment=Payment(
                telegram_id=telegram_id,
                stripe_session_id="",
                reference=reference,
                amount=price,
                type=PaymentType.PREMIUM,
                premium_days=plan.days,
                plan=plan,
                description=f"Premium {PLAN_LABELS[plan]}",
            ),
        )

    async def _start_checkout(
        self,
        telegram_id: int,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints],
        amount: int,
        product_name: str,
        product_description: str,
        metadata: dict[str, str],
        payment: Payment,
    ) -> CheckoutResult:
        account = await self._quota.get_or_create(telegram_id, bot_settings, hints)

        try:
            customer_id = account.stripe_customer_id
            if not customer_id:
                name = account.username or account.first_name
                customer_id = await self._stripe.create_customer(telegram_id, name)
                await self._accounts.set_stripe_customer_id(telegram_id, customer_id)

            session_id, url = await self._stripe.create_checkout_session(
                customer_id=customer_id,
                amount=amount,
                product_name=product_name,
                product_description=product_description,
                metadata=metadata,
                currency=DEFAULT_CURRENCY,
            )
        except StripeServiceError as e:
            logger.error(f"Checkout failed for telegram user {telegram_id}: {e}")
            return CheckoutResult(success=False, error=CHECKOUT_FAILED)

        await self._payments.create(payment.model_copy(update={
            "account_id": account.id,
            "stripe_session_id": session_id,
            "stripe_customer_id": customer_id,
        }))

        return CheckoutResult(success=True, payment_url=url, session_id=session_id)

    # =========================================================================
    # Settlement
    # =========================================================================

    async def handle_settlement_callback(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> SettlementOutcome:
        """
        Verify and dispatch a Stripe webhook.

        Raises:
            PaymentError: Signature or payload rejected
        """
        try:
            event = self._stripe.parse_webhook(payload, signature)
        except StripeServiceError as e:
            logger.error(f"Webhook verification failed: {e}")
            raise PaymentError(str(e), original_error=e)

        event_type = event["type"]
        data = (event.get("data") or {}).get("object") or {}
        logger.info(f"Stripe webhook received: {event_type}")

        if event_type == "checkout.session.completed":
            return await self.handle_checkout_completed(data)
        if event_type == "payment_intent.payment_failed":
            return await self.handle_payment_failed(data)
        if event_type == "checkout.session.expired":
            return await self.handle_session_expired(data)

        logger.info(f"Unhandled webhook event: {event_type}")
        return SettlementOutcome.IGNORED

    async def handle_checkout_completed(self, session: dict[str, Any]) -> SettlementOutcome:
        session_id = session.get("id")
        metadata = session.get("metadata") or {}

        payment = await self._payments.get_by_session_id(session_id) if session_id else None
        if payment is None:
            logger.error(f"Payment not found for checkout session {session_id}")
            return SettlementOutcome.PAYMENT_NOT_FOUND

        if payment.is_terminal:
            logger.info(f"Checkout session {session_id} already {payment.status.value}")
            return SettlementOutcome.ALREADY_SETTLED

        telegram_id = _parse_int(metadata.get("telegram_id")) or payment.telegram_id
        account = await self._accounts.get_by_telegram_id(telegram_id)
        if account is None:
            logger.error(f"Account {telegram_id} not found for checkout session {session_id}")
            return SettlementOutcome.ACCOUNT_NOT_FOUND

        payment_type = metadata.get("type") or payment.type.value
        credits = 0
        premium_days = 0
        if payment_type == PaymentType.CREDITS.value:
            credits = _parse_int(metadata.get("credits")) or (payment.credits_added or 0)
        elif payment_type == PaymentType.PREMIUM.value:
            plan = metadata.get("plan") or (payment.plan.value if payment.plan else None)
            try:
                premium_days = PremiumPlan(plan).days
            except ValueError:
                logger.error(f"Unknown premium plan {plan!r} on checkout session {session_id}")
                return SettlementOutcome.IGNORED
        else:
            logger.error(f"Unknown payment type {payment_type!r} on checkout session {session_id}")
            return SettlementOutcome.IGNORED

        try:
            applied = await self._payments.settle_checkout(
                stripe_session_id=session_id,
                telegram_id=telegram_id,
                payment_intent_id=session.get("payment_intent"),
                credits=credits,
                premium_days=premium_days,
            )
        except NotFoundError as e:
            logger.error(f"Settlement of {session_id} rolled back: {e}")
            return SettlementOutcome.ACCOUNT_NOT_FOUND

        if not applied:
            return SettlementOutcome.ALREADY_SETTLED

        if credits:
            logger.info(f"Credits added: {credits} to telegram user {telegram_id}")
        else:
            logger.info(f"Premium activated for telegram user {telegram_id} (+{premium_days} days)")
        return SettlementOutcome.APPLIED

    async def handle_payment_failed(self, payment_intent: dict[str, Any]) -> SettlementOutcome:
        """Correlate by metadata reference, then by recorded PaymentIntent id."""
        metadata = payment_intent.get("metadata") or {}
        reference = metadata.get("reference")
        intent_id = payment_intent.get("id")

        payment = await self._payments.get_by_reference(reference) if reference else None
        if payment is None and intent_id:
            payment = await self._payments.get_by_payment_intent_id(intent_id)

        if payment is None:
            logger.warning(f"No payment correlated with failed intent {intent_id}")
            return SettlementOutcome.PAYMENT_NOT_FOUND

        return await self._mark_failed(payment)

    async def handle_session_expired(self, session: dict[str, Any]) -> SettlementOutcome:
        session_id = session.get("id")
        payment = await self._payments.get_by_session_id(session_id) if session_id else None
        if payment is None:
            logger.warning(f"Expired checkout session {session_id} has no payment")
            return SettlementOutcome.PAYMENT_NOT_FOUND

        return await self._mark_failed(payment)

    async def _mark_failed(self, payment: Payment) -> SettlementOutcome:
        if await self._payments.mark_failed(payment.id):
            logger.info(f"Payment {payment.stripe_session_id} marked as failed")
            return SettlementOutcome.MARKED_FAILED
        return SettlementOutcome.ALREADY_SETTLED


def _parse_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# =============================================================================
# Singleton Instance
# =============================================================================

_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    """Get or create the payment service singleton."""
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService()
    return _payment_service
