"""
Quota Service

The account ledger's entitlement state machine: decides whether a user may
request an analysis and, after a successful one, debits the entitlement the
spend rule selects.

Settings are passed in as a snapshot read once per request; the service
never reads them itself.
"""

import logging
from typing import Optional

from app.config.settings import get_settings
from app.domain.account import (
    DEFAULT_BAN_REASON,
    Account,
    AccountStats,
    DebitResult,
    EntitlementResult,
    MessageMetadata,
    ProfileHints,
    QuotaSnapshot,
    select_spend_rule,
    utcnow,
)
from app.domain.bot_settings import BotSettings
from app.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    get_account_repository,
)
from app.infrastructure.exceptions import (
    DuplicateError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)

MAINTENANCE_REASON = "🔧 Le bot est en maintenance. Veuillez réessayer plus tard."
NO_QUOTA_REASON = (
    "❌ Quota épuisé ! Tu as utilisé toutes tes analyses gratuites.\n\n"
    "💳 Achète des crédits avec /acheter ou deviens Premium avec /premium."
)


class QuotaService:
    """
    Ledger operations over AccountRepository.

    Debits use optimistic concurrency: the rule is selected against a fresh
    read and applied with a guarded UPDATE; when the guard misses (another
    request changed the row) the account is re-read and the rule re-evaluated.
    """

    def __init__(
        self,
        accounts: Optional[AccountRepository] = None,
        max_retries: Optional[int] = None,
    ):
        self._accounts = accounts or get_account_repository()
        self._max_retries = max_retries or get_settings().debit_max_retries

    # =========================================================================
    # Accounts
    # =========================================================================

    async def get_or_create(
        self,
        telegram_id: int,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> Account:
        """
        Look up the account, creating it on first contact.

        New accounts copy free_messages_limit from the settings snapshot.
        Existing accounts get their display attributes and last_active_at
        refreshed.
        """
        hints = hints or ProfileHints()
        account = await self._accounts.get_by_telegram_id(telegram_id)

        if account is None:
            try:
                return await self._accounts.create(
                    telegram_id, hints, bot_settings.free_messages_limit
                )
            except DuplicateError:
                logger.info(f"Concurrent first contact for {telegram_id}, re-reading")

        account = await self._accounts.touch(telegram_id, hints)
        if account is None:
            raise NotFoundError("Account not found", details={"telegram_id": telegram_id})
        return account

    async def _with_premium_expiry(self, account: Account) -> Account:
        """Lazily clear an elapsed premium window."""
        now = utcnow()
        if account.is_premium and not account.premium_active(now):
            await self._accounts.expire_premium(account.telegram_id, now)
            return account.model_copy(update={"is_premium": False})
        return account

    # =========================================================================
    # Entitlement
    # =========================================================================

    async def check_entitlement(
        self,
        telegram_id: int,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> EntitlementResult:
        """
        Decide whether the user may request an analysis now.

        Order: banned, maintenance (non-admins), spend rule. The balance
        snapshot is returned whatever the decision.
        """
        account = await self.get_or_create(telegram_id, bot_settings, hints)
        account = await self._with_premium_expiry(account)
        snapshot = self._snapshot(account)

        if account.is_banned and not account.is_admin:
            return EntitlementResult(
                allowed=False,
                reason=account.ban_reason or DEFAULT_BAN_REASON,
                snapshot=snapshot,
            )

        if bot_settings.maintenance_mode and not account.is_admin:
            return EntitlementResult(allowed=False, reason=MAINTENANCE_REASON, snapshot=snapshot)

        if select_spend_rule(account, bot_settings.cost_per_message) is None:
            return EntitlementResult(allowed=False, reason=NO_QUOTA_REASON, snapshot=snapshot)

        return EntitlementResult(allowed=True, snapshot=snapshot)

    async def debit(
        self,
        telegram_id: int,
        metadata: MessageMetadata,
        bot_settings: BotSettings,
    ) -> DebitResult:
        """
        Consume one analysis and append it to the message log.

        Raises:
            InsufficientBalanceError: No clause applies to the current state,
                including when a concurrent debit consumed the last unit
        """
        cost_per_message = bot_settings.cost_per_message

        for attempt in range(self._max_retries):
            account = await self._accounts.get_by_telegram_id(telegram_id)
            if account is None:
                raise NotFoundError("Account not found", details={"telegram_id": telegram_id})
            account = await self._with_premium_expiry(account)

            now = utcnow()
            rule = select_spend_rule(account, cost_per_message, now)
            if rule is None:
                raise InsufficientBalanceError(telegram_id)

            effect = rule.effect(cost_per_message)
            updated = await self._accounts.apply_debit(
                account.id, effect, metadata, cost_per_message, now
            )
            if updated is None:
                logger.info(
                    f"Debit guard missed for {telegram_id} "
                    f"(clause={effect.clause.value}, attempt={attempt + 1}), retrying"
                )
                continue

            logger.info(
                f"Debited {telegram_id}: clause={effect.clause.value}, cost={effect.cost}, "
                f"free_left={updated.remaining_free_messages}, credits={updated.credits}"
            )
            return DebitResult(
                clause=effect.clause,
                was_free=effect.was_free,
                cost=effect.cost,
                remaining_free=updated.remaining_free_messages,
                remaining_credits=updated.credits,
            )

        logger.warning(f"Debit for {telegram_id} gave up after {self._max_retries} attempts")
        raise InsufficientBalanceError(telegram_id)

    # =========================================================================
    # Grants & Stats
    # =========================================================================

    async def grant_credits(self, telegram_id: int, amount: int) -> Account:
        """Add credits to an existing account."""
        if amount <= 0:
            raise ValidationError(
                "Credit amount must be positive",
                details={"amount": amount},
            )

        account = await self._accounts.grant_credits(telegram_id, amount)
        if account is None:
            raise NotFoundError("Account not found", details={"telegram_id": telegram_id})
        return account

    async def get_user_stats(
        self,
        telegram_id: int,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> AccountStats:
        account = await self.get_or_create(telegram_id, bot_settings, hints)
        account = await self._with_premium_expiry(account)
        cost = bot_settings.cost_per_message

        return AccountStats(
            remaining_free=account.remaining_free_messages,
            free_messages_limit=account.free_messages_limit,
            remaining_credits=account.credits,
            messages_with_credits=account.credits // cost,
            total_messages=account.total_messages_sent,
            total_spent=account.total_spent,
            is_premium=account.premium_active(),
            premium_until=account.premium_until,
            cost_per_message=cost,
        )

    @staticmethod
    def _snapshot(account: Account) -> QuotaSnapshot:
        return QuotaSnapshot(
            remaining_free_messages=account.remaining_free_messages,
            credits=account.credits,
            total_messages=account.total_messages_sent,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_quota_service: Optional[QuotaService] = None


def get_quota_service() -> QuotaService:
    """Get or create the quota service singleton."""
    global _quota_service
    if _quota_service is None:
        _quota_service = QuotaService()
    return _quota_service
