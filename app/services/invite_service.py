"""
Invite Service

Private-mode access: redeeming invite codes (from /code or /start <code>)
and managing them from the admin surfaces.
"""

import logging
from typing import Optional

from app.domain.account import ProfileHints
from app.domain.bot_settings import BotSettings, BotSettingsUpdate
from app.domain.invite import InviteCode, InviteCodeCreate, InviteCodeType, RedemptionOutcome
from app.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    get_account_repository,
)
from app.infrastructure.db.repositories.bot_settings_repository import (
    BotSettingsRepository,
    get_bot_settings_repository,
)
from app.infrastructure.db.repositories.invite_code_repository import (
    InviteCodeRepository,
    get_invite_code_repository,
)
from app.services.quota_service import QuotaService, get_quota_service


logger = logging.getLogger(__name__)


class InviteService:
    """Invite code redemption and administration."""

    def __init__(
        self,
        codes: Optional[InviteCodeRepository] = None,
        accounts: Optional[AccountRepository] = None,
        settings_repository: Optional[BotSettingsRepository] = None,
        quota_service: Optional[QuotaService] = None,
    ):
        self._codes = codes or get_invite_code_repository()
        self._accounts = accounts or get_account_repository()
        self._settings = settings_repository or get_bot_settings_repository()
        self._quota = quota_service or get_quota_service()

    async def redeem(
        self,
        telegram_id: int,
        code: str,
        bot_settings: BotSettings,
        hints: Optional[ProfileHints] = None,
    ) -> RedemptionOutcome:
        """
        Present a code on behalf of a user.

        One-time codes are consumed atomically; the legacy access_codes list
        in the settings record is honored when no InviteCode matches.
        """
        if not bot_settings.private_mode:
            return RedemptionOutcome.NOT_REQUIRED

        account = await self._quota.get_or_create(telegram_id, bot_settings, hints)
        if account.is_authorized or account.is_admin:
            return RedemptionOutcome.ALREADY_AUTHORIZED

        code = code.strip()
        invite = await self._codes.get_by_code(code)

        if invite is not None:
            if invite.type == InviteCodeType.ONE_TIME:
                if not await self._codes.consume(code, telegram_id):
                    return RedemptionOutcome.ALREADY_USED
        elif code not in bot_settings.access_codes:
            logger.info(f"Invalid invite code attempt by {telegram_id}")
            return RedemptionOutcome.INVALID

        await self._accounts.update_fields(telegram_id, {"is_authorized": True})
        logger.info(f"Telegram user {telegram_id} authorized with code {code}")
        return RedemptionOutcome.AUTHORIZED

    # =========================================================================
    # Administration
    # =========================================================================

    async def list_codes(self) -> list[InviteCode]:
        return await self._codes.list_codes()

    async def create_code(self, data: InviteCodeCreate) -> InviteCode:
        return await self._codes.create(data)

    async def delete_code(self, code: str) -> bool:
        """Remove a code from the table and from the legacy list."""
        deleted = await self._codes.delete(code)

        bot_settings = await self._settings.get()
        if code in bot_settings.access_codes:
            await self._settings.update(BotSettingsUpdate(
                access_codes=[c for c in bot_settings.access_codes if c != code]
            ))
            deleted = True

        return deleted


# =============================================================================
# Singleton Instance
# =============================================================================

_invite_service: Optional[InviteService] = None


def get_invite_service() -> InviteService:
    """Get or create the invite service singleton."""
    global _invite_service
    if _invite_service is None:
        _invite_service = InviteService()
    return _invite_service
