"""
Dependency Injection Providers for the Football Analysis Bot

FastAPI dependencies for repositories and the per-request settings
snapshot.
"""

from typing import Annotated

from fastapi import Depends

from app.domain.bot_settings import BotSettings
from app.infrastructure.db.repositories import (
    AccountRepository,
    BotSettingsRepository,
    InviteCodeRepository,
    PaymentRepository,
    get_account_repository,
    get_bot_settings_repository,
    get_invite_code_repository,
    get_payment_repository,
)


async def get_bot_settings_snapshot(
    repo: BotSettingsRepository = Depends(get_bot_settings_repository),
) -> BotSettings:
    """
    Read the global settings once for the current request.

    Usage:
        @router.get("/packages")
        async def packages(bot_settings: BotSettingsDep):
            ...
    """
    return await repo.get()


# Type aliases for repository dependencies
AccountRepoDep = Annotated[AccountRepository, Depends(get_account_repository)]
PaymentRepoDep = Annotated[PaymentRepository, Depends(get_payment_repository)]
BotSettingsRepoDep = Annotated[BotSettingsRepository, Depends(get_bot_settings_repository)]
InviteCodeRepoDep = Annotated[InviteCodeRepository, Depends(get_invite_code_repository)]
BotSettingsDep = Annotated[BotSettings, Depends(get_bot_settings_snapshot)]
