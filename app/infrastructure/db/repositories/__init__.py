"""
Repository Layer for the Football Analysis Bot

Exports all repository classes and their singleton getters.
"""

from app.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    get_account_repository,
)
from app.infrastructure.db.repositories.payment_repository import (
    PaymentRepository,
    get_payment_repository,
)
from app.infrastructure.db.repositories.bot_settings_repository import (
    BotSettingsRepository,
    get_bot_settings_repository,
)
from app.infrastructure.db.repositories.invite_code_repository import (
    InviteCodeRepository,
    get_invite_code_repository,
)


__all__ = [
    "AccountRepository",
    "get_account_repository",
    "PaymentRepository",
    "get_payment_repository",
    "BotSettingsRepository",
    "get_bot_settings_repository",
    "InviteCodeRepository",
    "get_invite_code_repository",
]
