"""
Bot Middleware

Runs before every message and callback handler:
- loads the global settings snapshot for this update (`bot_settings`)
- derives profile hints from the sender (`hints`)
- enforces private mode
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject, User

from app.bot.messages import PRIVATE_BOT
from app.domain.account import ProfileHints
from app.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    get_account_repository,
)
from app.infrastructure.db.repositories.bot_settings_repository import (
    BotSettingsRepository,
    get_bot_settings_repository,
)

logger = logging.getLogger(__name__)

# Commands reachable before a code is redeemed
OPEN_COMMANDS = ("/start", "/code")


def is_open_command(text: Optional[str]) -> bool:
    if not text:
        return False
    command = text.split(maxsplit=1)[0].split("@", 1)[0]
    return command in OPEN_COMMANDS


class AccessMiddleware(BaseMiddleware):
    """Settings snapshot, profile hints and the private-mode gate."""

    def __init__(
        self,
        accounts: Optional[AccountRepository] = None,
        settings_repository: Optional[BotSettingsRepository] = None,
    ):
        self._accounts = accounts or get_account_repository()
        self._settings = settings_repository or get_bot_settings_repository()

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user: Optional[User] = getattr(event, "from_user", None)
        bot_settings = await self._settings.get()
        data["bot_settings"] = bot_settings

        if user is None:
            return await handler(event, data)

        data["hints"] = ProfileHints(
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
        )

        if not bot_settings.private_mode:
            return await handler(event, data)

        account = await self._accounts.get_by_telegram_id(user.id)
        if account is not None and (account.is_admin or account.is_authorized):
            return await handler(event, data)

        if isinstance(event, Message) and is_open_command(event.text):
            return await handler(event, data)

        logger.info(f"Private mode: blocked update from {user.id}")
        if isinstance(event, CallbackQuery):
            await event.answer("🔒", show_alert=False)
            await event.bot.send_message(user.id, PRIVATE_BOT, parse_mode="Markdown")
        elif isinstance(event, Message):
            await event.answer(PRIVATE_BOT, parse_mode="Markdown")
        return None
