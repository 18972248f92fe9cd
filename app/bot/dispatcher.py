"""
Bot wiring: Bot instance, Dispatcher with injected services, polling loop.
"""

import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.types import BotCommand

from app.bot.handlers import router
from app.bot.middleware import AccessMiddleware
from app.bot.session_store import SessionStore
from app.config.settings import settings
from app.infrastructure.db.repositories.account_repository import get_account_repository
from app.infrastructure.db.repositories.bot_settings_repository import get_bot_settings_repository
from app.infrastructure.db.repositories.payment_repository import get_payment_repository
from app.infrastructure.exceptions import ConfigurationError
from app.services.invite_service import get_invite_service
from app.services.payment_service import get_payment_service
from app.services.quota_service import get_quota_service

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="Démarrer le bot"),
    BotCommand(command="help", description="Aide et guide d'utilisation"),
    BotCommand(command="analyze", description="Analyser un match (ex: /analyze PSG vs OM)"),
    BotCommand(command="compte", description="Voir mon compte et crédits"),
    BotCommand(command="acheter", description="Acheter des analyses"),
    BotCommand(command="premium", description="Passer Premium"),
    BotCommand(command="code", description="Entrer un code d'invitation"),
]


def create_bot(token: Optional[str] = None) -> Bot:
    token = token or settings.telegram_bot_token
    if not token:
        raise ConfigurationError("Telegram bot token is not configured", missing_keys=["TELEGRAM_BOT_TOKEN"])
    return Bot(token=token)


def create_dispatcher(sessions: Optional[SessionStore] = None) -> Dispatcher:
    """Dispatcher with the access middleware and every handler dependency injected."""
    accounts = get_account_repository()
    settings_repository = get_bot_settings_repository()

    dispatcher = Dispatcher(
        quota=get_quota_service(),
        payments=get_payment_service(),
        invites=get_invite_service(),
        sessions=sessions or SessionStore(),
        accounts=accounts,
        settings_repository=settings_repository,
        payment_repository=get_payment_repository(),
    )

    access = AccessMiddleware(accounts=accounts, settings_repository=settings_repository)
    dispatcher.message.outer_middleware(access)
    dispatcher.callback_query.outer_middleware(access)
    dispatcher.include_router(router)
    return dispatcher


async def start_polling(bot: Bot, dispatcher: Dispatcher) -> None:
    """Register the command menu and poll until cancelled."""
    await bot.set_my_commands(BOT_COMMANDS)
    logger.info("Telegram bot polling started")
    await dispatcher.start_polling(bot, handle_signals=False)
