"""
Telegram Handlers

Routes chat commands, photos, free text and inline-button callbacks to the
ledger, payment and analysis services.

Paid analyses follow one sequence: entitlement check, pipeline run, debit,
then delivery. A failed pipeline run never debits; a request that loses the
debit race gets the ordinary insufficient-balance reply.

Handler dependencies (services, repositories, the session store) are
injected from the dispatcher's workflow data.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from aiogram import Bot, F, Router
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import CallbackQuery, ErrorEvent, InlineKeyboardMarkup, Message

from app.agents.graph import analyze_image, analyze_text, generate_details
from app.agents.nodes.renderer import build_bets_summary
from app.bot import keyboards, messages
from app.bot.session_store import SessionStore
from app.config.settings import settings
from app.domain.account import MessageMetadata, MessageType, ProfileHints
from app.domain.bot_settings import BotSettings, BotSettingsUpdate
from app.domain.invite import InviteCodeCreate, InviteCodeType, RedemptionOutcome
from app.domain.match import AnalysisOutcome
from app.domain.payment import PremiumPlan
from app.infrastructure.db.repositories.account_repository import AccountRepository
from app.infrastructure.db.repositories.bot_settings_repository import BotSettingsRepository
from app.infrastructure.db.repositories.payment_repository import PaymentRepository
from app.infrastructure.exceptions import (
    AnalysisFailedError,
    DuplicateError,
    FootballBotError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from app.services.invite_service import InviteService
from app.services.payment_service import PaymentService
from app.services.quota_service import NO_QUOTA_REASON, QuotaService

logger = logging.getLogger(__name__)

router = Router(name="footbot")

LOW_CONFIDENCE_THRESHOLD = 70

AnalysisRunner = Callable[[Message], Awaitable[AnalysisOutcome]]


# =============================================================================
# Helpers
# =============================================================================

async def send(
    bot: Bot,
    chat_id: int,
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
) -> Message:
    """Send Markdown, falling back to plain text when Telegram rejects the markup."""
    try:
        return await bot.send_message(chat_id, text, parse_mode=ParseMode.MARKDOWN, reply_markup=reply_markup)
    except TelegramBadRequest as e:
        logger.warning(f"Markdown rejected for chat {chat_id}, sending plain text: {e}")
        return await bot.send_message(chat_id, text, reply_markup=reply_markup)


async def delete_quietly(bot: Bot, message: Message) -> None:
    try:
        await bot.delete_message(message.chat.id, message.message_id)
    except TelegramBadRequest as e:
        logger.debug(f"Could not delete message {message.message_id}: {e}")


async def run_paid_analysis(
    bot: Bot,
    chat_id: int,
    telegram_id: int,
    run: AnalysisRunner,
    message_type: MessageType,
    processing_text: str,
    failure_text: str,
    quota: QuotaService,
    sessions: SessionStore,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
    content: Optional[str] = None,
    from_screenshot: bool = False,
) -> Optional[AnalysisOutcome]:
    """Entitlement check, pipeline, debit and delivery for one analysis."""
    entitlement = await quota.check_entitlement(telegram_id, bot_settings, hints)
    if not entitlement.allowed:
        await send(bot, chat_id, entitlement.reason or NO_QUOTA_REASON)
        return None

    processing = await send(bot, chat_id, processing_text)

    try:
        outcome = await run(processing)
    except AnalysisFailedError as e:
        logger.error(f"Analysis failed for {telegram_id} at {e.stage or 'unknown'}: {e.message}")
        await delete_quietly(bot, processing)
        await send(bot, chat_id, failure_text)
        return None

    candidate = outcome.candidate
    try:
        await quota.debit(
            telegram_id,
            MessageMetadata(
                type=message_type,
                content=content,
                home_team=candidate.team_home,
                away_team=candidate.team_away,
                competition=candidate.competition,
            ),
            bot_settings,
        )
    except InsufficientBalanceError:
        logger.info(f"Debit lost for {telegram_id}, analysis withheld")
        await delete_quietly(bot, processing)
        await send(bot, chat_id, NO_QUOTA_REASON)
        return None

    stats = await quota.get_user_stats(telegram_id, bot_settings, hints)
    await delete_quietly(bot, processing)

    text = outcome.message
    if from_screenshot and candidate.ocr_confidence < LOW_CONFIDENCE_THRESHOLD:
        text = messages.low_confidence_notice(candidate.ocr_confidence) + text

    await send(
        bot,
        chat_id,
        text + messages.quota_status(stats),
        reply_markup=keyboards.analysis_keyboard(
            candidate.team_home,
            candidate.team_away,
            with_correction=from_screenshot,
        ),
    )
    sessions.remember_analysis(telegram_id, outcome.report)

    logger.info(
        f"Analysis sent to {telegram_id}: {candidate.team_home} vs {candidate.team_away} "
        f"(confidence {candidate.ocr_confidence})"
    )
    return outcome


def _text_runner(home: str, away: str) -> AnalysisRunner:
    async def run(_processing: Message) -> AnalysisOutcome:
        return await analyze_text(home, away)
    return run


# =============================================================================
# Onboarding
# =============================================================================

REDEMPTION_REPLIES = {
    RedemptionOutcome.AUTHORIZED: "✅ Accès autorisé ! Bienvenue sur FootBot ⚽\n\nTapez /start pour commencer ou envoyez directement une photo de match !",
    RedemptionOutcome.ALREADY_AUTHORIZED: "✅ Vous avez déjà accès au bot.",
    RedemptionOutcome.ALREADY_USED: "❌ Ce code d'invitation a déjà été utilisé.",
    RedemptionOutcome.INVALID: "❌ Code invalide.",
    RedemptionOutcome.NOT_REQUIRED: "🔓 Le bot est public, vous n'avez pas besoin de code.",
}


@router.message(CommandStart())
async def cmd_start(
    message: Message,
    command: CommandObject,
    bot: Bot,
    quota: QuotaService,
    invites: InviteService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    telegram_id = message.from_user.id
    account = await quota.get_or_create(telegram_id, bot_settings, hints)

    if bot_settings.private_mode and not (account.is_authorized or account.is_admin):
        code = (command.args or "").strip()
        if not code:
            await send(bot, message.chat.id, "🔒 Ce bot est privé. Le code d'invitation est invalide ou manquant.")
            return

        outcome = await invites.redeem(telegram_id, code, bot_settings, hints)
        if outcome == RedemptionOutcome.ALREADY_USED:
            await send(bot, message.chat.id, "🔒 Ce code d'invitation a déjà été utilisé.")
            return
        if outcome == RedemptionOutcome.INVALID:
            await send(bot, message.chat.id, "🔒 Ce bot est privé. Le code d'invitation est invalide.")
            return
        await send(bot, message.chat.id, "✅ Accès autorisé ! Bienvenue.")

    stats = await quota.get_user_stats(telegram_id, bot_settings, hints)
    await send(bot, message.chat.id, messages.welcome(stats.remaining_free, bot_settings.welcome_message))


@router.message(Command("code"))
async def cmd_code(
    message: Message,
    command: CommandObject,
    bot: Bot,
    invites: InviteService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    code = (command.args or "").split()
    if not code:
        await send(bot, message.chat.id, "❌ Usage: `/code VOTRE_CODE`")
        return

    outcome = await invites.redeem(message.from_user.id, code[0], bot_settings, hints)
    await send(bot, message.chat.id, REDEMPTION_REPLIES[outcome])


@router.message(Command("help"))
async def cmd_help(message: Message, bot: Bot) -> None:
    await send(bot, message.chat.id, messages.HELP)


# =============================================================================
# Analysis
# =============================================================================

@router.message(Command("analyze"))
async def cmd_analyze(
    message: Message,
    command: CommandObject,
    bot: Bot,
    quota: QuotaService,
    sessions: SessionStore,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    text = (command.args or "").strip()
    if not text:
        await send(bot, message.chat.id, messages.ANALYZE_USAGE)
        return

    pairing = messages.parse_team_pairing(text)
    if pairing is None:
        await send(bot, message.chat.id, messages.ANALYZE_BAD_FORMAT)
        return

    home, away = pairing
    await run_paid_analysis(
        bot,
        message.chat.id,
        message.from_user.id,
        _text_runner(home, away),
        MessageType.COMMAND,
        processing_text=f"⏳ Analyse en cours...\n\n🏠 **{home}**\n✈️ **{away}**\n\n🔍 Récupération des données...",
        failure_text=messages.ANALYZE_FAILED,
        quota=quota,
        sessions=sessions,
        bot_settings=bot_settings,
        hints=hints,
        content=text,
    )


def _mime_type(file_path: str) -> str:
    if file_path.endswith(".png"):
        return "image/png"
    if file_path.endswith(".webp"):
        return "image/webp"
    return "image/jpeg"


@router.message(F.photo)
async def on_photo(
    message: Message,
    bot: Bot,
    quota: QuotaService,
    sessions: SessionStore,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    logger.info(f"Photo received from {message.from_user.id}")
    photo = message.photo[-1]

    async def run(processing: Message) -> AnalysisOutcome:
        file = await bot.get_file(photo.file_id)
        buffer = await bot.download_file(file.file_path)
        try:
            await bot.edit_message_text(
                messages.PROCESSING_EXTRACTION,
                chat_id=processing.chat.id,
                message_id=processing.message_id,
            )
        except TelegramBadRequest as e:
            logger.debug(f"Progress update skipped: {e}")
        return await analyze_image(buffer.read(), _mime_type(file.file_path or ""))

    await run_paid_analysis(
        bot,
        message.chat.id,
        message.from_user.id,
        run,
        MessageType.IMAGE,
        processing_text=messages.PROCESSING_PHOTO,
        failure_text=messages.PHOTO_FAILED,
        quota=quota,
        sessions=sessions,
        bot_settings=bot_settings,
        hints=hints,
        content=message.caption,
        from_screenshot=True,
    )


# =============================================================================
# Account & Payments
# =============================================================================

@router.message(Command("compte"))
async def cmd_account(
    message: Message,
    bot: Bot,
    quota: QuotaService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    stats = await quota.get_user_stats(message.from_user.id, bot_settings, hints)
    await send(bot, message.chat.id, messages.account_summary(stats))


@router.message(Command("acheter"))
async def cmd_buy(
    message: Message,
    bot: Bot,
    payments: PaymentService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    telegram_id = message.from_user.id
    loading = await send(bot, message.chat.id, messages.OFFERS_LOADING)
    packages = payments.get_credit_packages(bot_settings)

    try:
        results = await asyncio.gather(*(
            payments.create_credits_checkout(telegram_id, package.id, bot_settings, hints)
            for package in packages
        ))
    except FootballBotError as e:
        logger.error(f"Offers for {telegram_id} failed: {e.message}")
        await delete_quietly(bot, loading)
        await send(bot, message.chat.id, messages.OFFERS_FAILED)
        return

    urls = {package.id: result.payment_url for package, result in zip(packages, results)}
    await delete_quietly(bot, loading)
    await send(
        bot,
        message.chat.id,
        messages.credit_offers(packages),
        reply_markup=keyboards.credit_packages_keyboard(packages, urls),
    )


@router.message(Command("premium"))
async def cmd_premium(message: Message, bot: Bot, bot_settings: BotSettings) -> None:
    if not bot_settings.premium_enabled:
        await send(bot, message.chat.id, messages.PREMIUM_DISABLED)
        return

    await send(
        bot,
        message.chat.id,
        messages.premium_offer(bot_settings),
        reply_markup=keyboards.premium_keyboard(bot_settings),
    )


# =============================================================================
# Admin Commands
# =============================================================================

async def _require_admin(bot: Bot, message: Message, accounts: AccountRepository) -> bool:
    account = await accounts.get_by_telegram_id(message.from_user.id)
    if account is None or not account.is_admin:
        await send(bot, message.chat.id, messages.ACCESS_DENIED)
        return False
    return True


def _parse_target(args: Optional[str]) -> Optional[int]:
    parts = (args or "").split()
    if not parts:
        return None
    try:
        return int(parts[0])
    except ValueError:
        return None


@router.message(Command("admin"))
async def cmd_admin(message: Message, bot: Bot, accounts: AccountRepository) -> None:
    if not await _require_admin(bot, message, accounts):
        return
    await send(bot, message.chat.id, messages.ADMIN_HELP.format(dashboard_url=settings.frontend_url))


@router.message(Command("admin_stats"))
async def cmd_admin_stats(
    message: Message,
    bot: Bot,
    accounts: AccountRepository,
    payment_repository: PaymentRepository,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return
    stats, revenue = await asyncio.gather(accounts.get_stats(), payment_repository.get_revenue_stats())
    await send(bot, message.chat.id, messages.admin_stats(stats, revenue))


@router.message(Command("admin_user"))
async def cmd_admin_user(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    target = _parse_target(command.args)
    if target is None:
        await send(bot, message.chat.id, "Usage: /admin\\_user [telegramId]")
        return

    account = await accounts.get_by_telegram_id(target)
    if account is None:
        await send(bot, message.chat.id, messages.USER_NOT_FOUND)
        return
    await send(bot, message.chat.id, messages.admin_user(account))


@router.message(Command("admin_credits"))
async def cmd_admin_credits(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
    quota: QuotaService,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    parts = (command.args or "").split()
    try:
        target, amount = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        await send(bot, message.chat.id, "Usage: /admin\\_credits [telegramId] [amount]")
        return

    try:
        account = await quota.grant_credits(target, amount)
    except NotFoundError:
        await send(bot, message.chat.id, messages.USER_NOT_FOUND)
        return
    except ValidationError as e:
        await send(bot, message.chat.id, f"❌ {e.message}")
        return

    await send(
        bot,
        message.chat.id,
        f"✅ {amount} crédits ajoutés à l'utilisateur {target}. Nouveau solde : {account.credits}",
    )


@router.message(Command("admin_ban"))
async def cmd_admin_ban(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    target = _parse_target(command.args)
    if target is None:
        await send(bot, message.chat.id, "Usage: /admin\\_ban [telegramId] [raison]")
        return

    reason = " ".join((command.args or "").split()[1:]) or "Aucune raison spécifiée"
    account = await accounts.update_fields(target, {"is_banned": True, "ban_reason": reason})
    if account is None:
        await send(bot, message.chat.id, messages.USER_NOT_FOUND)
        return
    await send(bot, message.chat.id, f"🚫 Utilisateur {target} banni. Raison : {reason}")


@router.message(Command("admin_unban"))
async def cmd_admin_unban(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    target = _parse_target(command.args)
    if target is None:
        await send(bot, message.chat.id, "Usage: /admin\\_unban [telegramId]")
        return

    account = await accounts.update_fields(target, {"is_banned": False, "ban_reason": None})
    if account is None:
        await send(bot, message.chat.id, messages.USER_NOT_FOUND)
        return
    await send(bot, message.chat.id, f"✅ Utilisateur {target} débanni")


@router.message(Command("admin_maintenance"))
async def cmd_admin_maintenance(
    message: Message,
    bot: Bot,
    accounts: AccountRepository,
    settings_repository: BotSettingsRepository,
    bot_settings: BotSettings,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return
    updated = await settings_repository.update(BotSettingsUpdate(maintenance_mode=not bot_settings.maintenance_mode))
    await send(bot, message.chat.id, f"🔧 Mode maintenance : {'✅ Activé' if updated.maintenance_mode else '❌ Désactivé'}")


@router.message(Command("admin_private"))
async def cmd_admin_private(
    message: Message,
    bot: Bot,
    accounts: AccountRepository,
    settings_repository: BotSettingsRepository,
    bot_settings: BotSettings,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return
    updated = await settings_repository.update(BotSettingsUpdate(private_mode=not bot_settings.private_mode))
    await send(bot, message.chat.id, f"🔒 Mode privé : {'✅ Activé' if updated.private_mode else '❌ Désactivé'}")


@router.message(Command("admin_setfree"))
async def cmd_admin_setfree(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
    settings_repository: BotSettingsRepository,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    limit = _parse_target(command.args)
    if limit is None or limit < 0:
        await send(bot, message.chat.id, "Usage: /admin\\_setfree [nombre]")
        return

    await settings_repository.update(BotSettingsUpdate(free_messages_limit=limit))
    await send(bot, message.chat.id, f"✅ Limite de messages gratuits changée à {limit}")


@router.message(Command("admin_invite"))
async def cmd_admin_invite(
    message: Message,
    command: CommandObject,
    bot: Bot,
    accounts: AccountRepository,
    invites: InviteService,
    bot_settings: BotSettings,
) -> None:
    if not await _require_admin(bot, message, accounts):
        return

    parts = (command.args or "").split()
    action = parts[0] if parts else None
    code = parts[1] if len(parts) > 1 else None

    if action == "add" and code:
        code_type = InviteCodeType.UNLIMITED if "unlimited" in parts[2:] else InviteCodeType.ONE_TIME
        try:
            await invites.create_code(InviteCodeCreate(code=code, type=code_type))
        except DuplicateError:
            await send(bot, message.chat.id, "❌ Ce code existe déjà")
            return
        except ValueError:
            await send(bot, message.chat.id, "❌ Code invalide (3 à 64 caractères)")
            return
        await send(bot, message.chat.id, f"✅ Code d'invitation ajouté : `{code}` ({code_type.value})")
    elif action == "remove" and code:
        if await invites.delete_code(code):
            await send(bot, message.chat.id, f"🗑️ Code supprimé : {code}")
        else:
            await send(bot, message.chat.id, "❌ Code introuvable")
    elif action == "list":
        codes = await invites.list_codes()
        lines = [
            f"• `{c.code}` ({c.type.value}{', utilisé' if c.is_used else ''})"
            for c in codes
        ]
        lines.extend(f"• `{c}` (legacy)" for c in bot_settings.access_codes)
        listing = "\n".join(lines) if lines else "Aucun code"
        await send(bot, message.chat.id, f"📝 **Codes d'invitation :**\n\n{listing}")
    else:
        await send(
            bot,
            message.chat.id,
            "Usage:\n/admin\\_invite add [code] [unlimited]\n/admin\\_invite remove [code]\n/admin\\_invite list",
        )


# =============================================================================
# Callbacks
# =============================================================================

@router.callback_query(F.data.startswith(keyboards.REANALYZE))
async def on_reanalyze(
    callback: CallbackQuery,
    bot: Bot,
    quota: QuotaService,
    sessions: SessionStore,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    telegram_id = callback.from_user.id
    parts = callback.data.split(":", 2)
    if len(parts) == 3:
        home, away = parts[1], parts[2]
    else:
        session = sessions.peek(telegram_id)
        if session is None or session.last_match is None:
            await callback.answer()
            await send(bot, telegram_id, messages.NO_RECENT_ANALYSIS)
            return
        home, away = session.last_match.home, session.last_match.away

    await callback.answer("🔄 Relance de l'analyse...")
    await run_paid_analysis(
        bot,
        telegram_id,
        telegram_id,
        _text_runner(home, away),
        MessageType.COMMAND,
        processing_text="⏳ Nouvelle analyse en cours...",
        failure_text=messages.REANALYZE_FAILED,
        quota=quota,
        sessions=sessions,
        bot_settings=bot_settings,
        hints=hints,
        content=f"{home} vs {away}",
    )


@router.callback_query(F.data == keyboards.DETAILS)
async def on_details(callback: CallbackQuery, bot: Bot, sessions: SessionStore) -> None:
    await callback.answer("📊 Voir les détails complets")
    telegram_id = callback.from_user.id

    session = sessions.peek(telegram_id)
    if session is None or session.last_match is None:
        await send(bot, telegram_id, messages.NO_RECENT_ANALYSIS)
        return

    match = session.last_match
    await send(bot, telegram_id, f"⏳ Récupération des détails pour {match.home} vs {match.away}...")
    details = await generate_details(match.home, match.away, match.competition)
    await send(bot, telegram_id, details)


@router.callback_query(F.data == keyboards.BETS)
async def on_bets(callback: CallbackQuery, bot: Bot, sessions: SessionStore) -> None:
    await callback.answer("💰 Paris suggérés")
    telegram_id = callback.from_user.id

    session = sessions.peek(telegram_id)
    if session is None or session.last_report is None:
        await send(bot, telegram_id, messages.NO_REPORT_FOR_BETS)
        return
    await send(bot, telegram_id, build_bets_summary(session.last_report))


@router.callback_query(F.data == keyboards.CORRECT)
async def on_correct(callback: CallbackQuery, bot: Bot, sessions: SessionStore) -> None:
    await callback.answer("✏️ Correction des équipes")
    sessions.get(callback.from_user.id).awaiting_correction = True
    await send(bot, callback.from_user.id, messages.CORRECTION_PROMPT)


@router.callback_query(F.data.startswith(f"{keyboards.BUY}:"))
async def on_buy(
    callback: CallbackQuery,
    bot: Bot,
    payments: PaymentService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    await callback.answer("💳 Création du paiement...")
    package_id = callback.data.split(":", 1)[1]
    result = await payments.create_credits_checkout(callback.from_user.id, package_id, bot_settings, hints)

    if result.success and result.payment_url:
        await send(
            bot,
            callback.from_user.id,
            "💳 **Paiement**\n\nClique sur le bouton ci-dessous pour finaliser ton achat :",
            reply_markup=keyboards.payment_link_keyboard("💳 Payer maintenant", result.payment_url),
        )
    else:
        await send(bot, callback.from_user.id, f"❌ {result.error or 'Erreur lors de la création du paiement'}")


@router.callback_query(F.data.startswith(f"{keyboards.PREMIUM}:"))
async def on_premium_plan(
    callback: CallbackQuery,
    bot: Bot,
    payments: PaymentService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    try:
        plan = PremiumPlan(callback.data.split(":", 1)[1])
    except ValueError:
        await callback.answer()
        return

    await callback.answer("💳 Création du paiement...")
    result = await payments.create_premium_checkout(callback.from_user.id, plan, bot_settings, hints)

    if result.success and result.payment_url:
        label = "Mensuel" if plan == PremiumPlan.MONTHLY else "Annuel"
        await send(
            bot,
            callback.from_user.id,
            f"👑 **Premium {label}**\n\nClique sur le bouton ci-dessous pour finaliser ton abonnement :",
            reply_markup=keyboards.payment_link_keyboard("👑 S'abonner maintenant", result.payment_url),
        )
    else:
        await send(bot, callback.from_user.id, f"❌ {result.error or 'Erreur lors de la création du paiement'}")


@router.callback_query(F.data == keyboards.PREMIUM_INFO)
async def on_premium_info(
    callback: CallbackQuery,
    bot: Bot,
    payments: PaymentService,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    await callback.answer()
    telegram_id = callback.from_user.id

    if not bot_settings.premium_enabled:
        await send(bot, telegram_id, messages.PREMIUM_DISABLED)
        return

    loading = await send(bot, telegram_id, "🔄 Chargement des offres Premium...")
    try:
        monthly, yearly = await asyncio.gather(
            payments.create_premium_checkout(telegram_id, PremiumPlan.MONTHLY, bot_settings, hints),
            payments.create_premium_checkout(telegram_id, PremiumPlan.YEARLY, bot_settings, hints),
        )
    except FootballBotError as e:
        logger.error(f"Premium offers for {telegram_id} failed: {e.message}")
        await delete_quietly(bot, loading)
        await send(bot, telegram_id, "❌ Erreur lors du chargement des offres Premium.")
        return

    await delete_quietly(bot, loading)
    await send(
        bot,
        telegram_id,
        messages.premium_offer(bot_settings),
        reply_markup=keyboards.premium_keyboard(bot_settings, {
            PremiumPlan.MONTHLY: monthly.payment_url,
            PremiumPlan.YEARLY: yearly.payment_url,
        }),
    )


# =============================================================================
# Free Text (team correction)
# =============================================================================

@router.message(F.text)
async def on_text(
    message: Message,
    bot: Bot,
    quota: QuotaService,
    sessions: SessionStore,
    bot_settings: BotSettings,
    hints: Optional[ProfileHints] = None,
) -> None:
    telegram_id = message.from_user.id
    session = sessions.peek(telegram_id)

    if session is None or not session.awaiting_correction:
        await send(bot, message.chat.id, messages.DEFAULT_TEXT_REPLY)
        return

    pairing = messages.parse_team_pairing(message.text)
    if pairing is None:
        await send(bot, message.chat.id, messages.CORRECTION_BAD_FORMAT)
        return

    session.awaiting_correction = False
    home, away = pairing
    await run_paid_analysis(
        bot,
        message.chat.id,
        telegram_id,
        _text_runner(home, away),
        MessageType.TEXT,
        processing_text="⏳ Analyse du match corrigé...",
        failure_text=messages.CORRECTION_FAILED,
        quota=quota,
        sessions=sessions,
        bot_settings=bot_settings,
        hints=hints,
        content=message.text,
    )


# =============================================================================
# Errors
# =============================================================================

@router.errors()
async def on_error(event: ErrorEvent, bot: Bot) -> bool:
    """Log the failure and tell the user; every update gets an answer."""
    logger.exception(f"Bot error: {event.exception}", exc_info=event.exception)

    update = event.update
    chat_id = None
    if update.message is not None:
        chat_id = update.message.chat.id
    elif update.callback_query is not None:
        chat_id = update.callback_query.from_user.id

    if chat_id is not None:
        try:
            await bot.send_message(chat_id, messages.GENERIC_ERROR)
        except TelegramBadRequest as e:
            logger.warning(f"Could not deliver error reply to {chat_id}: {e}")
    return True
