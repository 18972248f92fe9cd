"""
Inline keyboards and callback data for the Telegram front end.

Telegram caps callback data at 64 bytes; team names that do not fit are
dropped from the reanalyze payload and read back from the chat session.
"""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from app.bot.messages import euros, yearly_savings
from app.domain.bot_settings import BotSettings, CreditPackage
from app.domain.payment import PremiumPlan

CALLBACK_DATA_LIMIT = 64

REANALYZE = "reanalyze"
DETAILS = "details"
BETS = "bets"
CORRECT = "correct"
BUY = "buy"
PREMIUM = "premium"
PREMIUM_INFO = "premium_info"


def reanalyze_data(home: str, away: str) -> str:
    data = f"{REANALYZE}:{home}:{away}"
    if len(data.encode("utf-8")) > CALLBACK_DATA_LIMIT or ":" in home + away:
        return REANALYZE
    return data


def analysis_keyboard(home: str, away: str, with_correction: bool = False) -> InlineKeyboardMarkup:
    second_row = [InlineKeyboardButton(text="💰 Paris uniquement", callback_data=BETS)]
    if with_correction:
        second_row.append(InlineKeyboardButton(text="✏️ Corriger équipes", callback_data=CORRECT))

    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="🔄 Relancer", callback_data=reanalyze_data(home, away)),
            InlineKeyboardButton(text="📊 Plus de détails", callback_data=DETAILS),
        ],
        second_row,
    ])


def package_label(package: CreditPackage) -> str:
    return f"+{package.credits} Analyses - {euros(package.price)}"


def credit_packages_keyboard(
    packages: list[CreditPackage],
    payment_urls: dict[str, Optional[str]],
) -> InlineKeyboardMarkup:
    """URL buttons where a checkout link exists, buy callbacks otherwise."""
    rows = []
    for package in packages:
        url = payment_urls.get(package.id)
        if url:
            rows.append([InlineKeyboardButton(text=package_label(package), url=url)])
        else:
            rows.append([InlineKeyboardButton(text=package_label(package), callback_data=f"{BUY}:{package.id}")])
    rows.append([InlineKeyboardButton(text="👑 Passer Premium", callback_data=PREMIUM_INFO)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def premium_keyboard(
    bot_settings: BotSettings,
    payment_urls: Optional[dict[PremiumPlan, Optional[str]]] = None,
) -> InlineKeyboardMarkup:
    payment_urls = payment_urls or {}
    labels = {
        PremiumPlan.MONTHLY: f"📅 Mensuel - {euros(bot_settings.premium_monthly_price)}",
        PremiumPlan.YEARLY: (
            f"📅 Annuel - {euros(bot_settings.premium_yearly_price)} "
            f"(-{euros(yearly_savings(bot_settings))})"
        ),
    }

    rows = []
    for plan, label in labels.items():
        url = payment_urls.get(plan)
        if url:
            rows.append([InlineKeyboardButton(text=label, url=url)])
        else:
            rows.append([InlineKeyboardButton(text=label, callback_data=f"{PREMIUM}:{plan.value}")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def payment_link_keyboard(label: str, url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text=label, url=url)]])
