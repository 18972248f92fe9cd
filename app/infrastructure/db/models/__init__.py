"""
SQLModel ORM Models for the Football Analysis Bot

Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
)
from app.infrastructure.db.models.account import AccountModel
from app.infrastructure.db.models.ledger_message import LedgerMessageModel
from app.infrastructure.db.models.payment import PaymentModel
from app.infrastructure.db.models.bot_settings import BotSettingsModel
from app.infrastructure.db.models.invite_code import InviteCodeModel


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    # Tables
    "AccountModel",
    "LedgerMessageModel",
    "PaymentModel",
    "BotSettingsModel",
    "InviteCodeModel",
]
