"""
Bot Settings Database Model

Single-row table keyed by the literal "global".
"""

from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class BotSettingsModel(UUIDMixin, TimestampMixin, table=True):
    """Maps to the 'bot_settings' table."""

    __tablename__ = "bot_settings"

    key: str = Field(default="global", unique=True, index=True)

    free_messages_limit: int = Field(default=5)
    cost_per_message: int = Field(default=1)
    credit_packages: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    premium_enabled: bool = Field(default=True)
    premium_monthly_price: int = Field(default=999)
    premium_yearly_price: int = Field(default=7999)

    maintenance_mode: bool = Field(default=False)
    private_mode: bool = Field(default=False)
    access_codes: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    welcome_message: Optional[str] = Field(default=None)
