"""
Ledger Message Database Model

Append-only log of consumed analyses.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, Column
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class LedgerMessageModel(UUIDMixin, TimestampMixin, table=True):
    """Maps to the 'messages' table."""

    __tablename__ = "messages"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    telegram_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))

    type: str = Field(default="text")
    content: Optional[str] = Field(default=None)
    home_team: Optional[str] = Field(default=None)
    away_team: Optional[str] = Field(default=None)
    competition: Optional[str] = Field(default=None)

    was_free: bool = Field(default=True)
    cost: int = Field(default=0)
