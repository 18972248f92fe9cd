"""
Invite Code Database Model
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class InviteCodeModel(UUIDMixin, TimestampMixin, table=True):
    """Maps to the 'invite_codes' table."""

    __tablename__ = "invite_codes"

    code: str = Field(unique=True, index=True)
    type: str = Field(default="one_time")
    is_used: bool = Field(default=False)
    used_by: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    used_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
