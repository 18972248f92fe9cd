"""
Invite Code Domain Models

Codes grant access while the bot runs in private mode.
One-time codes are consumed by their first redemption; unlimited codes never are.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class InviteCodeType(str, Enum):
    ONE_TIME = "one_time"
    UNLIMITED = "unlimited"


class InviteCode(BaseModel):
    id: Optional[str] = None
    code: str
    type: InviteCodeType = InviteCodeType.ONE_TIME
    is_used: bool = False
    used_by: Optional[int] = None
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InviteCodeCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=64)
    type: InviteCodeType = InviteCodeType.ONE_TIME


class RedemptionOutcome(str, Enum):
    """Result of presenting a code."""
    AUTHORIZED = "authorized"
    ALREADY_AUTHORIZED = "already_authorized"
    ALREADY_USED = "already_used"
    INVALID = "invalid"
    NOT_REQUIRED = "not_required"
