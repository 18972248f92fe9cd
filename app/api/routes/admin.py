"""
Admin Routes

Operator dashboard backend: statistics, accounts, settings, payments and
invite codes. Protected by API key authentication.
"""

import logging
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.dependencies import (
    AccountRepoDep,
    BotSettingsRepoDep,
    InviteServiceDep,
    PaymentRepoDep,
    QuotaServiceDep,
    verify_admin_api_key,
)
from app.domain.account import Account, DailyTotal, LedgerMessage
from app.domain.bot_settings import BotSettings, BotSettingsUpdate
from app.domain.invite import InviteCode, InviteCodeCreate
from app.domain.payment import Payment, PaymentStatus
from app.infrastructure.exceptions import DuplicateError, NotFoundError

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)],  # Protect ALL admin routes
)


# =============================================================================
# Schemas
# =============================================================================

class AdminStats(BaseModel):
    users: dict[str, int]
    payments: dict[str, int]
    messages_per_day: list[DailyTotal]
    revenue_per_day: list[DailyTotal]
    recent_payments: list[Payment]
    top_users: list[Account]


class AccountPage(BaseModel):
    users: list[Account]
    total: int
    page: int
    limit: int


class AccountDetail(BaseModel):
    user: Account
    messages: list[LedgerMessage]
    payments: list[Payment]


class AccountUpdate(BaseModel):
    """Fields an operator may change; anything else in the body is ignored."""
    free_messages_limit: Optional[int] = Field(default=None, ge=0)
    free_messages_used: Optional[int] = Field(default=None, ge=0)
    credits: Optional[int] = Field(default=None, ge=0)
    is_premium: Optional[bool] = None
    premium_until: Optional[datetime] = None
    is_admin: Optional[bool] = None
    is_banned: Optional[bool] = None
    ban_reason: Optional[str] = None
    is_authorized: Optional[bool] = None


class AddCreditsRequest(BaseModel):
    amount: int = Field(..., gt=0)


class PaymentPage(BaseModel):
    payments: list[Payment]
    total: int
    page: int
    limit: int


# =============================================================================
# Statistics
# =============================================================================

@router.get("/stats", response_model=AdminStats)
async def get_stats(accounts: AccountRepoDep, payments: PaymentRepoDep):
    """
    Dashboard counters and series: messages per day over the last week,
    completed revenue per day over the last 30 days, the latest completed
    payments and the biggest spenders.
    """
    return AdminStats(
        users=await accounts.get_stats(),
        payments=await payments.get_revenue_stats(),
        messages_per_day=await accounts.get_messages_per_day(days=7),
        revenue_per_day=await payments.get_revenue_per_day(days=30),
        recent_payments=await payments.get_recent_completed(limit=10),
        top_users=await accounts.get_top_spenders(limit=10),
    )


# =============================================================================
# Accounts
# =============================================================================

@router.get("/users", response_model=AccountPage)
async def list_users(
    accounts: AccountRepoDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    users, total = await accounts.list_accounts(
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return AccountPage(users=users, total=total, page=page, limit=limit)


@router.get("/users/{telegram_id}", response_model=AccountDetail)
async def get_user(telegram_id: int, accounts: AccountRepoDep, payments: PaymentRepoDep):
    """Account with its last 50 messages and last 20 payments."""
    account = await accounts.get_by_telegram_id(telegram_id)
    if account is None:
        raise NotFoundError("User not found", details={"telegram_id": telegram_id})

    messages = await accounts.get_recent_messages(telegram_id, limit=50)
    recent_payments, _ = await payments.list_payments(page=1, limit=20, telegram_id=telegram_id)
    return AccountDetail(user=account, messages=messages, payments=recent_payments)


@router.patch("/users/{telegram_id}", response_model=Account)
async def update_user(telegram_id: int, changes: AccountUpdate, accounts: AccountRepoDep):
    values: dict[str, Any] = changes.model_dump(exclude_unset=True)
    account = await accounts.update_fields(telegram_id, values)
    if account is None:
        raise NotFoundError("User not found", details={"telegram_id": telegram_id})

    logger.info(f"Admin updated user {telegram_id}: {sorted(values)}")
    return account


@router.post("/users/{telegram_id}/add-credits", response_model=Account)
async def add_credits(telegram_id: int, request: AddCreditsRequest, quota: QuotaServiceDep):
    account = await quota.grant_credits(telegram_id, request.amount)
    logger.info(f"Admin added {request.amount} credits to {telegram_id}")
    return account


# =============================================================================
# Settings
# =============================================================================

@router.get("/settings", response_model=BotSettings)
async def get_bot_settings(repo: BotSettingsRepoDep):
    return await repo.get()


@router.patch("/settings", response_model=BotSettings)
async def update_bot_settings(changes: BotSettingsUpdate, repo: BotSettingsRepoDep):
    return await repo.update(changes)


# =============================================================================
# Payments
# =============================================================================

@router.get("/payments", response_model=PaymentPage)
async def list_payments(
    payments: PaymentRepoDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
):
    items, total = await payments.list_payments(page=page, limit=limit, status=payment_status)
    return PaymentPage(payments=items, total=total, page=page, limit=limit)


# =============================================================================
# Invite Codes
# =============================================================================

@router.get("/invite-codes", response_model=list[InviteCode])
async def list_invite_codes(invites: InviteServiceDep):
    return await invites.list_codes()


@router.post("/invite-codes", response_model=InviteCode, status_code=status.HTTP_201_CREATED)
async def create_invite_code(data: InviteCodeCreate, invites: InviteServiceDep):
    try:
        return await invites.create_code(data)
    except DuplicateError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invite code {data.code} already exists",
        )


@router.delete("/invite-codes/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invite_code(code: str, invites: InviteServiceDep):
    if not await invites.delete_code(code):
        raise NotFoundError("Invite code not found", details={"code": code})
