"""
Checkout API Routes

Public catalog and checkout creation for web clients.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from app.api.dependencies import BotSettingsDep, PaymentServiceDep
from app.domain.bot_settings import CreditPackage
from app.domain.payment import CheckoutResult, CreditsCheckoutRequest, PremiumCheckoutRequest


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/packages", response_model=list[CreditPackage])
async def list_packages(bot_settings: BotSettingsDep, payments: PaymentServiceDep):
    """Credit catalog, falling back to the default packages when misconfigured."""
    return payments.get_credit_packages(bot_settings)


@router.post("/checkout/credits", response_model=CheckoutResult)
async def create_credits_checkout(
    request: CreditsCheckoutRequest,
    bot_settings: BotSettingsDep,
    payments: PaymentServiceDep,
):
    result = await payments.create_credits_checkout(request.telegram_id, request.package_id, bot_settings)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    return result


@router.post("/checkout/premium", response_model=CheckoutResult)
async def create_premium_checkout(
    request: PremiumCheckoutRequest,
    bot_settings: BotSettingsDep,
    payments: PaymentServiceDep,
):
    result = await payments.create_premium_checkout(request.telegram_id, request.plan, bot_settings)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    return result
