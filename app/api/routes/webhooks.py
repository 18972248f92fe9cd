"""
Stripe Webhook Handler

Settles checkouts from Stripe events. Idempotency rests on the payment
record's status: settlement is a compare-and-set from pending, so replays
and concurrent deliveries apply at most once.

Handled events:
- checkout.session.completed: grant credits or extend premium
- payment_intent.payment_failed: mark the correlated payment failed
- checkout.session.expired: mark the pending payment failed
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.api.dependencies import PaymentServiceDep
from app.infrastructure.exceptions import PaymentError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, payments: PaymentServiceDep):
    """
    Verify and process a Stripe event.

    Returns 200 for every verified event, including ones that were already
    settled or refer to unknown payments, so Stripe stops retrying. Whether
    a missing signature is acceptable depends on the webhook secret and is
    decided by the Stripe service.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        outcome = await payments.handle_settlement_callback(payload, signature)
    except PaymentError as e:
        logger.error(f"Webhook rejected: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook",
        )

    return {"received": True, "outcome": outcome.value}
