"""
Stripe Payment Service

Infrastructure service for Stripe one-off payments: customers, hosted
Checkout Sessions in payment mode, and webhook verification.

The SDK is synchronous; network calls run in a worker thread so the event
loop keeps serving the bot and the API.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import stripe
from stripe import StripeError

from app.config.settings import get_settings


logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Stripe rejected a call, or a webhook failed verification."""


class StripeService:
    """One-off card payments through hosted Checkout, plus webhook decoding."""

    def __init__(self):
        settings = get_settings()
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._frontend_url = settings.frontend_url.rstrip("/")

        if self._api_key:
            stripe.api_key = self._api_key

    @property
    def success_url(self) -> str:
        return f"{self._frontend_url}/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self._frontend_url}/cancel"

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(
        self,
        telegram_id: int,
        name: Optional[str] = None,
    ) -> str:
        """Create a customer tagged with the Telegram id; returns its id."""
        try:
            customer = await asyncio.to_thread(
                stripe.Customer.create,
                name=name,
                metadata={
                    "telegram_id": str(telegram_id),
                    "source": "football_analysis_bot",
                },
            )
            logger.info(f"Created Stripe customer {customer.id} for telegram user {telegram_id}")
            return customer.id

        except StripeError as e:
            logger.error(f"Failed to create Stripe customer: {e}")
            raise StripeServiceError(f"Failed to create customer: {e.user_message}")

    # =========================================================================
    # Checkout Session (one-off payment)
    # =========================================================================

    async def create_checkout_session(
        self,
        customer_id: str,
        amount: int,
        product_name: str,
        product_description: str,
        metadata: dict[str, str],
        currency: str = "eur",
    ) -> tuple[str, str]:
        """
        Create a hosted Checkout Session for a single purchase.

        The same metadata is attached to the session and to its
        PaymentIntent so failure events can be correlated back.

        Args:
            customer_id: Stripe customer id
            amount: Unit amount in minor units (cents)
            product_name: Line item name shown on the checkout page
            product_description: Line item description
            metadata: String key/values echoed back on webhooks
            currency: ISO currency code

        Returns:
            (session id, checkout URL)
        """
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": product_name,
                                "description": product_description,
                            },
                            "unit_amount": amount,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )

            logger.info(
                f"Created checkout session {session.id} for customer {customer_id}, "
                f"amount={amount} {currency}"
            )
            return session.id, session.url

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(f"Failed to create checkout: {e.user_message}")

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify (when a secret is configured) and decode a webhook body.

        Returns:
            The event as a plain dict

        Raises:
            StripeServiceError: Missing/invalid signature or undecodable payload
        """
        if self._webhook_secret:
            if not signature:
                raise StripeServiceError("Missing Stripe signature")
            try:
                stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
            except stripe.SignatureVerificationError as e:
                raise StripeServiceError(f"Invalid signature: {e}")
            except ValueError as e:
                raise StripeServiceError(f"Invalid payload: {e}")
        else:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, accepting unsigned webhook")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise StripeServiceError(f"Invalid payload: {e}")

        if not isinstance(event, dict) or "type" not in event:
            raise StripeServiceError("Invalid payload: not a Stripe event")
        return event


_stripe_service: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    global _stripe_service
    if _stripe_service is None:
        _stripe_service = StripeService()
    return _stripe_service
