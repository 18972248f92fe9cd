"""
Unit tests for the Stripe adapter.

The SDK calls are patched; the tests check what reaches them, that they run
outside the event loop thread, and how webhook bodies are verified.
"""

import json
import threading
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from app.infrastructure.payments.stripe_service import StripeService, StripeServiceError


@pytest.fixture
def service():
    stripe_service = StripeService()
    stripe_service._webhook_secret = None
    return stripe_service


class TestCheckout:

    @pytest.mark.asyncio
    async def test_customer_create_runs_in_worker_thread(self, service):
        loop_thread = threading.get_ident()
        seen = {}

        def create(**kwargs):
            seen["thread"] = threading.get_ident()
            seen["kwargs"] = kwargs
            return SimpleNamespace(id="cus_123")

        with patch("stripe.Customer.create", side_effect=create):
            assert await service.create_customer(4242, "Zinedine") == "cus_123"

        assert seen["thread"] != loop_thread
        assert seen["kwargs"]["metadata"]["telegram_id"] == "4242"

    @pytest.mark.asyncio
    async def test_session_create_runs_in_worker_thread(self, service):
        loop_thread = threading.get_ident()
        seen = {}

        def create(**kwargs):
            seen["thread"] = threading.get_ident()
            seen["kwargs"] = kwargs
            return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

        metadata = {"telegram_id": "4242", "reference": "ref-1"}
        with patch("stripe.checkout.Session.create", side_effect=create):
            session_id, url = await service.create_checkout_session(
                "cus_123", 400, "Pack 50", "50 crédits", metadata
            )

        assert (session_id, url) == ("cs_test_1", "https://checkout.stripe.com/c/cs_test_1")
        assert seen["thread"] != loop_thread
        assert seen["kwargs"]["mode"] == "payment"
        assert seen["kwargs"]["line_items"][0]["price_data"]["unit_amount"] == 400
        assert seen["kwargs"]["payment_intent_data"] == {"metadata": metadata}

    @pytest.mark.asyncio
    async def test_stripe_error_is_wrapped(self, service):
        with patch("stripe.Customer.create", side_effect=stripe.StripeError("card network down")):
            with pytest.raises(StripeServiceError):
                await service.create_customer(4242)


class TestParseWebhook:

    EVENT = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {}}}).encode()

    def test_unsigned_event_accepted_without_secret(self, service):
        assert service.parse_webhook(self.EVENT, None)["id"] == "evt_1"

    def test_missing_signature_rejected_with_secret(self, service):
        service._webhook_secret = "whsec_test"
        with pytest.raises(StripeServiceError, match="Missing"):
            service.parse_webhook(self.EVENT, None)

    def test_bad_signature_rejected_with_secret(self, service):
        service._webhook_secret = "whsec_test"
        with pytest.raises(StripeServiceError, match="Invalid signature"):
            service.parse_webhook(self.EVENT, "t=1,v1=deadbeef")

    def test_non_event_body_rejected(self, service):
        with pytest.raises(StripeServiceError, match="Invalid payload"):
            service.parse_webhook(b"[1, 2]", None)
