"""
Integration tests for the public checkout routes and the Stripe webhook.
"""

import json
from unittest.mock import AsyncMock

from app.domain.bot_settings import BotSettings
from app.domain.payment import PaymentStatus
from app.infrastructure.payments.stripe_service import StripeService, StripeServiceError
from app.services.payment_service import PACKAGE_NOT_FOUND, PREMIUM_DISABLED


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "footbot"}


class TestPackages:

    def test_default_catalog(self, api_client):
        response = api_client.get("/api/packages")
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["pack_10", "pack_50", "pack_100", "pack_500"]

    def test_malformed_catalog_falls_back(self, api_client, settings_repo):
        settings_repo.current = BotSettings(credit_packages=[{"id": "broken"}])
        response = api_client.get("/api/packages")
        assert len(response.json()) == 4


class TestCheckout:

    def test_credits_checkout(self, api_client, payment_repo, accounts):
        response = api_client.post("/api/checkout/credits", json={"telegram_id": 11, "package_id": "pack_50"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["payment_url"].startswith("https://checkout.stripe.com/")
        assert accounts.accounts[11].stripe_customer_id == "cus_test"

        payment = next(iter(payment_repo.payments.values()))
        assert payment.status == PaymentStatus.PENDING
        assert payment.credits_added == 50
        assert payment.amount == 400

    def test_unknown_package(self, api_client):
        response = api_client.post("/api/checkout/credits", json={"telegram_id": 11, "package_id": "nope"})
        assert response.status_code == 400
        assert response.json()["detail"] == PACKAGE_NOT_FOUND

    def test_premium_checkout(self, api_client, payment_repo):
        response = api_client.post("/api/checkout/premium", json={"telegram_id": 11, "plan": "yearly"})

        assert response.status_code == 200
        payment = next(iter(payment_repo.payments.values()))
        assert payment.premium_days == 365
        assert payment.amount == 7999

    def test_premium_disabled(self, api_client, settings_repo):
        settings_repo.current = BotSettings(premium_enabled=False)
        response = api_client.post("/api/checkout/premium", json={"telegram_id": 11})
        assert response.status_code == 400
        assert response.json()["detail"] == PREMIUM_DISABLED


class TestStripeWebhook:

    def test_missing_signature_rejected_when_secret_configured(self, api_client, payment_service):
        stripe_service = StripeService()
        stripe_service._webhook_secret = "whsec_test"
        payment_service._stripe = stripe_service

        response = api_client.post("/api/webhooks/stripe", content=b'{"type": "customer.created"}')

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid webhook"

    def test_unsigned_event_settles_without_secret(self, api_client, payment_service, accounts):
        stripe_service = StripeService()
        stripe_service._webhook_secret = None
        payment_service._stripe = stripe_service
        # Checkout creation stays offline
        stripe_service.create_customer = AsyncMock(return_value="cus_test")
        stripe_service.create_checkout_session = AsyncMock(
            return_value=("cs_test_1", "https://checkout.stripe.com/c/pay/cs_test_1")
        )
        api_client.post("/api/checkout/credits", json={"telegram_id": 11, "package_id": "pack_10"})
        event = {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_test_1",
                "payment_intent": "pi_9",
                "metadata": {"telegram_id": "11", "type": "credits", "credits": "10"},
            }},
        }

        response = api_client.post("/api/webhooks/stripe", content=json.dumps(event).encode())

        assert response.status_code == 200
        assert response.json()["outcome"] == "applied"
        assert accounts.accounts[11].credits == 10

    def test_invalid_signature(self, api_client, mock_stripe_service):
        mock_stripe_service.parse_webhook.side_effect = StripeServiceError("Invalid signature")

        response = api_client.post(
            "/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid webhook"

    def test_completed_checkout_settles_once(self, api_client, mock_stripe_service, accounts):
        api_client.post("/api/checkout/credits", json={"telegram_id": 11, "package_id": "pack_10"})
        mock_stripe_service.parse_webhook.return_value = {
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_test_1",
                "payment_intent": "pi_9",
                "metadata": {"telegram_id": "11", "type": "credits", "credits": "10"},
            }},
        }
        headers = {"stripe-signature": "t=1,v1=ok"}

        first = api_client.post("/api/webhooks/stripe", content=b"{}", headers=headers)
        second = api_client.post("/api/webhooks/stripe", content=b"{}", headers=headers)

        assert first.json() == {"received": True, "outcome": "applied"}
        assert second.status_code == 200
        assert second.json()["outcome"] == "already_settled"
        assert accounts.accounts[11].credits == 10

    def test_unhandled_event_is_acknowledged(self, api_client, mock_stripe_service):
        mock_stripe_service.parse_webhook.return_value = {"type": "customer.created", "data": {"object": {}}}

        response = api_client.post(
            "/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=ok"}
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"
