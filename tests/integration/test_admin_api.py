"""
Integration tests for the admin API.

Routes run through FastAPI with repositories and services overridden by the
in-memory fakes.
"""

from datetime import timedelta

from app.domain.account import LedgerMessage, MessageType, utcnow
from app.domain.invite import InviteCodeType
from app.domain.payment import Payment, PaymentStatus, PaymentType


class TestAdminAuth:

    def test_missing_key(self, api_client, admin_headers):
        response = api_client.get("/api/admin/stats")
        assert response.status_code == 422

    def test_wrong_key(self, api_client, admin_headers):
        response = api_client.get("/api/admin/stats", headers={"X-Admin-Key": "wrong"})
        assert response.status_code == 403

    def test_key_not_configured(self, api_client, monkeypatch):
        from app.config.settings import get_settings
        monkeypatch.setattr(get_settings(), "admin_api_key", None)

        response = api_client.get("/api/admin/stats", headers={"X-Admin-Key": "anything"})

        assert response.status_code == 503


class TestStats:

    def test_stats(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=1, credits=10)
        accounts.add(telegram_id=2, is_banned=True)

        response = api_client.get("/api/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["users"]["total_users"] == 2
        assert data["users"]["banned_users"] == 1
        assert data["users"]["credits_outstanding"] == 10
        assert data["payments"]["total_revenue"] == 0

    def test_series_and_rankings(self, api_client, admin_headers, accounts, payment_repo):
        now = utcnow()
        today = now.date().isoformat()
        yesterday = (now - timedelta(days=1)).date().isoformat()

        accounts.add(telegram_id=1, total_spent=30, total_messages_sent=30)
        accounts.add(telegram_id=2, total_spent=5, total_messages_sent=5)
        accounts.add(telegram_id=3)
        for days_ago in (0, 1, 1, 9):
            accounts.messages.append(LedgerMessage(
                telegram_id=1,
                type=MessageType.TEXT,
                was_free=False,
                cost=1,
                created_at=now - timedelta(days=days_ago),
            ))

        def seed_payment(ref, amount, status, days_ago):
            payment_repo.payments[ref] = Payment(
                id=ref,
                telegram_id=1,
                stripe_session_id=f"cs_{ref}",
                reference=ref,
                amount=amount,
                type=PaymentType.CREDITS,
                status=status,
                created_at=now - timedelta(days=days_ago),
            )

        seed_payment("today", 400, PaymentStatus.COMPLETED, 0)
        seed_payment("yesterday", 800, PaymentStatus.COMPLETED, 1)
        seed_payment("pending", 999, PaymentStatus.PENDING, 0)
        seed_payment("old", 100, PaymentStatus.COMPLETED, 40)

        response = api_client.get("/api/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["messages_per_day"] == [
            {"day": yesterday, "total": 2},
            {"day": today, "total": 1},
        ]
        assert data["revenue_per_day"] == [
            {"day": yesterday, "total": 800},
            {"day": today, "total": 400},
        ]
        assert [p["id"] for p in data["recent_payments"]] == ["today", "yesterday", "old"]
        assert [u["telegram_id"] for u in data["top_users"]] == [1, 2, 3]


class TestUsers:

    def test_list_and_search(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=1, username="alice")
        accounts.add(telegram_id=2, username="bob")

        response = api_client.get("/api/admin/users", headers=admin_headers, params={"search": "ali"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["users"][0]["telegram_id"] == 1
        assert data["page"] == 1

    def test_invalid_sort_order(self, api_client, admin_headers):
        response = api_client.get("/api/admin/users", headers=admin_headers, params={"sort_order": "up"})
        assert response.status_code == 422

    def test_user_detail(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=7, username="carol")

        response = api_client.get("/api/admin/users/7", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["username"] == "carol"
        assert data["messages"] == []
        assert data["payments"] == []

    def test_user_not_found(self, api_client, admin_headers):
        response = api_client.get("/api/admin/users/404", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_patch_whitelisted_fields_only(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=7)

        response = api_client.patch(
            "/api/admin/users/7",
            headers=admin_headers,
            json={"is_banned": True, "ban_reason": "spam", "total_spent": 999},
        )

        assert response.status_code == 200
        account = accounts.accounts[7]
        assert account.is_banned is True
        assert account.ban_reason == "spam"
        assert account.total_spent == 0

    def test_patch_rejects_negative_credits(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=7)
        response = api_client.patch("/api/admin/users/7", headers=admin_headers, json={"credits": -5})
        assert response.status_code == 422

    def test_add_credits(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=7, credits=3)

        response = api_client.post("/api/admin/users/7/add-credits", headers=admin_headers, json={"amount": 10})

        assert response.status_code == 200
        assert response.json()["credits"] == 13

    def test_add_credits_requires_positive_amount(self, api_client, admin_headers, accounts):
        accounts.add(telegram_id=7)
        response = api_client.post("/api/admin/users/7/add-credits", headers=admin_headers, json={"amount": 0})
        assert response.status_code == 422

    def test_add_credits_unknown_user(self, api_client, admin_headers):
        response = api_client.post("/api/admin/users/8/add-credits", headers=admin_headers, json={"amount": 5})
        assert response.status_code == 404


class TestSettings:

    def test_get_settings(self, api_client, admin_headers):
        response = api_client.get("/api/admin/settings", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["free_messages_limit"] == 5

    def test_patch_settings(self, api_client, admin_headers, settings_repo):
        response = api_client.patch(
            "/api/admin/settings",
            headers=admin_headers,
            json={"maintenance_mode": True, "free_messages_limit": 3},
        )

        assert response.status_code == 200
        assert settings_repo.current.maintenance_mode is True
        assert settings_repo.current.free_messages_limit == 3
        assert settings_repo.current.cost_per_message == 1

    def test_patch_rejects_zero_cost(self, api_client, admin_headers):
        response = api_client.patch("/api/admin/settings", headers=admin_headers, json={"cost_per_message": 0})
        assert response.status_code == 422


class TestPayments:

    def test_filter_by_status(self, api_client, admin_headers, payment_repo):
        for i, status in enumerate((PaymentStatus.COMPLETED, PaymentStatus.PENDING)):
            payment_repo.payments[f"p{i}"] = Payment(
                id=f"p{i}",
                telegram_id=1,
                stripe_session_id=f"cs_{i}",
                reference=f"ref_{i}",
                amount=400,
                type=PaymentType.CREDITS,
                status=status,
            )

        response = api_client.get("/api/admin/payments", headers=admin_headers, params={"status": "completed"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["payments"][0]["stripe_session_id"] == "cs_0"


class TestInviteCodes:

    def test_create_and_list(self, api_client, admin_headers):
        response = api_client.post(
            "/api/admin/invite-codes",
            headers=admin_headers,
            json={"code": "VIP2026", "type": "unlimited"},
        )
        assert response.status_code == 201
        assert response.json()["type"] == InviteCodeType.UNLIMITED.value

        listed = api_client.get("/api/admin/invite-codes", headers=admin_headers).json()
        assert [c["code"] for c in listed] == ["VIP2026"]

    def test_duplicate_code(self, api_client, admin_headers, invite_repo):
        invite_repo.add("TAKEN")
        response = api_client.post("/api/admin/invite-codes", headers=admin_headers, json={"code": "TAKEN"})
        assert response.status_code == 409

    def test_delete_code(self, api_client, admin_headers, invite_repo):
        invite_repo.add("BYE")
        response = api_client.delete("/api/admin/invite-codes/BYE", headers=admin_headers)
        assert response.status_code == 204
        assert "BYE" not in invite_repo.codes

    def test_delete_missing_code(self, api_client, admin_headers):
        response = api_client.delete("/api/admin/invite-codes/NONE", headers=admin_headers)
        assert response.status_code == 404
