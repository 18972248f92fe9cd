"""
Test configuration and fixtures for FootBot.

Provides shared fixtures for unit and integration tests.
"""

import pytest
from unittest.mock import MagicMock, AsyncMock

from fastapi.testclient import TestClient

from app.domain.bot_settings import BotSettings
from app.domain.match import MatchCandidate, MatchResult, TeamInfo, TeamStats
from app.services.invite_service import InviteService
from app.services.payment_service import PaymentService
from app.services.quota_service import QuotaService
from tests.fakes import (
    FakeAccountRepository,
    FakeBotSettingsRepository,
    FakeInviteCodeRepository,
    FakePaymentRepository,
)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from app.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers(monkeypatch):
    """Configure an admin key and return the matching header."""
    from app.config.settings import get_settings
    monkeypatch.setattr(get_settings(), "admin_api_key", "test-admin-key")
    return {"X-Admin-Key": "test-admin-key"}


# =============================================================================
# Ledger Fixtures
# =============================================================================

@pytest.fixture
def bot_settings():
    """Default settings snapshot: 5 free messages, cost 1."""
    return BotSettings()


@pytest.fixture
def accounts():
    return FakeAccountRepository()


@pytest.fixture
def payment_repo(accounts):
    return FakePaymentRepository(accounts)


@pytest.fixture
def settings_repo(bot_settings):
    return FakeBotSettingsRepository(bot_settings)


@pytest.fixture
def invite_repo():
    return FakeInviteCodeRepository()


@pytest.fixture
def quota_service(accounts):
    return QuotaService(accounts=accounts, max_retries=8)


@pytest.fixture
def mock_stripe_service():
    """Mock for StripeService."""
    mock = MagicMock()
    mock.create_customer = AsyncMock(return_value="cus_test")
    mock.create_checkout_session = AsyncMock(
        return_value=("cs_test_1", "https://checkout.stripe.com/c/pay/cs_test_1")
    )
    mock.parse_webhook = MagicMock()
    return mock


@pytest.fixture
def payment_service(mock_stripe_service, payment_repo, accounts, quota_service):
    return PaymentService(
        stripe_service=mock_stripe_service,
        payments=payment_repo,
        accounts=accounts,
        quota_service=quota_service,
    )


@pytest.fixture
def invite_service(invite_repo, accounts, settings_repo, quota_service):
    return InviteService(
        codes=invite_repo,
        accounts=accounts,
        settings_repository=settings_repo,
        quota_service=quota_service,
    )


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_candidate():
    """Candidate as extracted from a betting-app screenshot."""
    return MatchCandidate(
        team_home="Paris Saint-Germain",
        team_away="Olympique de Marseille",
        competition="Ligue 1",
        date="2026-10-18",
        time="21:00",
        ocr_confidence=92,
    )


def _form(results: str) -> list[MatchResult]:
    return [
        MatchResult(
            date=f"2026-10-{10 - i:02d}",
            opponent=f"Opponent {i}",
            home_away="home" if i % 2 == 0 else "away",
            goals_for=2 if r == "W" else 1,
            goals_against=0 if r == "W" else 1 if r == "D" else 2,
            result=r,
        )
        for i, r in enumerate(results)
    ]


@pytest.fixture
def home_stats():
    return TeamStats(
        team=TeamInfo(id=524, name="Paris Saint-Germain FC", venue="Parc des Princes"),
        form=_form("WWDWL"),
        form_string="WWDWL",
        played=5,
        won=3,
        drawn=1,
        lost=1,
    )


@pytest.fixture
def away_stats():
    return TeamStats(
        team=TeamInfo(id=516, name="Olympique de Marseille", venue="Stade Vélodrome"),
        form=_form("LDWWD"),
        form_string="LDWWD",
        played=5,
        won=2,
        drawn=2,
        lost=1,
    )


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def api_client(app, accounts, payment_repo, settings_repo, invite_repo,
               quota_service, payment_service, invite_service):
    """Test client with every repository and service wired to the in-memory fakes."""
    from app.infrastructure.db.repositories import (
        get_account_repository,
        get_bot_settings_repository,
        get_invite_code_repository,
        get_payment_repository,
    )
    from app.services.invite_service import get_invite_service
    from app.services.payment_service import get_payment_service
    from app.services.quota_service import get_quota_service

    app.dependency_overrides.update({
        get_account_repository: lambda: accounts,
        get_payment_repository: lambda: payment_repo,
        get_bot_settings_repository: lambda: settings_repo,
        get_invite_code_repository: lambda: invite_repo,
        get_quota_service: lambda: quota_service,
        get_payment_service: lambda: payment_service,
        get_invite_service: lambda: invite_service,
    })
    return TestClient(app)
