"""
Unit tests for invite code redemption and administration.
"""

import asyncio

import pytest

from app.domain.bot_settings import BotSettings
from app.domain.invite import InviteCodeCreate, InviteCodeType, RedemptionOutcome
from app.infrastructure.exceptions import DuplicateError


@pytest.fixture
def private_settings():
    return BotSettings(private_mode=True, access_codes=["LEGACY1"])


class TestRedeem:

    @pytest.mark.asyncio
    async def test_not_required_in_public_mode(self, invite_service, invite_repo, bot_settings, accounts):
        invite_repo.add("WELCOME")

        outcome = await invite_service.redeem(1, "WELCOME", bot_settings)

        assert outcome == RedemptionOutcome.NOT_REQUIRED
        assert invite_repo.codes["WELCOME"].is_used is False
        assert 1 not in accounts.accounts

    @pytest.mark.asyncio
    async def test_one_time_code_authorizes_once(self, invite_service, invite_repo, accounts, private_settings):
        invite_repo.add("ONCE")

        assert await invite_service.redeem(1, "ONCE", private_settings) == RedemptionOutcome.AUTHORIZED
        assert await invite_service.redeem(2, "ONCE", private_settings) == RedemptionOutcome.ALREADY_USED

        assert accounts.accounts[1].is_authorized is True
        assert accounts.accounts[2].is_authorized is False
        assert invite_repo.codes["ONCE"].used_by == 1

    @pytest.mark.asyncio
    async def test_concurrent_redemptions_of_one_time_code(self, invite_service, invite_repo, accounts, private_settings):
        invite_repo.add("RACE")

        outcomes = await asyncio.gather(
            *(invite_service.redeem(tid, "RACE", private_settings) for tid in (1, 2, 3))
        )

        assert outcomes.count(RedemptionOutcome.AUTHORIZED) == 1
        assert outcomes.count(RedemptionOutcome.ALREADY_USED) == 2
        assert sum(a.is_authorized for a in accounts.accounts.values()) == 1

    @pytest.mark.asyncio
    async def test_unlimited_code_is_never_consumed(self, invite_service, invite_repo, accounts, private_settings):
        invite_repo.add("TEAM", InviteCodeType.UNLIMITED)

        for tid in (1, 2):
            assert await invite_service.redeem(tid, "TEAM", private_settings) == RedemptionOutcome.AUTHORIZED

        assert invite_repo.codes["TEAM"].is_used is False

    @pytest.mark.asyncio
    async def test_legacy_access_code(self, invite_service, accounts, private_settings):
        assert await invite_service.redeem(1, " LEGACY1 ", private_settings) == RedemptionOutcome.AUTHORIZED
        assert accounts.accounts[1].is_authorized is True

    @pytest.mark.asyncio
    async def test_invalid_code(self, invite_service, accounts, private_settings):
        assert await invite_service.redeem(1, "NOPE", private_settings) == RedemptionOutcome.INVALID
        assert accounts.accounts[1].is_authorized is False

    @pytest.mark.asyncio
    async def test_already_authorized(self, invite_service, invite_repo, accounts, private_settings):
        accounts.add(telegram_id=1, is_authorized=True)
        invite_repo.add("ONCE")

        assert await invite_service.redeem(1, "ONCE", private_settings) == RedemptionOutcome.ALREADY_AUTHORIZED
        assert invite_repo.codes["ONCE"].is_used is False

    @pytest.mark.asyncio
    async def test_admin_counts_as_authorized(self, invite_service, accounts, private_settings):
        accounts.add(telegram_id=1, is_admin=True)
        assert await invite_service.redeem(1, "NOPE", private_settings) == RedemptionOutcome.ALREADY_AUTHORIZED


class TestAdministration:

    @pytest.mark.asyncio
    async def test_create_and_list(self, invite_service):
        await invite_service.create_code(InviteCodeCreate(code="NEW1", type=InviteCodeType.UNLIMITED))

        codes = await invite_service.list_codes()

        assert [c.code for c in codes] == ["NEW1"]
        assert codes[0].type == InviteCodeType.UNLIMITED

    @pytest.mark.asyncio
    async def test_create_duplicate(self, invite_service, invite_repo):
        invite_repo.add("DUP")
        with pytest.raises(DuplicateError):
            await invite_service.create_code(InviteCodeCreate(code="DUP"))

    @pytest.mark.asyncio
    async def test_delete_table_code(self, invite_service, invite_repo):
        invite_repo.add("GONE")
        assert await invite_service.delete_code("GONE") is True
        assert "GONE" not in invite_repo.codes

    @pytest.mark.asyncio
    async def test_delete_removes_legacy_code(self, invite_service, settings_repo):
        settings_repo.current = BotSettings(access_codes=["OLD", "KEEP"])

        assert await invite_service.delete_code("OLD") is True
        assert settings_repo.current.access_codes == ["KEEP"]

    @pytest.mark.asyncio
    async def test_delete_unknown(self, invite_service):
        assert await invite_service.delete_code("MISSING") is False
