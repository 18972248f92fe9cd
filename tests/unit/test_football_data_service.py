"""
Unit tests for the football-data.org client.

Responses come from an httpx.MockTransport, so decoding and shape checks
run on real httpx responses.
"""

import httpx
import pytest

from app.infrastructure.cache import ReadThroughCache
from app.infrastructure.exceptions import ProviderError
from app.infrastructure.services.football_data_service import FootballDataService


PSG = {
    "id": 524,
    "name": "Paris Saint-Germain FC",
    "shortName": "PSG",
    "tla": "PSG",
    "venue": "Parc des Princes",
}


def make_service(handler) -> FootballDataService:
    service = FootballDataService(cache=ReadThroughCache(), transport=httpx.MockTransport(handler))
    service.api_key = "test-key"
    return service


def html_page(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html><body>Maintenance</body></html>")


def json_list(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=[1, 2, 3])


class TestResponseDecoding:

    @pytest.mark.asyncio
    async def test_html_body_is_a_provider_error(self):
        with pytest.raises(ProviderError) as exc_info:
            await make_service(html_page)._get("/competitions/PL/teams")
        assert exc_info.value.details["provider"] == "football-data"

    @pytest.mark.asyncio
    async def test_non_object_body_is_a_provider_error(self):
        with pytest.raises(ProviderError):
            await make_service(json_list)._get("/matches")

    @pytest.mark.asyncio
    async def test_auth_header_is_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["token"] = request.headers.get("X-Auth-Token")
            return httpx.Response(200, json={"matches": []})

        assert await make_service(handler)._get("/matches") == {"matches": []}
        assert seen["token"] == "test-key"


class TestDegradation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [html_page, json_list])
    async def test_team_stats_fall_back_to_empty_shell(self, handler):
        stats = await make_service(handler).get_team_stats("Paris Saint-Germain")

        assert stats.team.name == "Paris Saint-Germain"
        assert stats.team.id is None
        assert stats.form == []

    @pytest.mark.asyncio
    async def test_malformed_team_entries_fall_back_to_empty_shell(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"teams": ["PSG", 42]})

        stats = await make_service(handler).get_team_stats("PSG")
        assert stats.team.id is None

    @pytest.mark.asyncio
    async def test_both_team_stats_never_raise(self):
        home, away = await make_service(html_page).get_both_team_stats("PSG", "OM")
        assert (home.team.name, away.team.name) == ("PSG", "OM")

    @pytest.mark.asyncio
    async def test_find_fixture_degrades(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"matches": ["not-a-match"]})

        assert await make_service(handler).find_fixture(524, 516, "2026-10-18") is None

    @pytest.mark.asyncio
    async def test_head_to_head_degrades(self):
        assert await make_service(html_page).get_head_to_head(1234) is None

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self):
        responses = [
            httpx.Response(200, text="<html></html>"),
            httpx.Response(200, json={"matches": [{"id": 77, "homeTeam": {"id": 524}, "awayTeam": {"id": 516}}]}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        service = make_service(handler)
        assert await service.get_matches_by_date("2026-10-18") == []
        assert await service.find_fixture(516, 524, "2026-10-18") == 77


class TestTeamStats:

    @pytest.mark.asyncio
    async def test_found_team_builds_stats(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/teams"):
                return httpx.Response(200, json={"teams": [PSG]})
            return httpx.Response(200, json={"matches": [{
                "utcDate": "2026-10-10T19:00:00Z",
                "homeTeam": {"id": 524, "name": "Paris Saint-Germain FC"},
                "awayTeam": {"id": 548, "name": "AS Monaco FC"},
                "score": {"fullTime": {"home": 2, "away": 0}},
            }]})

        stats = await make_service(handler).get_team_stats("psg")

        assert stats.team.id == 524
        assert stats.team.venue == "Parc des Princes"
        assert stats.form_string == "W"
        assert stats.goals_for == 2
