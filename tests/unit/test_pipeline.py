"""
Unit tests for the analysis workflow.

External services are mocked at the node modules; the compiled graph is the
real one.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.agents.graph import analyze_image, analyze_text, route_entry
from app.agents.nodes.renderer import build_bets_summary, build_report, compute_data_quality
from app.agents.state import AnalysisStage, candidate_from_teams, create_initial_state
from app.domain.match import (
    AlertSeverity,
    AlertType,
    DataQuality,
    ImpactLevel,
    MatchCandidate,
    MatchOdds,
    SynthesisOutput,
    TeamInfo,
    TeamStats,
    WeatherData,
)
from app.infrastructure.ai.openai_service import (
    TRUNCATION_MARKER,
    parse_json_response,
    truncate_report,
)
from app.infrastructure.cache import ReadThroughCache
from app.infrastructure.exceptions import (
    AnalysisFailedError,
    ExtractionError,
    RenderingError,
    SynthesisError,
)
from app.infrastructure.services.football_data_service import FootballDataService


SYNTHESIS = SynthesisOutput.model_validate({
    "analysis": {
        "injuries": {"homeTeam": {"out": ["Player A"]}, "awayTeam": {"out": []}},
        "alerts": [{"type": "warning", "message": "Derby sous haute tension"}],
    },
    "predictions": {"homeWin": 55, "draw": 25, "awayWin": 20, "mostLikelyOutcome": "Victoire du PSG"},
    "suggestions": [
        {"type": "1X2", "selection": "PSG gagne", "probability": 55, "recommendedOdds": 1.8,
         "riskLevel": "LOW", "explanation": "Forme supérieure", "confidence": 70},
    ],
    "overallConfidence": 72,
})


@pytest.fixture
def services(home_stats, away_stats):
    """Patch every external service reached by the graph nodes."""
    openai = MagicMock()
    openai.extract_match = AsyncMock()
    openai.synthesize = AsyncMock(return_value=SYNTHESIS)
    openai.format_report = AsyncMock(return_value="⚽ Rapport formaté")

    gemini = MagicMock()
    gemini.fetch_live_context = AsyncMock(return_value="Contexte en direct")

    football = MagicMock()
    football.get_both_team_stats = AsyncMock(return_value=(home_stats, away_stats))
    football.find_fixture = AsyncMock(return_value=None)
    football.get_head_to_head = AsyncMock(return_value=None)

    weather = MagicMock()
    weather.get_match_weather = AsyncMock(return_value=None)

    with patch("app.agents.nodes.extractor.get_openai_service", return_value=openai), \
         patch("app.agents.nodes.synthesizer.get_openai_service", return_value=openai), \
         patch("app.agents.nodes.renderer.get_openai_service", return_value=openai), \
         patch("app.agents.nodes.synthesizer.get_gemini_service", return_value=gemini), \
         patch("app.agents.nodes.enricher.get_football_data_service", return_value=football), \
         patch("app.agents.nodes.enricher.get_weather_service", return_value=weather):
        yield {"openai": openai, "gemini": gemini, "football": football, "weather": weather}


class TestRouting:

    def test_typed_pairing_skips_extraction(self):
        state = create_initial_state(candidate=candidate_from_teams("PSG", "OM"))
        assert route_entry(state) == "enricher"

    def test_screenshot_goes_through_extraction(self):
        state = create_initial_state(image=b"img")
        assert route_entry(state) == "extractor"


class TestAnalyzeText:

    @pytest.mark.asyncio
    async def test_successful_run(self, services):
        outcome = await analyze_text("PSG", "OM")

        assert outcome.message == "⚽ Rapport formaté"
        assert outcome.candidate.team_home == "Paris Saint-Germain"
        assert outcome.candidate.team_away == "Olympique de Marseille"
        assert outcome.report.overall_confidence == 72
        services["football"].get_both_team_stats.assert_awaited_once_with(
            "Paris Saint-Germain", "Olympique de Marseille"
        )
        services["openai"].extract_match.assert_not_called()

    @pytest.mark.asyncio
    async def test_venue_falls_back_to_home_ground(self, services):
        await analyze_text("PSG", "OM")
        city = services["weather"].get_match_weather.call_args.args[0]
        assert city == "Parc des Princes"

    @pytest.mark.asyncio
    async def test_synthesis_failure_aborts_before_rendering(self, services):
        services["openai"].synthesize.side_effect = SynthesisError("bad json")

        with pytest.raises(AnalysisFailedError) as exc_info:
            await analyze_text("PSG", "OM")

        assert exc_info.value.stage == AnalysisStage.SYNTHESIZING.value
        services["openai"].format_report.assert_not_called()

    @pytest.mark.asyncio
    async def test_rendering_failure_is_terminal(self, services):
        services["openai"].format_report.side_effect = RenderingError("empty output")

        with pytest.raises(AnalysisFailedError) as exc_info:
            await analyze_text("PSG", "OM")

        assert exc_info.value.stage == AnalysisStage.RENDERING.value

    @pytest.mark.asyncio
    async def test_live_context_failure_does_not_abort(self, services):
        services["gemini"].fetch_live_context.return_value = "Impossible de récupérer les informations"
        outcome = await analyze_text("PSG", "OM")
        assert outcome.message

    @pytest.mark.asyncio
    async def test_stats_provider_html_page_degrades_to_empty_stats(self, services):
        def maintenance_page(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html><body>Maintenance</body></html>")

        football = FootballDataService(
            cache=ReadThroughCache(), transport=httpx.MockTransport(maintenance_page)
        )
        football.api_key = "test-key"

        with patch("app.agents.nodes.enricher.get_football_data_service", return_value=football):
            outcome = await analyze_text("PSG", "OM")

        assert outcome.message == "⚽ Rapport formaté"
        assert outcome.report.data_quality == DataQuality.POOR
        home_stats = services["openai"].synthesize.call_args.kwargs["home_stats"]
        assert home_stats.team.id is None
        assert home_stats.form == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, services):
        services["football"].get_both_team_stats.side_effect = RuntimeError("boom")
        with pytest.raises(AnalysisFailedError):
            await analyze_text("PSG", "OM")


class TestAnalyzeImage:

    @pytest.mark.asyncio
    async def test_extraction_feeds_the_pipeline(self, services, sample_candidate):
        services["openai"].extract_match.return_value = sample_candidate

        outcome = await analyze_image(b"\x89PNG", "image/png")

        services["openai"].extract_match.assert_awaited_once_with(b"\x89PNG", "image/png")
        assert outcome.candidate.ocr_confidence == 92
        assert outcome.candidate.competition == "Ligue 1"

    @pytest.mark.asyncio
    async def test_known_venue_weather_runs_alongside_stats(
        self, services, sample_candidate, home_stats, away_stats
    ):
        services["openai"].extract_match.return_value = sample_candidate.model_copy(
            update={"venue": "Marseille"}
        )
        weather_started = asyncio.Event()

        async def weather(city, date, time):
            weather_started.set()
            return None

        async def both_stats(home, away):
            # Completes only if weather was already started
            await asyncio.wait_for(weather_started.wait(), timeout=1)
            return home_stats, away_stats

        services["weather"].get_match_weather.side_effect = weather
        services["football"].get_both_team_stats.side_effect = both_stats

        await analyze_image(b"img")

        services["weather"].get_match_weather.assert_awaited_once_with("Marseille", "2026-10-18", "21:00")

    @pytest.mark.asyncio
    async def test_extraction_failure_stops_before_enrichment(self, services):
        services["openai"].extract_match.side_effect = ExtractionError("unreadable")

        with pytest.raises(AnalysisFailedError) as exc_info:
            await analyze_image(b"img")

        assert exc_info.value.stage == AnalysisStage.EXTRACTING.value
        services["football"].get_both_team_stats.assert_not_called()


class TestReportRules:

    def _state(self, candidate, home_stats, away_stats, weather=None, synthesis=SYNTHESIS):
        return {
            "candidate": candidate,
            "home_stats": home_stats,
            "away_stats": away_stats,
            "weather": weather,
            "head_to_head": None,
            "synthesis": synthesis,
        }

    def test_data_quality_scoring(self, home_stats, away_stats, sample_candidate):
        assert compute_data_quality(home_stats, away_stats, None, sample_candidate) == DataQuality.GOOD

        with_odds = sample_candidate.model_copy(update={"odds": MatchOdds(home=1.8, draw=3.5, away=4.2)})
        assert compute_data_quality(home_stats, away_stats, None, with_odds) == DataQuality.EXCELLENT

        empty = TeamStats(team=TeamInfo(name="X"))
        assert compute_data_quality(empty, empty, None, sample_candidate) == DataQuality.POOR

    def test_alerts_rules_then_model(self, home_stats, away_stats, sample_candidate):
        busy = away_stats.model_copy(update={"matches_last_7_days": 3})
        storm = WeatherData(
            temperature=12, feels_like=10, humidity=90, wind_speed=60,
            impact=ImpactLevel.HIGH, impact_description="Impact: vent très fort",
        )

        report = build_report(self._state(sample_candidate, home_stats, busy, weather=storm))
        types = [a.type for a in report.alerts]

        assert types == [AlertType.INJURY, AlertType.WEATHER, AlertType.ROTATION, AlertType.MODEL]
        assert report.alerts[0].message == "Paris Saint-Germain FC: 1 blessé(s)"
        assert report.alerts[0].severity == AlertSeverity.WARNING
        assert report.alerts[1].message == "Météo difficile: Impact: vent très fort"
        assert "3 matchs en 7 jours" in report.alerts[2].message
        assert report.alerts[3].severity == AlertSeverity.WARNING

    def test_three_injuries_are_critical(self, home_stats, away_stats, sample_candidate):
        injured = home_stats.model_copy(update={"injuries": ["A", "B", "C"]})
        report = build_report(self._state(sample_candidate, injured, away_stats))
        assert report.alerts[0].severity == AlertSeverity.CRITICAL
        assert report.alerts[0].message.endswith("3 blessé(s)")

    def test_confidence_falls_back_to_ocr(self, home_stats, away_stats, sample_candidate):
        synthesis = SYNTHESIS.model_copy(update={"overall_confidence": None})
        report = build_report(self._state(sample_candidate, home_stats, away_stats, synthesis=synthesis))
        assert report.overall_confidence == 92

    def test_generated_at_is_injectable(self, home_stats, away_stats, sample_candidate):
        now = datetime(2026, 10, 16, tzinfo=timezone.utc)
        report = build_report(self._state(sample_candidate, home_stats, away_stats), now=now)
        assert report.generated_at == now

    def test_bets_summary(self, home_stats, away_stats, sample_candidate):
        report = build_report(self._state(sample_candidate, home_stats, away_stats))
        summary = build_bets_summary(report)

        assert summary.startswith("💰 **MODE PARIS RAPIDE**")
        assert "**55%**" in summary
        assert "🟢 **PSG gagne** (@1.8)" in summary
        assert summary.endswith("🏆 **Verdict IA**: Victoire du PSG")


class TestModelOutputHelpers:

    def test_parse_json_strips_fences(self):
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
        assert parse_json_response('```\n{"a": 2}\n```') == {"a": 2}
        assert parse_json_response('{"a": 3}') == {"a": 3}

    def test_parse_json_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_json_response("not json")

    def test_truncation(self):
        short = "x" * 4000
        assert truncate_report(short) == short

        long = "y" * 5000
        truncated = truncate_report(long)
        assert truncated.endswith(TRUNCATION_MARKER)
        assert len(truncated) == 3950 + len(TRUNCATION_MARKER)

    def test_lenient_schema_ignores_unknown_keys(self):
        output = SynthesisOutput.model_validate({"predictions": {"homeWin": 40}, "extra": True})
        assert output.predictions.home_win == 40
        assert output.suggestions == []


class TestCandidate:

    def test_candidate_from_teams(self):
        candidate = candidate_from_teams("PSG", "OM")
        assert candidate.ocr_confidence == 100
        assert candidate.has_odds is False

    def test_camel_case_payload(self):
        candidate = MatchCandidate.model_validate({
            "teamHome": "Arsenal", "teamAway": "Chelsea", "ocrConfidence": 55,
            "odds": {"home": 2.1, "draw": 3.3, "away": 3.4},
        })
        assert candidate.team_home == "Arsenal"
        assert candidate.has_odds is True
