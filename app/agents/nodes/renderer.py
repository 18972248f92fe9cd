"""
Renderer Node

Assembles the MatchReport (data quality, rule alerts merged with model
alerts, overall confidence) and has the formatting model turn it into a
Telegram message.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.agents.state import AnalysisStage, AnalysisState
from app.domain.match import (
    Alert,
    AlertSeverity,
    AlertType,
    DataQuality,
    ImpactLevel,
    MatchCandidate,
    MatchReport,
    SideInjuries,
    SynthesisOutput,
    TeamStats,
    WeatherData,
)
from app.infrastructure.ai.openai_service import get_openai_service
from app.infrastructure.exceptions import RenderingError

logger = logging.getLogger(__name__)

MIN_FORM_ENTRIES = 3
ROTATION_THRESHOLD = 3
CRITICAL_INJURY_COUNT = 3
BETS_SUMMARY_SIZE = 5

_RISK_EMOJI = {"low": "🟢", "medium": "🟡", "high": "🔴"}


# =============================================================================
# Report Assembly
# =============================================================================

def compute_data_quality(
    home_stats: TeamStats,
    away_stats: TeamStats,
    weather: Optional[WeatherData],
    candidate: MatchCandidate,
) -> DataQuality:
    """25 points each for home form, away form, weather and odds."""
    score = 0
    if len(home_stats.form) >= MIN_FORM_ENTRIES:
        score += 25
    if len(away_stats.form) >= MIN_FORM_ENTRIES:
        score += 25
    if weather is not None:
        score += 25
    if candidate.has_odds:
        score += 25

    if score >= 75:
        return DataQuality.EXCELLENT
    if score >= 50:
        return DataQuality.GOOD
    if score >= 25:
        return DataQuality.FAIR
    return DataQuality.POOR


def _injury_alert(stats: TeamStats, reported: SideInjuries) -> Optional[Alert]:
    # Provider injuries when present, else the players the model lists as out
    injured = stats.injuries or reported.out
    if not injured:
        return None
    return Alert(
        type=AlertType.INJURY,
        severity=AlertSeverity.CRITICAL if len(injured) >= CRITICAL_INJURY_COUNT else AlertSeverity.WARNING,
        message=f"{stats.team.name}: {len(injured)} blessé(s)",
    )


def _rotation_alert(stats: TeamStats) -> Optional[Alert]:
    if stats.matches_last_7_days < ROTATION_THRESHOLD:
        return None
    return Alert(
        type=AlertType.ROTATION,
        severity=AlertSeverity.WARNING,
        message=f"{stats.team.name}: {stats.matches_last_7_days} matchs en 7 jours - fatigue possible",
    )


def build_alerts(
    home_stats: TeamStats,
    away_stats: TeamStats,
    weather: Optional[WeatherData],
    synthesis: SynthesisOutput,
) -> List[Alert]:
    """Rule alerts first (injuries, weather, rotation), then the model's."""
    injuries = synthesis.analysis.injuries
    rule_alerts = [
        _injury_alert(home_stats, injuries.home_team),
        _injury_alert(away_stats, injuries.away_team),
    ]

    if weather is not None and weather.impact == ImpactLevel.HIGH:
        rule_alerts.append(Alert(
            type=AlertType.WEATHER,
            severity=AlertSeverity.WARNING,
            message=f"Météo difficile: {weather.impact_description}",
        ))

    rule_alerts.append(_rotation_alert(home_stats))
    rule_alerts.append(_rotation_alert(away_stats))

    alerts = [alert for alert in rule_alerts if alert is not None]
    alerts.extend(
        Alert(type=AlertType.MODEL, severity=AlertSeverity(alert.type), message=alert.message)
        for alert in synthesis.analysis.alerts
    )
    return alerts


def build_report(state: AnalysisState, now: Optional[datetime] = None) -> MatchReport:
    candidate = state["candidate"]
    home_stats = state["home_stats"]
    away_stats = state["away_stats"]
    weather = state.get("weather")
    synthesis = state["synthesis"]

    confidence = synthesis.overall_confidence
    if confidence is None:
        confidence = candidate.ocr_confidence

    return MatchReport(
        match=candidate,
        home_stats=home_stats,
        away_stats=away_stats,
        weather=weather,
        head_to_head=state.get("head_to_head"),
        analysis=synthesis.analysis,
        predictions=synthesis.predictions,
        suggestions=synthesis.suggestions,
        alerts=build_alerts(home_stats, away_stats, weather, synthesis),
        data_quality=compute_data_quality(home_stats, away_stats, weather, candidate),
        overall_confidence=confidence,
        generated_at=now or datetime.now(timezone.utc),
    )


def build_bets_summary(report: MatchReport) -> str:
    """Probabilities, top suggestions and verdict from a finished report."""
    match = report.match
    predictions = report.predictions

    lines = [
        "💰 **MODE PARIS RAPIDE**",
        f"{match.team_home} vs {match.team_away}",
        "",
        "📊 **Probabilités**",
        f"1️⃣ {report.home_stats.team.name}: **{predictions.home_win:g}%**",
        f"✖️ Nul: **{predictions.draw:g}%**",
        f"2️⃣ {report.away_stats.team.name}: **{predictions.away_win:g}%**",
        "",
        "🎯 **Meilleurs Paris**",
    ]

    if not report.suggestions:
        lines.extend(["Aucun pari suggéré pour ce match.", ""])
    for bet in report.suggestions[:BETS_SUMMARY_SIZE]:
        odds = f"{bet.recommended_odds:g}" if bet.recommended_odds else "N/A"
        lines.append(f"{_RISK_EMOJI.get(bet.risk_level, '🟡')} **{bet.selection}** (@{odds})")
        lines.append(f"   _{bet.explanation}_")
        lines.append(f"   Confiance: {bet.confidence:g}%")
        lines.append("")

    lines.append(f"🏆 **Verdict IA**: {predictions.most_likely_outcome or 'Pas de verdict spécifique'}")
    return "\n".join(lines)


# =============================================================================
# Node
# =============================================================================

async def renderer_node(state: AnalysisState) -> Dict[str, Any]:
    report = build_report(state)

    try:
        message = await get_openai_service().format_report(report)
    except RenderingError as e:
        logger.error(f"Renderer: {e.message}")
        return {
            "report": report,
            "stage": AnalysisStage.FAILED,
            "failed_stage": AnalysisStage.RENDERING,
            "error": e.message,
        }

    logger.info(
        f"Renderer: {report.match.team_home} vs {report.match.team_away} "
        f"quality={report.data_quality.value} confidence={report.overall_confidence}"
    )
    return {
        "report": report,
        "message": message,
        "stage": AnalysisStage.DELIVERED,
    }
