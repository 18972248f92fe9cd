"""
Enricher Node

Normalizes both team names, then gathers team stats, venue weather and
head-to-head through the cached providers. Provider failures degrade to
absent data; they never fail the analysis.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.agents.state import AnalysisStage, AnalysisState
from app.domain.match import HeadToHead, TeamStats
from app.domain.team_names import normalize_team_name
from app.infrastructure.services.football_data_service import (
    FootballDataService,
    get_football_data_service,
)
from app.infrastructure.services.weather_service import get_weather_service

logger = logging.getLogger(__name__)


async def _head_to_head(
    football: FootballDataService,
    home_stats: TeamStats,
    away_stats: TeamStats,
    date: Optional[str],
) -> Optional[HeadToHead]:
    """Head-to-head when the fixture can be located on the provider."""
    if not date or home_stats.team.id is None or away_stats.team.id is None:
        return None

    match_id = await football.find_fixture(home_stats.team.id, away_stats.team.id, date)
    if match_id is None:
        logger.info(f"Enricher: no fixture on {date} for {home_stats.team.name} vs {away_stats.team.name}")
        return None
    return await football.get_head_to_head(match_id)


async def enricher_node(state: AnalysisState) -> Dict[str, Any]:
    """
    Enricher node: stats for both sides, weather and head-to-head.

    The venue city is the candidate's venue, else the home team's ground.
    A known venue starts the weather lookup alongside the stats; otherwise
    it waits for the home team's ground. Head-to-head needs both team ids.
    """
    candidate = state["candidate"]
    home = normalize_team_name(candidate.team_home) or candidate.team_home
    away = normalize_team_name(candidate.team_away) or candidate.team_away
    if (home, away) != (candidate.team_home, candidate.team_away):
        logger.info(f"Enricher: normalized '{candidate.team_home}' vs '{candidate.team_away}' -> '{home}' vs '{away}'")
    candidate = candidate.model_copy(update={"team_home": home, "team_away": away})

    football = get_football_data_service()
    weather_service = get_weather_service()

    venue_weather = None
    if candidate.venue:
        venue_weather = asyncio.create_task(
            weather_service.get_match_weather(candidate.venue, candidate.date, candidate.time)
        )

    home_stats, away_stats = await football.get_both_team_stats(home, away)
    if venue_weather is None:
        venue_weather = weather_service.get_match_weather(
            home_stats.team.venue, candidate.date, candidate.time
        )

    weather, head_to_head = await asyncio.gather(
        venue_weather,
        _head_to_head(football, home_stats, away_stats, candidate.date),
    )

    logger.info(
        f"Enricher: form {len(home_stats.form)}/{len(away_stats.form)}, "
        f"weather={'yes' if weather else 'no'}, h2h={'yes' if head_to_head else 'no'}"
    )
    return {
        "candidate": candidate,
        "home_stats": home_stats,
        "away_stats": away_stats,
        "weather": weather,
        "head_to_head": head_to_head,
        "stage": AnalysisStage.ENRICHING,
    }
