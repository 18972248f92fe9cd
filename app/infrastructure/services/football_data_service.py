"""
Football-Data.org Service

Team lookup, recent form, fixtures and head-to-head from the
football-data.org v4 API. Free tier: 10 requests/minute, top competitions.

API Docs: https://www.football-data.org/documentation/api

All lookups go through the shared read-through cache. Public methods
degrade to None / [] on provider errors; the cached producers raise so a
failure is never cached. A 200 whose body is not a JSON object counts as
a provider error.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from app.config.settings import settings
from app.domain.match import (
    HeadToHead,
    HeadToHeadMatch,
    HeadToHeadSummary,
    MatchResult,
    SplitStats,
    TeamInfo,
    TeamStats,
)
from app.infrastructure.cache import ReadThroughCache, get_cache
from app.infrastructure.exceptions import ProviderError

logger = logging.getLogger(__name__)

TEAM_TTL = 3600
TEAM_MATCHES_TTL = 1800
HEAD_TO_HEAD_TTL = 86400
MATCHES_BY_DATE_TTL = 1800

PROVIDER_ERRORS = (httpx.HTTPError, ProviderError)

FORM_SIZE = 10
RECENT_MATCHES_SIZE = 20


def _parse_date(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _split(results: List[MatchResult]) -> SplitStats:
    return SplitStats(
        played=len(results),
        won=sum(1 for m in results if m.result == "W"),
        drawn=sum(1 for m in results if m.result == "D"),
        lost=sum(1 for m in results if m.result == "L"),
        goals_for=sum(m.goals_for for m in results),
        goals_against=sum(m.goals_against for m in results),
    )


class FootballDataService:
    """
    Client for football-data.org.

    Searched competitions, in order: Premier League, La Liga, Bundesliga,
    Serie A, Ligue 1, Champions League, Europa League, World Cup, Euro.
    """

    BASE_URL = "https://api.football-data.org/v4"

    COMPETITIONS = ["PL", "PD", "BL1", "SA", "FL1", "CL", "EL", "WC", "EC"]

    def __init__(
        self,
        cache: Optional[ReadThroughCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.football_data_api_key
        self.timeout = settings.provider_timeout_seconds
        self.cache = cache or get_cache()
        self.transport = transport
        if not self.api_key:
            logger.warning("FOOTBALL_DATA_API_KEY not configured")

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a v4 resource. Raises httpx.HTTPError or ProviderError."""
        async with httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={"X-Auth-Token": self.api_key or ""},
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.get(path, params=params)
            response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Non-JSON body from {path}", provider="football-data", original_error=e)
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected body from {path}", provider="football-data")
        return data

    # =========================================================================
    # Teams
    # =========================================================================

    async def _competition_teams(self, code: str) -> List[Dict[str, Any]]:
        async def fetch():
            data = await self._get(f"/competitions/{code}/teams")
            return data.get("teams", [])

        return await self.cache.get_or_fetch(f"football-data:teams:{code}", fetch, TEAM_TTL)

    async def search_team(self, team_name: str) -> Optional[TeamInfo]:
        """
        Find a team by name across the covered competitions.

        Matches when the query is contained in the name or short name,
        or equals the three-letter code.
        """
        if not self.api_key or not team_name:
            return None

        query = team_name.lower()

        async def fetch():
            failures: List[Exception] = []
            for code in self.COMPETITIONS:
                try:
                    teams = await self._competition_teams(code)
                except PROVIDER_ERRORS as e:
                    logger.warning(f"[FOOTBALL-DATA] Teams of {code} unavailable: {e}")
                    failures.append(e)
                    continue

                for team in teams:
                    if (
                        query in (team.get("name") or "").lower()
                        or query in (team.get("shortName") or "").lower()
                        or (team.get("tla") or "").lower() == query
                    ):
                        return TeamInfo(
                            id=team.get("id"),
                            name=team.get("name") or team_name,
                            short_name=team.get("shortName"),
                            logo=team.get("crest"),
                            venue=team.get("venue"),
                        )

            # Every competition failed
            if len(failures) == len(self.COMPETITIONS):
                raise failures[-1]
            return None

        found = await self.cache.get_or_fetch(f"football-data:team:{query}", fetch, TEAM_TTL)
        if found:
            logger.info(f"[FOOTBALL-DATA] Found team '{team_name}' -> {found.name} ({found.id})")
        else:
            logger.info(f"[FOOTBALL-DATA] No team matching '{team_name}'")
        return found

    # =========================================================================
    # Matches
    # =========================================================================

    async def get_team_matches(
        self,
        team_id: int,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Matches of a team, most recent first."""
        if not self.api_key:
            return []

        params: Dict[str, Any] = {"limit": limit}
        if status:
            params["status"] = status

        async def fetch():
            data = await self._get(f"/teams/{team_id}/matches", params)
            matches = data.get("matches", [])
            return sorted(matches, key=lambda m: m.get("utcDate", ""), reverse=True)

        key = f"football-data:team-matches:{team_id}:{status or 'all'}:{limit}"
        try:
            return await self.cache.get_or_fetch(key, fetch, TEAM_MATCHES_TTL)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[FOOTBALL-DATA] Matches of team {team_id} unavailable: {e}")
            return []

    async def get_matches_by_date(self, date: str) -> List[Dict[str, Any]]:
        """All covered matches on a YYYY-MM-DD date."""
        if not self.api_key:
            return []

        async def fetch():
            data = await self._get("/matches", {"dateFrom": date, "dateTo": date})
            return data.get("matches", [])

        try:
            return await self.cache.get_or_fetch(
                f"football-data:matches:{date}", fetch, MATCHES_BY_DATE_TTL
            )
        except PROVIDER_ERRORS as e:
            logger.warning(f"[FOOTBALL-DATA] Matches on {date} unavailable: {e}")
            return []

    async def find_fixture(self, home_id: int, away_id: int, date: str) -> Optional[int]:
        """Id of the fixture between two teams on a date, if listed."""
        try:
            for match in await self.get_matches_by_date(date):
                home = (match.get("homeTeam") or {}).get("id")
                away = (match.get("awayTeam") or {}).get("id")
                if {home, away} == {home_id, away_id}:
                    return match.get("id")
        except Exception as e:
            logger.warning(f"[FOOTBALL-DATA] Fixture lookup on {date} failed: {e}")
        return None

    async def get_head_to_head(self, match_id: int) -> Optional[HeadToHead]:
        """Last meetings and aggregates for the teams of a fixture."""
        if not self.api_key:
            return None

        async def fetch():
            data = await self._get(f"/matches/{match_id}/head2head", {"limit": 10})
            matches = [
                HeadToHeadMatch(
                    date=m.get("utcDate", ""),
                    competition=(m.get("competition") or {}).get("name"),
                    home_team=(m.get("homeTeam") or {}).get("name", ""),
                    away_team=(m.get("awayTeam") or {}).get("name", ""),
                    home_goals=((m.get("score") or {}).get("fullTime") or {}).get("home") or 0,
                    away_goals=((m.get("score") or {}).get("fullTime") or {}).get("away") or 0,
                )
                for m in data.get("matches", [])
            ]

            summary = None
            aggregates = data.get("aggregates")
            if aggregates:
                home = aggregates.get("homeTeam") or {}
                away = aggregates.get("awayTeam") or {}
                summary = HeadToHeadSummary(
                    total_matches=aggregates.get("numberOfMatches", 0),
                    team1_wins=home.get("wins", 0),
                    team2_wins=away.get("wins", 0),
                    draws=home.get("draws", 0),
                    team1_goals=home.get("goals", 0),
                    team2_goals=away.get("goals", 0),
                )
            return HeadToHead(matches=matches, summary=summary)

        try:
            return await self.cache.get_or_fetch(
                f"football-data:h2h:{match_id}", fetch, HEAD_TO_HEAD_TTL
            )
        except Exception as e:
            logger.warning(f"[FOOTBALL-DATA] Head-to-head for match {match_id} unavailable: {e}")
            return None

    # =========================================================================
    # Stats
    # =========================================================================

    @staticmethod
    def to_match_result(match: Dict[str, Any], team_id: int) -> MatchResult:
        """Result of a finished match from one team's point of view."""
        full_time = (match.get("score") or {}).get("fullTime") or {}
        is_home = (match.get("homeTeam") or {}).get("id") == team_id
        home_goals = full_time.get("home") or 0
        away_goals = full_time.get("away") or 0

        goals_for, goals_against = (home_goals, away_goals) if is_home else (away_goals, home_goals)
        if goals_for > goals_against:
            result = "W"
        elif goals_for == goals_against:
            result = "D"
        else:
            result = "L"

        opponent = match.get("awayTeam") if is_home else match.get("homeTeam")
        return MatchResult(
            date=match.get("utcDate", ""),
            opponent=(opponent or {}).get("name", ""),
            home_away="home" if is_home else "away",
            goals_for=goals_for,
            goals_against=goals_against,
            result=result,
            competition=(match.get("competition") or {}).get("name"),
        )

    async def build_team_stats(
        self,
        team: TeamInfo,
        now: Optional[datetime] = None,
    ) -> TeamStats:
        """Form, goals, home/away splits and fixture congestion for a team."""
        if team.id is None:
            return TeamStats(team=team)

        now = now or datetime.now(timezone.utc)
        finished = await self.get_team_matches(team.id, "FINISHED", RECENT_MATCHES_SIZE)
        form = [self.to_match_result(m, team.id) for m in finished[:FORM_SIZE]]

        def played_within(days: int) -> int:
            cutoff = now - timedelta(days=days)
            count = 0
            for match in finished:
                try:
                    if _parse_date(match.get("utcDate", "")) >= cutoff:
                        count += 1
                except ValueError:
                    continue
            return count

        overall = _split(form)
        return TeamStats(
            team=team,
            form=form,
            form_string="".join(m.result for m in form[:5]),
            played=overall.played,
            won=overall.won,
            drawn=overall.drawn,
            lost=overall.lost,
            goals_for=overall.goals_for,
            goals_against=overall.goals_against,
            avg_goals_scored=overall.goals_for / len(form) if form else 0.0,
            avg_goals_conceded=overall.goals_against / len(form) if form else 0.0,
            home_stats=_split([m for m in form if m.home_away == "home"]),
            away_stats=_split([m for m in form if m.home_away == "away"]),
            last_match_date=form[0].date if form else None,
            matches_last_7_days=played_within(7),
            matches_last_14_days=played_within(14),
            matches_last_30_days=played_within(30),
        )

    async def get_team_stats(self, team_name: str) -> TeamStats:
        """
        Search a team and build its stats.

        Never raises: an unknown team or any provider failure gives an
        empty shell carrying only the name.
        """
        try:
            team = await self.search_team(team_name)
            if team is not None:
                return await self.build_team_stats(team)
        except Exception as e:
            logger.warning(f"[FOOTBALL-DATA] Stats for '{team_name}' unavailable: {e}")
        return TeamStats.empty(team_name)

    async def get_both_team_stats(self, home: str, away: str) -> tuple[TeamStats, TeamStats]:
        home_stats, away_stats = await asyncio.gather(
            self.get_team_stats(home),
            self.get_team_stats(away),
        )
        return home_stats, away_stats


# =============================================================================
# Singleton Instance
# =============================================================================

_football_data_service: Optional[FootballDataService] = None


def get_football_data_service() -> FootballDataService:
    """Get or create the football-data service singleton."""
    global _football_data_service
    if _football_data_service is None:
        _football_data_service = FootballDataService()
    return _football_data_service
