"""
Match Analysis Domain Models

Request-scoped values produced and consumed by one analysis pipeline run:
the extracted MatchCandidate, enrichment data (TeamStats, WeatherData,
HeadToHead), the validated model output (SynthesisOutput) and the final
MatchReport.

Model output is validated once, at the pipeline boundary, against
SynthesisOutput. Missing fields take the defaults declared here; fields of
the wrong shape are a validation error and fail the request.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchStatus(str, Enum):
    PRE_MATCH = "pre-match"
    LIVE = "live"
    FINISHED = "finished"
    UNKNOWN = "unknown"


class ImpactLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DataQuality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


RiskLevel = Literal["low", "medium", "high"]


# =============================================================================
# Extraction
# =============================================================================

class MatchOdds(BaseModel):
    """Decimal odds visible on the screenshot."""
    model_config = ConfigDict(populate_by_name=True)

    home: Optional[float] = None
    draw: Optional[float] = None
    away: Optional[float] = None
    over25: Optional[float] = None
    under25: Optional[float] = None
    btts_yes: Optional[float] = Field(default=None, alias="bttsYes")
    btts_no: Optional[float] = Field(default=None, alias="bttsNo")

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class MatchCandidate(BaseModel):
    """Structured match extracted from a screenshot or typed pairing."""
    model_config = ConfigDict(populate_by_name=True)

    team_home: str = Field(alias="teamHome", min_length=1)
    team_away: str = Field(alias="teamAway", min_length=1)
    competition: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    venue: Optional[str] = None
    status: MatchStatus = MatchStatus.UNKNOWN
    odds: Optional[MatchOdds] = None
    ocr_confidence: int = Field(default=0, ge=0, le=100, alias="ocrConfidence")
    raw_text: Optional[str] = Field(default=None, alias="rawText")

    @property
    def has_odds(self) -> bool:
        return self.odds is not None and not self.odds.is_empty


# =============================================================================
# Enrichment
# =============================================================================

class MatchResult(BaseModel):
    date: str
    opponent: str
    home_away: Literal["home", "away"]
    goals_for: int
    goals_against: int
    result: Literal["W", "D", "L"]
    competition: Optional[str] = None


class SplitStats(BaseModel):
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0


class TeamInfo(BaseModel):
    id: Optional[int] = None
    name: str
    short_name: Optional[str] = None
    logo: Optional[str] = None
    venue: Optional[str] = None


class TeamStats(BaseModel):
    """Recent-form summary for one side; an empty shell when the team is unknown."""
    team: TeamInfo
    form: list[MatchResult] = Field(default_factory=list)
    form_string: str = ""
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    avg_goals_scored: float = 0.0
    avg_goals_conceded: float = 0.0
    home_stats: SplitStats = Field(default_factory=SplitStats)
    away_stats: SplitStats = Field(default_factory=SplitStats)
    injuries: list[str] = Field(default_factory=list)
    suspensions: list[str] = Field(default_factory=list)
    last_match_date: Optional[str] = None
    matches_last_7_days: int = 0
    matches_last_14_days: int = 0
    matches_last_30_days: int = 0

    @classmethod
    def empty(cls, team_name: str) -> "TeamStats":
        return cls(team=TeamInfo(name=team_name))


class WeatherData(BaseModel):
    temperature: int
    feels_like: int
    humidity: int
    wind_speed: int
    wind_direction: Optional[str] = None
    precipitation: float = 0.0
    description: str = "N/A"
    icon: Optional[str] = None
    impact: ImpactLevel = ImpactLevel.NONE
    impact_description: str = ""


class HeadToHeadMatch(BaseModel):
    date: str
    competition: Optional[str] = None
    home_team: str
    away_team: str
    home_goals: int
    away_goals: int


class HeadToHeadSummary(BaseModel):
    total_matches: int = 0
    team1_wins: int = 0
    team2_wins: int = 0
    draws: int = 0
    team1_goals: int = 0
    team2_goals: int = 0


class HeadToHead(BaseModel):
    matches: list[HeadToHeadMatch] = Field(default_factory=list)
    summary: Optional[HeadToHeadSummary] = None


# =============================================================================
# Synthesis (model output schema)
# =============================================================================

class _Lenient(BaseModel):
    """Sections of model output: unknown keys ignored, declared keys typed."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SideInjuries(_Lenient):
    out: list[str] = Field(default_factory=list)
    doubtful: list[str] = Field(default_factory=list)
    impact: Optional[str] = None


class InjuriesAnalysis(_Lenient):
    home_team: SideInjuries = Field(default_factory=SideInjuries, alias="homeTeam")
    away_team: SideInjuries = Field(default_factory=SideInjuries, alias="awayTeam")
    summary: Optional[str] = None


class SideLineup(_Lenient):
    formation: Optional[str] = None
    probable11: list[str] = Field(default_factory=list)
    key_players: list[str] = Field(default_factory=list, alias="keyPlayers")
    coach: Optional[str] = None


class LineupsAnalysis(_Lenient):
    home_team: SideLineup = Field(default_factory=SideLineup, alias="homeTeam")
    away_team: SideLineup = Field(default_factory=SideLineup, alias="awayTeam")


class SideForm(_Lenient):
    description: Optional[str] = None
    trend: Optional[str] = None


class FormAnalysis(_Lenient):
    home_team: SideForm = Field(default_factory=SideForm, alias="homeTeam")
    away_team: SideForm = Field(default_factory=SideForm, alias="awayTeam")
    advantage: Optional[str] = None
    summary: Optional[str] = None


class SuspiciousActivity(_Lenient):
    risk_level: RiskLevel = Field(default="low", alias="riskLevel")
    description: Optional[str] = None


class ModelAlert(_Lenient):
    type: Literal["info", "warning", "critical"] = "info"
    message: str


class MatchAnalysis(_Lenient):
    match_context: dict[str, Any] = Field(default_factory=dict, alias="matchContext")
    injuries: InjuriesAnalysis = Field(default_factory=InjuriesAnalysis)
    lineups: LineupsAnalysis = Field(default_factory=LineupsAnalysis)
    form: FormAnalysis = Field(default_factory=FormAnalysis)
    styles: dict[str, Any] = Field(default_factory=dict)
    stakes: dict[str, Any] = Field(default_factory=dict)
    h2h: dict[str, Any] = Field(default_factory=dict)
    weather: dict[str, Any] = Field(default_factory=dict)
    suspicious_activity: SuspiciousActivity = Field(
        default_factory=SuspiciousActivity, alias="suspiciousActivity"
    )
    alerts: list[ModelAlert] = Field(default_factory=list)


class ExactScore(_Lenient):
    score: str
    probability: float


class LikelyScorer(_Lenient):
    player: str
    team: Optional[str] = None
    probability: float


class Predictions(_Lenient):
    home_win: float = Field(default=33, ge=0, le=100, alias="homeWin")
    draw: float = Field(default=34, ge=0, le=100)
    away_win: float = Field(default=33, ge=0, le=100, alias="awayWin")
    over15: Optional[float] = None
    under15: Optional[float] = None
    over25: Optional[float] = None
    under25: Optional[float] = None
    over35: Optional[float] = None
    under35: Optional[float] = None
    btts_yes: Optional[float] = Field(default=None, alias="bttsYes")
    btts_no: Optional[float] = Field(default=None, alias="bttsNo")
    exact_scores: list[ExactScore] = Field(default_factory=list, alias="exactScores")
    likely_scorers: list[LikelyScorer] = Field(default_factory=list, alias="likelyScorers")
    most_likely_outcome: Optional[str] = Field(default=None, alias="mostLikelyOutcome")


class BettingSuggestion(_Lenient):
    type: str = "Unknown"
    selection: str = "N/A"
    probability: float = Field(default=50, ge=0, le=100)
    recommended_odds: Optional[float] = Field(default=None, alias="recommendedOdds")
    risk_level: RiskLevel = Field(default="medium", alias="riskLevel")
    explanation: str = ""
    confidence: float = Field(default=50, ge=0, le=100)

    @field_validator("risk_level", mode="before")
    @classmethod
    def _lower_risk(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class SynthesisOutput(_Lenient):
    """The JSON document requested from the reasoning model."""
    analysis: MatchAnalysis = Field(default_factory=MatchAnalysis)
    predictions: Predictions = Field(default_factory=Predictions)
    suggestions: list[BettingSuggestion] = Field(default_factory=list)
    overall_confidence: Optional[int] = Field(default=None, ge=0, le=100, alias="overallConfidence")


# =============================================================================
# Report
# =============================================================================

class AlertType(str, Enum):
    INJURY = "injury"
    WEATHER = "weather"
    SUSPENSION = "suspension"
    ROTATION = "rotation"
    SUSPICIOUS = "suspicious"
    DERBY = "derby"
    CUP = "cup"
    MODEL = "model"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Alert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str


class MatchReport(BaseModel):
    """Assembled analysis, ready to be rendered."""
    match: MatchCandidate
    home_stats: TeamStats
    away_stats: TeamStats
    weather: Optional[WeatherData] = None
    head_to_head: Optional[HeadToHead] = None
    analysis: MatchAnalysis
    predictions: Predictions
    suggestions: list[BettingSuggestion]
    alerts: list[Alert]
    data_quality: DataQuality
    overall_confidence: int
    generated_at: datetime


class AnalysisOutcome(BaseModel):
    """What the orchestrator hands back to the chat layer."""
    candidate: MatchCandidate
    report: MatchReport
    message: str
