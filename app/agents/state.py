"""
Agent State Definitions for the Analysis Pipeline

Defines the TypedDict state that flows through the LangGraph workflow.
Each node returns a partial update; a node that fails sets `error` and
`failed_stage` and the graph routes straight to the failure sink.
"""

from enum import Enum
from typing import Optional
from typing_extensions import TypedDict

from app.domain.match import (
    HeadToHead,
    MatchCandidate,
    MatchReport,
    MatchStatus,
    SynthesisOutput,
    TeamStats,
    WeatherData,
)


class AnalysisStage(str, Enum):
    RECEIVED = "received"
    EXTRACTING = "extracting"
    ENRICHING = "enriching"
    SYNTHESIZING = "synthesizing"
    RENDERING = "rendering"
    DELIVERED = "delivered"
    FAILED = "failed"


class AnalysisState(TypedDict):
    """
    State for one analysis request.

    Either `image` (screenshot path) or `candidate` (typed pairing) is
    set on entry.
    """
    # Input
    image: Optional[bytes]
    mime_type: str

    # Extraction
    candidate: Optional[MatchCandidate]

    # Enrichment
    home_stats: Optional[TeamStats]
    away_stats: Optional[TeamStats]
    weather: Optional[WeatherData]
    head_to_head: Optional[HeadToHead]

    # Synthesis
    live_context: str
    synthesis: Optional[SynthesisOutput]

    # Output
    report: Optional[MatchReport]
    message: Optional[str]

    # Progress
    stage: AnalysisStage
    failed_stage: Optional[AnalysisStage]
    error: Optional[str]


def create_initial_state(
    image: Optional[bytes] = None,
    mime_type: str = "image/jpeg",
    candidate: Optional[MatchCandidate] = None,
) -> AnalysisState:
    """Initial state for a screenshot or a typed pairing."""
    return AnalysisState(
        image=image,
        mime_type=mime_type,
        candidate=candidate,
        home_stats=None,
        away_stats=None,
        weather=None,
        head_to_head=None,
        live_context="",
        synthesis=None,
        report=None,
        message=None,
        stage=AnalysisStage.RECEIVED,
        failed_stage=None,
        error=None,
    )


def candidate_from_teams(home: str, away: str) -> MatchCandidate:
    """Candidate for the typed path: full confidence, pre-match."""
    return MatchCandidate(
        team_home=home.strip(),
        team_away=away.strip(),
        status=MatchStatus.PRE_MATCH,
        ocr_confidence=100,
    )
