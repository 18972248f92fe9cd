"""
LangGraph Workflow for Match Analysis

Orchestrates one analysis request through its stages:

Workflow:
    START → [image?] → extractor → enricher → synthesizer → renderer → END
                 └──────────────────┘
    Any stage that fails routes to `failed` → END.

The workflow never touches the ledger; callers debit only after a
successful run.
"""

import logging
from typing import Any, Dict, Optional

from langgraph.graph import StateGraph, START, END

from app.agents.state import (
    AnalysisStage,
    AnalysisState,
    candidate_from_teams,
    create_initial_state,
)
from app.agents.nodes.extractor import extractor_node
from app.agents.nodes.enricher import enricher_node
from app.agents.nodes.synthesizer import synthesizer_node
from app.agents.nodes.renderer import renderer_node
from app.domain.match import AnalysisOutcome
from app.domain.team_names import normalize_team_name
from app.infrastructure.ai.gemini_service import get_gemini_service
from app.infrastructure.ai.openai_service import get_openai_service
from app.infrastructure.exceptions import AnalysisFailedError
from app.infrastructure.services.football_data_service import get_football_data_service

logger = logging.getLogger(__name__)


# =============================================================================
# Conditional Routers
# =============================================================================

def route_entry(state: AnalysisState) -> str:
    """Screenshots go through extraction; typed pairings skip it."""
    if state.get("candidate") is not None:
        return "enricher"
    return "extractor"


def _continue_or_fail(next_node: str):
    def route(state: AnalysisState) -> str:
        if state.get("error"):
            return "failed"
        return next_node
    route.__name__ = f"continue_to_{next_node}"
    return route


async def failed_node(state: AnalysisState) -> Dict[str, Any]:
    stage = state.get("failed_stage")
    logger.warning(f"Analysis failed at {stage.value if stage else 'unknown'}: {state.get('error')}")
    return {"stage": AnalysisStage.FAILED}


# =============================================================================
# Graph Builder
# =============================================================================

def build_analysis_graph() -> StateGraph:
    """
    Build the LangGraph workflow for match analysis.

    Flow (conditional):
    - Screenshot: START → extractor → enricher → synthesizer → renderer → END
    - Typed pairing: START → enricher → synthesizer → renderer → END
    - Failure at any stage: → failed → END
    """
    builder = StateGraph(AnalysisState)

    builder.add_node("extractor", extractor_node)
    builder.add_node("enricher", enricher_node)
    builder.add_node("synthesizer", synthesizer_node)
    builder.add_node("renderer", renderer_node)
    builder.add_node("failed", failed_node)

    builder.add_conditional_edges(
        START,
        route_entry,
        {"extractor": "extractor", "enricher": "enricher"},
    )
    builder.add_conditional_edges(
        "extractor",
        _continue_or_fail("enricher"),
        {"enricher": "enricher", "failed": "failed"},
    )
    builder.add_conditional_edges(
        "enricher",
        _continue_or_fail("synthesizer"),
        {"synthesizer": "synthesizer", "failed": "failed"},
    )
    builder.add_conditional_edges(
        "synthesizer",
        _continue_or_fail("renderer"),
        {"renderer": "renderer", "failed": "failed"},
    )
    builder.add_conditional_edges(
        "renderer",
        _continue_or_fail(END),
        {END: END, "failed": "failed"},
    )
    builder.add_edge("failed", END)

    return builder.compile()


# Create singleton graph instance
_graph = None

def get_analysis_graph() -> StateGraph:
    """Get or create the analysis graph singleton."""
    global _graph
    if _graph is None:
        _graph = build_analysis_graph()
        logger.info("Analysis graph compiled successfully")
    return _graph


# =============================================================================
# Public API
# =============================================================================

async def _run(initial_state: AnalysisState) -> AnalysisOutcome:
    try:
        result = await get_analysis_graph().ainvoke(initial_state)
    except Exception as e:
        logger.exception("Analysis graph raised")
        raise AnalysisFailedError("Analysis failed", original_error=e)

    if result.get("error") or not result.get("message"):
        stage = result.get("failed_stage")
        raise AnalysisFailedError(
            result.get("error") or "Analysis produced no message",
            stage=stage.value if stage else None,
        )

    return AnalysisOutcome(
        candidate=result["candidate"],
        report=result["report"],
        message=result["message"],
    )


async def analyze_image(image: bytes, mime_type: str = "image/jpeg") -> AnalysisOutcome:
    """
    Analyze a match screenshot.

    Raises:
        AnalysisFailedError: Extraction, synthesis or rendering failed
    """
    return await _run(create_initial_state(image=image, mime_type=mime_type))


async def analyze_text(home: str, away: str) -> AnalysisOutcome:
    """
    Analyze a typed pairing.

    Raises:
        AnalysisFailedError: Synthesis or rendering failed
    """
    return await _run(create_initial_state(candidate=candidate_from_teams(home, away)))


async def generate_details(home: str, away: str, competition: Optional[str] = None) -> str:
    """Extended statistics report for a pairing; never raises on provider errors."""
    home = normalize_team_name(home) or home
    away = normalize_team_name(away) or away

    home_stats, away_stats = await get_football_data_service().get_both_team_stats(home, away)
    live_context = await get_gemini_service().fetch_live_context(home, away, competition)
    return await get_openai_service().deep_stats(home_stats, away_stats, live_context)
