"""
Synthesizer Node

Best-effort live context from Gemini, then one reasoning-model call whose
JSON output is validated against SynthesisOutput.
"""

import logging
from typing import Any, Dict

from app.agents.state import AnalysisStage, AnalysisState
from app.infrastructure.ai.gemini_service import get_gemini_service
from app.infrastructure.ai.openai_service import get_openai_service
from app.infrastructure.exceptions import SynthesisError

logger = logging.getLogger(__name__)


async def synthesizer_node(state: AnalysisState) -> Dict[str, Any]:
    candidate = state["candidate"]

    live_context = await get_gemini_service().fetch_live_context(
        candidate.team_home,
        candidate.team_away,
        candidate.competition,
    )

    try:
        synthesis = await get_openai_service().synthesize(
            candidate=candidate,
            home_stats=state["home_stats"],
            away_stats=state["away_stats"],
            head_to_head=state.get("head_to_head"),
            weather=state.get("weather"),
            live_context=live_context,
        )
    except SynthesisError as e:
        logger.error(f"Synthesizer: {e.message}")
        return {
            "live_context": live_context,
            "stage": AnalysisStage.FAILED,
            "failed_stage": AnalysisStage.SYNTHESIZING,
            "error": e.message,
        }

    return {
        "live_context": live_context,
        "synthesis": synthesis,
        "stage": AnalysisStage.SYNTHESIZING,
    }
