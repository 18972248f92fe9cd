"""
Extractor Node

Turns a screenshot into a MatchCandidate with the vision model.
Malformed output is terminal; there is no retry.
"""

import logging
from typing import Any, Dict

from app.agents.state import AnalysisStage, AnalysisState
from app.infrastructure.ai.openai_service import get_openai_service
from app.infrastructure.exceptions import ExtractionError

logger = logging.getLogger(__name__)


async def extractor_node(state: AnalysisState) -> Dict[str, Any]:
    image = state.get("image")
    if not image:
        return {
            "stage": AnalysisStage.FAILED,
            "failed_stage": AnalysisStage.EXTRACTING,
            "error": "No image to extract from",
        }

    try:
        candidate = await get_openai_service().extract_match(image, state.get("mime_type") or "image/jpeg")
    except ExtractionError as e:
        logger.error(f"Extractor: {e.message}")
        return {
            "stage": AnalysisStage.FAILED,
            "failed_stage": AnalysisStage.EXTRACTING,
            "error": e.message,
        }

    return {"candidate": candidate, "stage": AnalysisStage.EXTRACTING}
