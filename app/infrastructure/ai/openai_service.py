"""
OpenAI Service

Chat-completions calls over httpx for the model-backed pipeline stages:
- Screenshot extraction (vision, JSON mode)
- Synthesis (reasoning model, fixed JSON shape)
- Telegram formatting
- Extended statistics report
"""

import base64
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pydantic

from app.config.settings import settings
from app.domain.match import (
    HeadToHead,
    MatchCandidate,
    MatchReport,
    SynthesisOutput,
    TeamStats,
    WeatherData,
)
from app.infrastructure.ai.prompts import (
    DEEP_STATS_FALLBACK,
    DEEP_STATS_PROMPT,
    DEEP_STATS_SYSTEM,
    EXTRACTION_SYSTEM,
    FORMAT_PROMPT,
    FORMAT_SYSTEM,
    MATCH_EXTRACTION_PROMPT,
    SYNTHESIS_PROMPT,
    french_date,
)
from app.infrastructure.exceptions import (
    AIServiceError,
    ExtractionError,
    RenderingError,
    SynthesisError,
)


logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000
TRUNCATED_LENGTH = 3950
TRUNCATION_MARKER = "\n\n... [Rapport tronqué]"


def parse_json_response(response_text: str) -> Dict[str, Any]:
    """Parse JSON from response, handling markdown code blocks."""
    text = response_text.strip()

    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]

    if text.endswith("```"):
        text = text[:-3]

    return json.loads(text.strip())


def truncate_report(text: str) -> str:
    """Keep a rendered report within Telegram's message limit."""
    if len(text) <= MAX_MESSAGE_LENGTH:
        return text
    return text[:TRUNCATED_LENGTH] + TRUNCATION_MARKER


def _to_json(value: Any) -> str:
    if value is None:
        return "Non disponible"
    if isinstance(value, pydantic.BaseModel):
        value = value.model_dump(mode="json", by_alias=True)
    return json.dumps(value, ensure_ascii=False, indent=2)


class OpenAIService:
    """OpenAI chat-completions client."""

    def __init__(self):
        self.api_key = settings.openai_api_key
        self.base_url = settings.openai_base_url.rstrip("/")
        self.timeout = settings.openai_timeout_seconds
        self.vision_model = settings.openai_vision_model
        self.reasoning_model = settings.openai_reasoning_model
        self.format_model = settings.openai_format_model

    async def _chat(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        operation: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """
        One chat completion; returns the first choice's content.

        Raises:
            AIServiceError: Missing key, transport/HTTP failure or empty content
        """
        if not self.api_key:
            raise AIServiceError("OPENAI_API_KEY not configured", model=model, operation=operation)

        body: Dict[str, Any] = {"model": model, "messages": messages}
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AIServiceError(
                f"OpenAI request failed: {str(e)}",
                model=model,
                operation=operation,
                original_error=e
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIServiceError(
                "Unexpected OpenAI response shape",
                model=model,
                operation=operation,
                original_error=e
            )

        if not content:
            raise AIServiceError("Empty OpenAI response", model=model, operation=operation)
        return content

    # =========================================================================
    # Extraction
    # =========================================================================

    async def extract_match(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> MatchCandidate:
        """
        Read a match screenshot into a MatchCandidate.

        Raises:
            ExtractionError: Model call failed or output is not a valid candidate
        """
        encoded = base64.b64encode(image_bytes).decode("ascii")
        messages = [
            {"role": "system", "content": EXTRACTION_SYSTEM},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": MATCH_EXTRACTION_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{encoded}", "detail": "high"},
                    },
                ],
            },
        ]

        logger.info(f"[EXTRACTION] Reading screenshot ({len(image_bytes)} bytes)")
        try:
            content = await self._chat(
                self.vision_model,
                messages,
                operation="extract_match",
                temperature=0.1,
                max_tokens=1000,
                json_mode=True,
            )
            candidate = MatchCandidate.model_validate(parse_json_response(content))
        except AIServiceError as e:
            raise ExtractionError(e.message, model=self.vision_model, operation="extract_match", original_error=e)
        except (ValueError, pydantic.ValidationError) as e:
            raise ExtractionError(
                f"Invalid extraction output: {str(e)}",
                model=self.vision_model,
                operation="extract_match",
                original_error=e
            )

        logger.info(
            f"[EXTRACTION] {candidate.team_home} vs {candidate.team_away} "
            f"(confidence {candidate.ocr_confidence})"
        )
        return candidate

    # =========================================================================
    # Synthesis
    # =========================================================================

    async def synthesize(
        self,
        candidate: MatchCandidate,
        home_stats: TeamStats,
        away_stats: TeamStats,
        head_to_head: Optional[HeadToHead],
        weather: Optional[WeatherData],
        live_context: str,
        now: Optional[datetime] = None,
    ) -> SynthesisOutput:
        """
        Ask the reasoning model for the full analysis document.

        Raises:
            SynthesisError: Model call failed, output is not JSON or fails validation
        """
        prompt = SYNTHESIS_PROMPT.format(
            today=french_date(now or datetime.now(timezone.utc)),
            live_context=live_context,
            match=_to_json(candidate),
            home_stats=_to_json(home_stats),
            away_stats=_to_json(away_stats),
            head_to_head=_to_json(head_to_head),
            weather=_to_json(weather),
        )

        logger.info(f"[SYNTHESIS] {self.reasoning_model} analysing {candidate.team_home} vs {candidate.team_away}")
        try:
            content = await self._chat(
                self.reasoning_model,
                [{"role": "user", "content": prompt}],
                operation="synthesize",
            )
            return SynthesisOutput.model_validate(parse_json_response(content))
        except AIServiceError as e:
            raise SynthesisError(e.message, model=self.reasoning_model, operation="synthesize", original_error=e)
        except (ValueError, pydantic.ValidationError) as e:
            raise SynthesisError(
                f"Invalid synthesis output: {str(e)}",
                model=self.reasoning_model,
                operation="synthesize",
                original_error=e
            )

    # =========================================================================
    # Rendering
    # =========================================================================

    async def format_report(self, report: MatchReport) -> str:
        """
        Render a report as a Telegram message within the length limit.

        Raises:
            RenderingError: Model call failed or returned nothing
        """
        payload = report.model_dump(mode="json", exclude={"home_stats": {"form"}, "away_stats": {"form"}})
        prompt = FORMAT_PROMPT.format(report=_to_json(payload))

        try:
            text = await self._chat(
                self.format_model,
                [
                    {"role": "system", "content": FORMAT_SYSTEM},
                    {"role": "user", "content": prompt},
                ],
                operation="format_report",
                temperature=0.7,
                max_tokens=2000,
            )
        except AIServiceError as e:
            raise RenderingError(e.message, model=self.format_model, operation="format_report", original_error=e)

        if len(text) > MAX_MESSAGE_LENGTH:
            logger.info(f"[RENDER] Report of {len(text)} chars truncated")
        return truncate_report(text)

    async def deep_stats(
        self,
        home_stats: TeamStats,
        away_stats: TeamStats,
        live_context: str,
    ) -> str:
        """Extended statistics report; a fixed error text on failure."""
        prompt = DEEP_STATS_PROMPT.format(
            home=home_stats.team.name,
            away=away_stats.team.name,
            home_stats=_to_json(home_stats),
            away_stats=_to_json(away_stats),
            live_context=live_context,
        )

        try:
            text = await self._chat(
                self.format_model,
                [
                    {"role": "system", "content": DEEP_STATS_SYSTEM},
                    {"role": "user", "content": prompt},
                ],
                operation="deep_stats",
                temperature=0.5,
                max_tokens=2000,
            )
        except AIServiceError as e:
            logger.error(f"[DETAILS] Deep stats generation failed: {e.message}")
            return DEEP_STATS_FALLBACK

        return truncate_report(text)


# =============================================================================
# Singleton Instance
# =============================================================================

_openai_service: Optional[OpenAIService] = None


def get_openai_service() -> OpenAIService:
    """Get or create the OpenAI service singleton."""
    global _openai_service
    if _openai_service is None:
        _openai_service = OpenAIService()
    return _openai_service
