"""
Gemini AI Service for the Football Analysis Bot

Uses the google.genai SDK with Google Search grounding to gather live
match context (injuries, lineups, stakes, travel, weather, rumours)
before synthesis.

Live context is best effort: any failure yields a placeholder text and
the analysis carries on without it.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from google import genai
from google.genai import types

from app.config.settings import settings
from app.infrastructure.ai.prompts import (
    LIVE_CONTEXT_FALLBACK,
    LIVE_CONTEXT_PROMPT,
    french_date,
)
from app.infrastructure.exceptions import AIServiceError, ConfigurationError


logger = logging.getLogger(__name__)


class GeminiService:
    """
    Gemini client with Google Search grounding.

    The SDK is synchronous; calls run in a worker thread so the event
    loop keeps serving other chats.
    """

    _instance: Optional["GeminiService"] = None
    _client: Optional[genai.Client] = None
    _initialized: bool = False

    MAX_OUTPUT_TOKENS = 4096
    TEMPERATURE = 0.3

    def __new__(cls) -> "GeminiService":
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.model = settings.gemini_model
            GeminiService._initialized = True

    def _initialize(self) -> None:
        """Initialize Gemini client."""
        if not settings.google_api_key:
            raise ConfigurationError(
                "Missing GOOGLE_API_KEY environment variable",
                missing_keys=["GOOGLE_API_KEY"]
            )

        GeminiService._client = genai.Client(api_key=settings.google_api_key)
        logger.info(f"GeminiService initialized with model: {self.model}")

    @property
    def client(self) -> genai.Client:
        """Get the Gemini client instance."""
        if self._client is None:
            self._initialize()
        return self._client

    async def search(self, prompt: str) -> str:
        """
        Run one grounded generation.

        Raises:
            ConfigurationError: No Google API key
            AIServiceError: Model call failed or returned nothing
        """
        try:
            response = await asyncio.to_thread(
                lambda: self.client.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(
                        temperature=self.TEMPERATURE,
                        max_output_tokens=self.MAX_OUTPUT_TOKENS,
                        tools=[types.Tool(google_search=types.GoogleSearch())],
                    ),
                )
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise AIServiceError(
                f"Live search failed: {str(e)}",
                model=self.model,
                operation="search",
                original_error=e
            )

        if not response.text:
            raise AIServiceError("Empty search response", model=self.model, operation="search")
        return response.text

    async def fetch_live_context(
        self,
        home: str,
        away: str,
        competition: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Up-to-date context for a fixture, or a placeholder on any failure."""
        prompt = LIVE_CONTEXT_PROMPT.format(
            today=french_date(now or datetime.now(timezone.utc)),
            home=home,
            away=away,
            competition=f" ({competition})" if competition else "",
        )

        logger.info(f"[GEMINI] Live context search: {home} vs {away}")
        try:
            return await self.search(prompt)
        except (AIServiceError, ConfigurationError) as e:
            logger.warning(f"[GEMINI] Live context unavailable: {e.message}")
            return LIVE_CONTEXT_FALLBACK


def get_gemini_service() -> GeminiService:
    """Get the Gemini service singleton."""
    return GeminiService()
