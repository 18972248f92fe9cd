"""
Application Settings for the Football Analysis Bot

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.

Provider keys (football-data, OpenWeatherMap, Gemini) are optional:
a missing key degrades the matching enrichment step, it never blocks startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    These are process-level settings. Pricing, quotas and feature toggles
    live in the persisted global settings record (see app.domain.bot_settings)
    so operators can change them at runtime.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    port: int = 3000

    # CORS Configuration
    frontend_url: str = "http://localhost:3001"
    allowed_origins: list[str] = [
        "http://localhost:3001",
        "http://localhost:3000",
        "http://127.0.0.1:3001",
    ]

    # Telegram (bot polling disabled when absent)
    telegram_bot_token: Optional[str] = None

    # OpenAI Configuration (extraction, synthesis, formatting)
    openai_api_key: Optional[str] = None
    openai_vision_model: str = "gpt-4o"
    openai_reasoning_model: str = "o1"
    openai_format_model: str = "gpt-4o"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_timeout_seconds: float = 120.0

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # External data providers
    football_data_api_key: Optional[str] = None
    openweather_api_key: Optional[str] = None
    provider_timeout_seconds: float = 10.0
    weather_timeout_seconds: float = 5.0

    # Read-through cache
    cache_ttl_minutes: int = 30

    # Conversational sessions
    session_ttl_minutes: int = 60
    session_max_entries: int = 10_000

    # Ledger
    debit_max_retries: int = 8

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None

    # Admin API
    admin_api_key: Optional[str] = None

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_keys(self) -> "Settings":
        """Normalize aliases and refuse unsafe production setups."""
        # Normalize gemini_api_key to google_api_key
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key

        if self.database_url:
            if self.database_url.startswith("postgresql://"):
                self.database_url = self.database_url.replace(
                    "postgresql://", "postgresql+asyncpg://", 1
                )
            elif self.database_url.startswith("postgres://"):
                self.database_url = self.database_url.replace(
                    "postgres://", "postgresql+asyncpg://", 1
                )

        # Unsigned webhooks are only tolerated outside production
        if self.is_production and self.stripe_secret_key and not self.stripe_webhook_secret:
            raise ValueError(
                "STRIPE_WEBHOOK_SECRET required when STRIPE_SECRET_KEY is set in production"
            )

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_minutes * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
