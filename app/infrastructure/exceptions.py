"""
Custom Exceptions for the Football Analysis Bot

Error hierarchy shared by the ledger, payment, pipeline and API layers.
The API maps ValidationError to 400, NotFoundError to 404 and any other
FootballBotError to 500.
"""

from typing import Optional, Dict, Any


class FootballBotError(Exception):
    """Base exception for all bot errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(FootballBotError):
    """Raised when input validation fails."""
    pass


class DatabaseError(FootballBotError):
    """Raised when a persistence operation fails."""
    pass


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class DuplicateError(DatabaseError):
    """Raised when attempting to create a duplicate resource."""
    pass


# =============================================================================
# Ledger
# =============================================================================

class EntitlementError(FootballBotError):
    """Raised when an account may not consume an analysis."""

    def __init__(
        self,
        message: str,
        telegram_id: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if telegram_id is not None:
            details["telegram_id"] = telegram_id
        super().__init__(message, details, original_error)


class InsufficientBalanceError(EntitlementError):
    """Raised when a debit finds no applicable entitlement (including lost races)."""

    def __init__(self, telegram_id: Optional[int] = None):
        super().__init__("Insufficient balance", telegram_id=telegram_id)


# =============================================================================
# Payments
# =============================================================================

class PaymentError(FootballBotError):
    """Raised when a checkout cannot be created or a settlement is rejected."""
    pass


# =============================================================================
# AI / Pipeline
# =============================================================================

class AIServiceError(FootballBotError):
    """Raised when AI (OpenAI/Gemini) operations fail."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class ExtractionError(AIServiceError):
    """Raised when a screenshot cannot be turned into a match candidate."""
    pass


class SynthesisError(AIServiceError):
    """Raised when the reasoning model output is missing or malformed."""
    pass


class RenderingError(AIServiceError):
    """Raised when the report cannot be formatted for Telegram."""
    pass


class ProviderError(FootballBotError):
    """Raised when a data provider answers with a body that cannot be used."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if provider:
            details["provider"] = provider
        super().__init__(message, details, original_error)


class AnalysisFailedError(FootballBotError):
    """Raised by the orchestrator when any primary stage fails."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if stage:
            details["stage"] = stage
        super().__init__(message, details, original_error)
        self.stage = stage


class ConfigurationError(FootballBotError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
