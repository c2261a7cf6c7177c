"""Custom exception hierarchy for the content engine."""

from __future__ import annotations


class ContentEngineError(Exception):
    """Base exception for all content engine errors."""


class ContentInvalidError(ContentEngineError):
    """Input content failed validation before any external call."""


class ExtractionParseError(ContentEngineError):
    """Provider response could not be turned into structured JSON."""


class RateLimitExceeded(ContentEngineError):
    """A per-minute counter went over its limit."""

    def __init__(self, message: str, key: str | None = None, limit: int | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.limit = limit


class CostLimitExceeded(ContentEngineError):
    """Daily or monthly spend would exceed the configured ceiling."""

    def __init__(self, message: str, period: str, spent: float, limit: float) -> None:
        super().__init__(message)
        self.period = period
        self.spent = spent
        self.limit = limit


class ValidationError(ContentEngineError):
    """Request payload is invalid. ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


class PersistenceError(ContentEngineError):
    """A single entity could not be stored or linked."""


class ProviderError(ContentEngineError):
    """A completion provider failed or timed out."""

    def __init__(self, message: str, provider: str, prompt_length: int = 0) -> None:
        super().__init__(message)
        self.provider = provider
        self.prompt_length = prompt_length


class EmbeddingError(ContentEngineError):
    """Error generating or storing embeddings."""


class NotFoundError(ContentEngineError):
    """A referenced record does not exist."""


class ConfigurationError(ContentEngineError):
    """Error in system configuration."""
