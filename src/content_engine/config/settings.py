"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""

    # Provider routing
    default_provider: str = "openai"
    fast_provider: str = "openai"
    strong_provider: str = "anthropic"
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    gemini_model: str = "gemini-2.0-flash"
    provider_timeout_seconds: float = 60.0
    short_prompt_chars: int = 1000
    long_prompt_chars: int = 5000

    # Gateway limits
    ai_rate_limit_per_minute: int = 60
    ai_cost_limit_daily: float = 50.00
    ai_cost_limit_monthly: float = 1000.00

    # Extraction
    content_min_chars: int = 10
    content_max_chars: int = 50000
    extraction_max_tokens: int = 2000
    extraction_temperature: float = 0.3

    # Reconciliation thresholds
    fuzzy_match_threshold: float = 0.8
    low_confidence_threshold: float = 0.6
    new_entity_confirmation_threshold: float = 0.8

    # Feedback
    feedback_rate_limit: int = 5
    feedback_rate_window_seconds: int = 60
    feedback_max_metadata_bytes: int = 1_048_576

    # Retrieval
    retrieval_min_confidence: float = 0.8
    retrieval_default_limit: int = 10
    personalized_default_limit: int = 5
    personalization_cache_ttl_seconds: int = 3600
    rag_max_examples: int = 3

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # Storage paths
    sqlite_db_path: str = "data/content.db"
    embedding_cache_db_path: str = "data/embedding_cache.db"
    faiss_index_path: str = "data/faiss_index"
    counter_backend: str = "sqlite"  # "sqlite" or "memory"
    counter_purge_every: int = 100  # increments between sweeps of expired counters

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {"env_file": ".env", "env_prefix": "CE_"}
