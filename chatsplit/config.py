from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    chunk_table: str = "chunks"

    # Indexing targets; never hard-coded in the chunkers
    openai_assistant_id: str = ""
    openai_vector_store_id: str = ""  # resolved from the assistant when empty

    # Size policy
    max_lines: int = 5000
    max_size_bytes: int = 1024 * 1024
    period_max_lines: int = 8000

    # Temporal chunking
    max_tokens_per_chunk: int = 500
    overlap_message_count: int = 5

    # Recency
    recent_cutoff_year: int = 2025

    # Upload batching (rate limits)
    upload_batch_size: int = 20
    upload_batch_pause_seconds: float = 2.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
