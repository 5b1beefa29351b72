"""Tests for Settings, ChunkingPolicy and the strategy enums."""

from __future__ import annotations

import pytest

from chatsplit.config import Settings
from chatsplit.pipeline_config import (
    ChunkingPolicy,
    ChunkingStrategy,
    PeriodGranularity,
    UpdateMode,
)

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestChunkingStrategy:
    def test_values(self) -> None:
        assert ChunkingStrategy.PERIOD.value == "period"
        assert ChunkingStrategy.GENERIC.value == "generic"
        assert ChunkingStrategy.TEMPORAL.value == "temporal"
        assert ChunkingStrategy.THEMATIC.value == "thematic"
        assert ChunkingStrategy.RECENT.value == "recent"

    def test_from_string(self) -> None:
        assert ChunkingStrategy("temporal") is ChunkingStrategy.TEMPORAL
        assert ChunkingStrategy("period") is ChunkingStrategy.PERIOD

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            ChunkingStrategy("invalid")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(ChunkingStrategy.TEMPORAL, str)


class TestOtherEnums:
    def test_granularity(self) -> None:
        assert PeriodGranularity("month") is PeriodGranularity.MONTH
        assert PeriodGranularity("day") is PeriodGranularity.DAY

    def test_update_mode(self) -> None:
        assert UpdateMode("full_replacement") is UpdateMode.FULL_REPLACEMENT
        with pytest.raises(ValueError):
            UpdateMode("partial")


# ---------------------------------------------------------------------------
# ChunkingPolicy tests
# ---------------------------------------------------------------------------


class TestChunkingPolicy:
    def test_defaults(self) -> None:
        policy = ChunkingPolicy()
        assert policy.max_lines == 5000
        assert policy.max_size_bytes == 1024 * 1024
        assert policy.period_max_lines == 8000
        assert policy.max_tokens_per_chunk == 500
        assert policy.overlap_message_count == 5
        assert policy.period_granularity is PeriodGranularity.MONTH
        assert policy.theme_max_lines == 3000
        assert policy.theme_min_lines == 100
        assert policy.recent_window_max_lines == 4000
        assert "NotebookLM" in policy.topic_keywords
        assert "NotebookLM" in policy.themes

    def test_immutable(self) -> None:
        policy = ChunkingPolicy()
        with pytest.raises(AttributeError):
            policy.max_lines = 10  # type: ignore[misc]

    def test_tables_are_independent_copies(self) -> None:
        first, second = ChunkingPolicy(), ChunkingPolicy()
        assert first.themes is not second.themes

    def test_from_settings(self) -> None:
        settings = Settings(
            max_lines=100,
            period_max_lines=50,
            max_tokens_per_chunk=200,
            overlap_message_count=3,
            recent_cutoff_year=2024,
            _env_file=None,
        )
        policy = ChunkingPolicy.from_settings(settings)
        assert policy.max_lines == 100
        assert policy.period_max_lines == 50
        assert policy.max_tokens_per_chunk == 200
        assert policy.overlap_message_count == 3
        assert policy.recent_cutoff_year == 2024
        assert policy.theme_min_lines == 100


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.upload_batch_size == 20
        assert settings.upload_batch_pause_seconds == 2.0
        assert settings.chunk_table == "chunks"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_VECTOR_STORE_ID", "vs_env")
        monkeypatch.setenv("MAX_TOKENS_PER_CHUNK", "750")
        settings = Settings(_env_file=None)
        assert settings.openai_vector_store_id == "vs_env"
        assert settings.max_tokens_per_chunk == 750
