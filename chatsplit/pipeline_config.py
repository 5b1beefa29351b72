"""Pipeline configuration: strategy enums and the ChunkingPolicy dataclass."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from chatsplit.ingestion.topics import DEFAULT_THEMES, TOPIC_KEYWORDS

if TYPE_CHECKING:
    from chatsplit.config import Settings


class ChunkingStrategy(str, Enum):
    """Available chunking strategies for transcript ingestion."""

    PERIOD = "period"
    GENERIC = "generic"
    TEMPORAL = "temporal"
    THEMATIC = "thematic"
    RECENT = "recent"


class PeriodGranularity(str, Enum):
    """Calendar period used by the period splitter."""

    MONTH = "month"
    DAY = "day"


class UpdateMode(str, Enum):
    """How a new export replaces what is already indexed."""

    INCREMENTAL = "incremental"
    FULL_REPLACEMENT = "full_replacement"
    USER_CHOICE = "user_choice"


@dataclass(frozen=True)
class ChunkingPolicy:
    """Immutable configuration for one chunking run.

    Defaults mirror the thresholds the pipeline has always used: split
    above 5000 lines or 1 MiB, 8000-line period ceiling, 500-token temporal
    chunks with a 5-message overlap.
    """

    max_lines: int = 5000
    max_size_bytes: int = 1024 * 1024
    period_max_lines: int = 8000
    min_period_lines: int = 0
    period_granularity: PeriodGranularity = PeriodGranularity.MONTH

    max_tokens_per_chunk: int = 500
    overlap_message_count: int = 5
    topic_keywords: Mapping[str, str] = field(default_factory=lambda: dict(TOPIC_KEYWORDS))

    themes: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_THEMES))
    context_before: int = 5
    context_after: int = 10
    theme_max_lines: int = 3000
    theme_min_lines: int = 100
    recent_window_marker: str | None = None
    recent_window_max_lines: int = 4000

    recent_cutoff_year: int = 2025
    recent_max_lines: int = 2000
    recent_min_period_lines: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> ChunkingPolicy:
        """Build a policy from application settings, keeping other defaults."""
        return cls(
            max_lines=settings.max_lines,
            max_size_bytes=settings.max_size_bytes,
            period_max_lines=settings.period_max_lines,
            max_tokens_per_chunk=settings.max_tokens_per_chunk,
            overlap_message_count=settings.overlap_message_count,
            recent_cutoff_year=settings.recent_cutoff_year,
        )
