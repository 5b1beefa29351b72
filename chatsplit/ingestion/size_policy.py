"""Size thresholds that decide whether an export needs splitting."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_LINES = 5000
DEFAULT_MAX_SIZE_BYTES = 1024 * 1024


@dataclass(frozen=True)
class TranscriptStats:
    lines: int
    size_bytes: int
    chars: int


def transcript_stats(content: str) -> TranscriptStats:
    """Line count (``split("\\n")`` length), UTF-8 byte size and character count."""
    return TranscriptStats(
        lines=content.count("\n") + 1,
        size_bytes=len(content.encode("utf-8")),
        chars=len(content),
    )


def should_split(
    content: str,
    max_lines: int = DEFAULT_MAX_LINES,
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
) -> bool:
    """Return True if *content* has more than *max_lines* lines or exceeds *max_size_bytes*."""
    stats = transcript_stats(content)
    return stats.lines > max_lines or stats.size_bytes > max_size_bytes
