"""Topic-centric chunks built from keyword-matched context windows.

Unlike the period and temporal splitters, a thematic chunk ignores
chronology: every window around a matching line is concatenated, so one
chunk may juxtapose conversations months apart.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING

from chatsplit.ingestion.chunking import summarize_messages
from chatsplit.ingestion.models import Chunk
from chatsplit.ingestion.parsers import iter_messages, split_lines
from chatsplit.ingestion.topics import DEFAULT_THEMES, compile_themes
from chatsplit.pipeline_config import ChunkingStrategy

if TYPE_CHECKING:
    from chatsplit.pipeline_config import ChunkingPolicy

logger = logging.getLogger(__name__)

SEPARATOR = "---"
RECENT_THEME = "Recent"


def collect_theme_lines(
    lines: list[str],
    pattern: re.Pattern[str],
    context_before: int = 5,
    context_after: int = 10,
    separator: str = SEPARATOR,
) -> list[str]:
    """Concatenate the context window of every line matching one theme.

    Each window spans *context_before* lines before the match up to (but not
    including) *context_after* lines after it, followed by *separator*.
    Overlapping windows are not merged.
    """
    collected: list[str] = []
    for index, line in enumerate(lines):
        if pattern.search(line):
            start = max(0, index - context_before)
            end = min(len(lines), index + context_after)
            collected.extend(lines[start:end])
            collected.append(separator)
    return collected


def extract_theme_chunks(
    content: str,
    themes: Mapping[str, str] | None = None,
    context_before: int = 5,
    context_after: int = 10,
    max_lines: int = 3000,
    min_lines: int = 100,
    separator: str = SEPARATOR,
) -> list[Chunk]:
    """Build theme-scoped chunks for every theme in *themes*.

    Themes whose concatenated windows hold fewer than *min_lines* lines are
    too sparse and produce nothing. Larger ones are cut into sub-chunks of
    at most *max_lines* lines titled ``"<theme>_part_<n>"``.

    Raises:
        ValueError: If *max_lines* < 1 or a theme pattern does not compile.
    """
    if max_lines < 1:
        msg = f"max_lines must be >= 1, got {max_lines}"
        raise ValueError(msg)

    themes = DEFAULT_THEMES if themes is None else themes
    lines = split_lines(content)
    chunks: list[Chunk] = []

    for theme, pattern in compile_themes(themes):
        theme_lines = collect_theme_lines(
            lines, pattern, context_before, context_after, separator
        )
        if len(theme_lines) < min_lines:
            logger.debug("Theme %s too sparse (%d lines), skipped", theme, len(theme_lines))
            continue

        for part, start in enumerate(range(0, len(theme_lines), max_lines), start=1):
            block = theme_lines[start : start + max_lines]
            metadata = summarize_messages(iter_messages(block))
            metadata.topics = [theme]
            chunks.append(
                Chunk(
                    lines=block,
                    title=f"{theme}_part_{part}",
                    strategy=ChunkingStrategy.THEMATIC.value,
                    chunk_index=len(chunks),
                    metadata=metadata,
                    theme=theme,
                )
            )

    return chunks


def recent_window_chunk(content: str, marker: str, max_lines: int = 4000) -> Chunk | None:
    """Collect up to *max_lines* lines starting at the first line containing *marker*.

    Guarantees recency coverage even when no theme matches. Returns None if
    the marker never occurs.
    """
    lines = split_lines(content)
    start = next((i for i, line in enumerate(lines) if marker in line), None)
    if start is None:
        return None

    block = lines[start : start + max_lines]
    return Chunk(
        lines=block,
        title=f"{RECENT_THEME}_since_{marker}",
        strategy=ChunkingStrategy.THEMATIC.value,
        metadata=summarize_messages(iter_messages(block)),
        theme=RECENT_THEME,
    )


def thematic_chunks(content: str, policy: ChunkingPolicy) -> list[Chunk]:
    """Theme chunks from *policy*, plus the recent window when a marker is configured."""
    chunks = extract_theme_chunks(
        content,
        themes=policy.themes,
        context_before=policy.context_before,
        context_after=policy.context_after,
        max_lines=policy.theme_max_lines,
        min_lines=policy.theme_min_lines,
    )
    if policy.recent_window_marker:
        recent = recent_window_chunk(
            content, policy.recent_window_marker, policy.recent_window_max_lines
        )
        if recent is not None:
            recent.chunk_index = len(chunks)
            chunks.append(recent)
    return chunks
