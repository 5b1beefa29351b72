"""Chunking strategies for WhatsApp transcripts.

- :func:`split_by_period`: contiguous calendar-period chunks with a hard line ceiling.
- :func:`split_generic`: fixed line blocks for exports that are not chat logs.
- :func:`temporal_chunk`: overlapping, token-budgeted chunks with rich metadata.

Every strategy keeps the transcript's line order; only the temporal chunker
duplicates lines (the overlap carried into the next chunk).
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import PurePath

from chatsplit.ingestion.models import Chunk, ChunkMetadata, Message
from chatsplit.ingestion.parsers import iter_messages, split_lines
from chatsplit.ingestion.topics import TOPIC_KEYWORDS, CompiledThemes, compile_themes, match_topics
from chatsplit.pipeline_config import ChunkingStrategy, PeriodGranularity

logger = logging.getLogger(__name__)

TitleFormatter = Callable[[str | None, int | None], str]


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def label_stem(label: str) -> str:
    """Strip any directory and a trailing ``.txt`` from a filename-style label."""
    name = PurePath(label).name or label
    return name.removesuffix(".txt")


def period_key(date: dt.date, granularity: PeriodGranularity = PeriodGranularity.MONTH) -> str:
    """Period label of *date*: ``MM/YYYY`` for months, ``DD/MM/YYYY`` for days."""
    if granularity is PeriodGranularity.DAY:
        return date.strftime("%d/%m/%Y")
    return date.strftime("%m/%Y")


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@dataclass
class _RunningMetadata:
    """Metadata accumulated while lines are appended to a chunk."""

    date_start: str | None = None
    date_end: str | None = None
    # dicts as insertion-ordered sets
    participants: dict[str, None] = field(default_factory=dict)
    topics: dict[str, None] = field(default_factory=dict)

    def observe(self, message: Message, themes: CompiledThemes = ()) -> None:
        if message.has_timestamp:
            if self.date_start is None:
                self.date_start = message.date_label
            self.date_end = message.date_label
            if message.participant:
                self.participants[message.participant] = None
        for topic in match_topics(message.raw_line, themes):
            self.topics[topic] = None

    def finalize(self, token_count: int, message_count: int) -> ChunkMetadata:
        return ChunkMetadata(
            date_start=self.date_start,
            date_end=self.date_end,
            participants=list(self.participants),
            topics=list(self.topics),
            token_count=token_count,
            message_count=message_count,
        )


def summarize_messages(
    messages: Iterable[Message],
    themes: CompiledThemes = (),
) -> ChunkMetadata:
    """Build chunk metadata (date range, participants, topics, size) for *messages*."""
    running = _RunningMetadata()
    tokens = 0
    count = 0
    for message in messages:
        running.observe(message, themes)
        tokens += estimate_tokens(message.raw_line)
        count += 1
    return running.finalize(tokens, count)


# ---------------------------------------------------------------------------
# Period splitter
# ---------------------------------------------------------------------------


def _default_period_title(label: str) -> TitleFormatter:
    def title(period: str | None, part: int | None) -> str:
        if part is None:
            return f"{label} {period or 'final'}"
        return f"{label} {period or 'undated'} (part {part})"

    return title


def split_by_period(
    content: str,
    label: str,
    max_lines: int = 8000,
    granularity: PeriodGranularity = PeriodGranularity.MONTH,
    min_period_lines: int = 0,
    strategy: ChunkingStrategy = ChunkingStrategy.PERIOD,
    title_for: TitleFormatter | None = None,
) -> list[Chunk]:
    """Split a transcript into contiguous chunks, one per calendar period.

    A period change flushes the buffer once it holds more than
    *min_period_lines* lines; a buffer reaching *max_lines* is flushed
    immediately as ``"(part N)"``, whatever the period. Lines before the first
    dated line join the first period.

    Args:
        content: Raw transcript text.
        label: Filename or label used as the title prefix.
        max_lines: Hard ceiling on lines per chunk.
        granularity: Month (default) or day periods.
        min_period_lines: Buffer size a period change must exceed to flush.
        strategy: Strategy recorded on the produced chunks.
        title_for: Optional ``(period, part) -> title`` formatter.

    Returns:
        Ordered chunks whose lines concatenate back to the transcript.

    Raises:
        ValueError: If *max_lines* is smaller than 1.
    """
    if max_lines < 1:
        msg = f"max_lines must be >= 1, got {max_lines}"
        raise ValueError(msg)

    title_for = title_for or _default_period_title(label_stem(label))
    chunks: list[Chunk] = []
    buffer: list[Message] = []
    current_period: str | None = None
    part = 0

    def flush(period: str | None, part_number: int | None) -> None:
        chunks.append(
            Chunk(
                lines=[m.raw_line for m in buffer],
                title=title_for(period, part_number),
                strategy=strategy.value,
                chunk_index=len(chunks),
                metadata=summarize_messages(buffer),
                period=period,
            )
        )
        buffer.clear()

    for message in iter_messages(split_lines(content)):
        if message.date is not None:
            period = period_key(message.date, granularity)
            if current_period is not None and period != current_period:
                if len(buffer) > min_period_lines:
                    flush(current_period, part + 1 if part else None)
                part = 0
            current_period = period

        buffer.append(message)

        if len(buffer) >= max_lines:
            part += 1
            flush(current_period, part)

    if buffer:
        flush(current_period, part + 1 if part else None)

    logger.debug("Period split of %r produced %d chunks", label, len(chunks))
    return chunks


def split_generic(content: str, label: str, max_lines: int = 5000) -> list[Chunk]:
    """Split arbitrary text into fixed blocks of *max_lines* lines."""
    if max_lines < 1:
        msg = f"max_lines must be >= 1, got {max_lines}"
        raise ValueError(msg)

    stem = label_stem(label)
    lines = split_lines(content)
    chunks: list[Chunk] = []
    for start in range(0, len(lines), max_lines):
        block = lines[start : start + max_lines]
        chunks.append(
            Chunk(
                lines=block,
                title=f"{stem} (part {start // max_lines + 1})",
                strategy=ChunkingStrategy.GENERIC.value,
                chunk_index=len(chunks),
            )
        )
    return chunks


# ---------------------------------------------------------------------------
# Temporal (sliding-window) chunker
# ---------------------------------------------------------------------------


def window_messages(
    messages: Iterable[Message],
    max_tokens: int = 500,
    overlap: int = 5,
    topic_keywords: Mapping[str, str] | None = None,
    label: str = "temporal",
) -> list[Chunk]:
    """Group classified messages into overlapping, token-budgeted chunks.

    A chunk is flushed once its estimated tokens exceed *max_tokens* and it
    holds more than *overlap* lines. The next chunk starts with the last
    *overlap* lines; its dates and participants come from those lines only
    and its topics start empty.

    Args:
        messages: Classified lines, in transcript order.
        max_tokens: Token budget that triggers a flush.
        overlap: Number of trailing lines repeated at the start of the next chunk.
        topic_keywords: Topic table (label -> regex); defaults to :data:`TOPIC_KEYWORDS`.
        label: Title prefix; chunks are titled ``"<label> #<n>"``.

    Returns:
        Ordered chunks with :class:`ChunkMetadata` attached.

    Raises:
        ValueError: If *max_tokens* < 1 or *overlap* < 0.
    """
    if max_tokens < 1:
        msg = f"max_tokens must be >= 1, got {max_tokens}"
        raise ValueError(msg)
    if overlap < 0:
        msg = f"overlap must be >= 0, got {overlap}"
        raise ValueError(msg)

    themes = compile_themes(TOPIC_KEYWORDS if topic_keywords is None else topic_keywords)
    chunks: list[Chunk] = []
    buffer: list[Message] = []
    running = _RunningMetadata()
    tokens = 0

    def flush() -> None:
        chunks.append(
            Chunk(
                lines=[m.raw_line for m in buffer],
                title=f"{label} #{len(chunks) + 1}",
                strategy=ChunkingStrategy.TEMPORAL.value,
                chunk_index=len(chunks),
                metadata=running.finalize(tokens, len(buffer)),
            )
        )

    for message in messages:
        buffer.append(message)
        running.observe(message, themes)
        tokens += estimate_tokens(message.raw_line)

        if tokens > max_tokens and len(buffer) > overlap:
            flush()
            buffer = buffer[len(buffer) - overlap :]
            tokens = sum(estimate_tokens(m.raw_line) for m in buffer)
            running = _RunningMetadata()
            for carried in buffer:
                running.observe(carried)

    if buffer:
        flush()

    return chunks


def temporal_chunk(
    content: str,
    max_tokens: int = 500,
    overlap: int = 5,
    topic_keywords: Mapping[str, str] | None = None,
    label: str = "temporal",
) -> list[Chunk]:
    """Classify *content* line by line and run :func:`window_messages` over it."""
    return window_messages(
        iter_messages(split_lines(content)),
        max_tokens=max_tokens,
        overlap=overlap,
        topic_keywords=topic_keywords,
        label=label_stem(label),
    )
