"""End-to-end ingestion pipeline: parse -> chunk -> upload, plus export updates."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chatsplit.ingestion.chunking import label_stem, split_by_period, split_generic, temporal_chunk
from chatsplit.ingestion.models import Chunk, UploadReport
from chatsplit.ingestion.parsers import iter_messages, split_lines
from chatsplit.ingestion.recency import split_recent
from chatsplit.ingestion.size_policy import should_split
from chatsplit.ingestion.themes import thematic_chunks
from chatsplit.ingestion.upload import upload_chunks_sync
from chatsplit.pipeline_config import ChunkingPolicy, ChunkingStrategy, UpdateMode

if TYPE_CHECKING:
    from chatsplit.ingestion.storage import ChunkIndexer

logger = logging.getLogger(__name__)

# Filenames WhatsApp gives its exports ("WhatsApp Chat with ...", "Discussion WhatsApp avec ...")
_CHAT_EXPORT_HINTS = ("whatsapp", "discussion")
_SNIFF_LINES = 50


def is_chat_export(label: str, content: str) -> bool:
    """Guess whether *content* is a WhatsApp export from its name or first lines."""
    if any(hint in label.lower() for hint in _CHAT_EXPORT_HINTS):
        return True
    head = split_lines(content)[:_SNIFF_LINES]
    return any(m.has_timestamp for m in iter_messages(head))


def chunk_transcript(
    content: str,
    label: str,
    strategy: str | ChunkingStrategy = ChunkingStrategy.PERIOD,
    policy: ChunkingPolicy | None = None,
) -> list[Chunk]:
    """Run one chunking strategy over a transcript.

    Args:
        content: Raw transcript text.
        label: Filename or label used in chunk titles.
        strategy: Strategy name or enum.
        policy: Thresholds; defaults to :class:`ChunkingPolicy`.

    Raises:
        ValueError: If *strategy* is not a known strategy.
    """
    if isinstance(strategy, str):
        strategy = ChunkingStrategy(strategy)
    policy = policy or ChunkingPolicy()

    if strategy is ChunkingStrategy.PERIOD:
        return split_by_period(
            content,
            label,
            max_lines=policy.period_max_lines,
            granularity=policy.period_granularity,
            min_period_lines=policy.min_period_lines,
        )
    if strategy is ChunkingStrategy.GENERIC:
        return split_generic(content, label, max_lines=policy.max_lines)
    if strategy is ChunkingStrategy.TEMPORAL:
        return temporal_chunk(
            content,
            max_tokens=policy.max_tokens_per_chunk,
            overlap=policy.overlap_message_count,
            topic_keywords=policy.topic_keywords,
            label=label,
        )
    if strategy is ChunkingStrategy.THEMATIC:
        return thematic_chunks(content, policy)
    return split_recent(
        content,
        label,
        cutoff_year=policy.recent_cutoff_year,
        max_lines=policy.recent_max_lines,
        min_period_lines=policy.recent_min_period_lines,
    )


def auto_split(content: str, label: str, policy: ChunkingPolicy | None = None) -> list[Chunk]:
    """Split an export only when the size policy requires it.

    Small files come back as a single chunk. Large WhatsApp exports are split
    by period; anything else is cut into fixed line blocks.
    """
    policy = policy or ChunkingPolicy()
    if not content:
        return []

    strategy = ChunkingStrategy.GENERIC
    if is_chat_export(label, content):
        strategy = ChunkingStrategy.PERIOD
    if not should_split(content, policy.max_lines, policy.max_size_bytes):
        logger.info("%s is small enough, no split needed", label)
        return [Chunk(lines=split_lines(content), title=label_stem(label), strategy=strategy.value)]

    chunks = chunk_transcript(content, label, strategy, policy)
    logger.info("%s split into %d %s chunks", label, len(chunks), strategy.value)
    return chunks


@dataclass
class IngestResult:
    """Chunks produced for one export and how their upload went."""

    label: str
    chunks: list[Chunk]
    report: UploadReport = field(default_factory=UploadReport)
    mode: UpdateMode | None = None
    deleted_files: int = 0


def ingest_transcript(
    content: str,
    label: str,
    indexer: ChunkIndexer,
    strategy: str | ChunkingStrategy | None = None,
    policy: ChunkingPolicy | None = None,
    batch_size: int = 20,
    pause_seconds: float = 2.0,
) -> IngestResult:
    """Full ingestion pipeline: chunk -> upload.

    Args:
        content: Raw transcript text.
        label: Filename or label of the export.
        indexer: Collaborator receiving each chunk.
        strategy: Explicit strategy; ``None`` applies :func:`auto_split`.
        policy: Chunking thresholds.
        batch_size: Concurrent uploads per batch.
        pause_seconds: Pause between upload batches.

    Returns:
        The produced chunks with a per-chunk upload report. Upload failures
        never discard the chunks.
    """
    if strategy is None:
        chunks = auto_split(content, label, policy)
    else:
        chunks = chunk_transcript(content, label, strategy, policy)

    report = upload_chunks_sync(chunks, indexer, batch_size, pause_seconds)
    if not report.all_succeeded:
        logger.warning(
            "%s: %d of %d chunks failed to upload", label, report.failed, report.total
        )
    return IngestResult(label=label, chunks=chunks, report=report)


# ---------------------------------------------------------------------------
# Update manager
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContentDiff:
    old_lines: int
    new_lines: int
    added_lines: int
    percentage_increase: float


def compare_exports(old_content: str, new_content: str) -> ContentDiff:
    """Compare line counts of the previously indexed export and a new one.

    An empty previous export counts as a 100% increase.
    """
    old_lines = len(split_lines(old_content))
    new_lines = len(split_lines(new_content))
    added = new_lines - old_lines
    increase = added / old_lines * 100 if old_lines else 100.0
    return ContentDiff(old_lines, new_lines, added, round(increase, 2))


def extract_new_content(old_content: str, new_content: str) -> str | None:
    """Return the lines of *new_content* that follow the last old line found in it.

    Old lines are tried from the end; the first one present in the new export
    anchors the slice. Returns None when nothing follows the anchor.
    """
    old_lines = split_lines(old_content)
    new_lines = split_lines(new_content)

    start = 0
    for line in reversed(old_lines):
        try:
            start = new_lines.index(line) + 1
        except ValueError:
            continue
        break

    if start >= len(new_lines):
        return None
    return "\n".join(new_lines[start:])


def recommend_update(diff: ContentDiff) -> UpdateMode:
    """Incremental below 20% growth, full replacement above 50%, otherwise the caller decides."""
    if diff.old_lines == 0 or diff.percentage_increase > 50:
        return UpdateMode.FULL_REPLACEMENT
    if diff.percentage_increase < 20:
        return UpdateMode.INCREMENTAL
    return UpdateMode.USER_CHOICE


def apply_update(
    old_content: str,
    new_content: str,
    label: str,
    indexer: ChunkIndexer,
    mode: str | UpdateMode | None = None,
    clear: Callable[[], int] | None = None,
    strategy: str | ChunkingStrategy | None = None,
    policy: ChunkingPolicy | None = None,
    today: dt.date | None = None,
    batch_size: int = 20,
    pause_seconds: float = 2.0,
) -> IngestResult:
    """Index a new export, either alongside the old chunks or in place of them.

    An incremental update indexes only the lines appended since *old_content*
    (see :func:`extract_new_content`) and uploads nothing when there are none.

    With no *mode* (or ``user_choice``) the recommendation from
    :func:`recommend_update` is used, falling back to incremental when the
    recommendation itself is ``user_choice``.

    Raises:
        ValueError: If a full replacement is requested without a *clear* callable.
    """
    diff = compare_exports(old_content, new_content)
    logger.info(
        "Export grew from %d to %d lines (%+.2f%%)",
        diff.old_lines,
        diff.new_lines,
        diff.percentage_increase,
    )

    if isinstance(mode, str):
        mode = UpdateMode(mode)
    if mode is None or mode is UpdateMode.USER_CHOICE:
        mode = recommend_update(diff)
        if mode is UpdateMode.USER_CHOICE:
            mode = UpdateMode.INCREMENTAL

    deleted = 0
    if mode is UpdateMode.FULL_REPLACEMENT:
        if clear is None:
            msg = "A full replacement needs a clear() callable for the existing chunks"
            raise ValueError(msg)
        deleted = clear()
        ingest_label = label
        content = new_content
    else:
        stamp = (today or dt.date.today()).isoformat()
        ingest_label = f"{label_stem(label)} (update {stamp})"
        content = extract_new_content(old_content, new_content)
        if content is None:
            logger.info("%s: no new content since the previous export", label)
            return IngestResult(label=ingest_label, chunks=[], mode=mode)

    result = ingest_transcript(
        content,
        ingest_label,
        indexer,
        strategy=strategy,
        policy=policy,
        batch_size=batch_size,
        pause_seconds=pause_seconds,
    )
    result.mode = mode
    result.deleted_files = deleted
    return result
