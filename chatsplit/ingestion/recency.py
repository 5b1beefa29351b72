"""Recency filter: keep only the part of an export from a cutoff year onwards."""

from __future__ import annotations

from chatsplit.ingestion.chunking import label_stem, split_by_period
from chatsplit.ingestion.models import Chunk
from chatsplit.ingestion.parsers import iter_messages, split_lines
from chatsplit.pipeline_config import ChunkingStrategy

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def extract_recent(content: str, cutoff_year: int = 2025) -> str:
    """Return every line from the first message dated *cutoff_year* or later.

    Inclusion is monotonic: exports can interleave out-of-order blocks, so
    once a recent message is seen, later lines dated before the cutoff are
    kept as well. Returns ``""`` if no message reaches the cutoff.
    """
    kept: list[str] = []
    found = False
    for message in iter_messages(split_lines(content)):
        if not found and message.date is not None and message.date.year >= cutoff_year:
            found = True
        if found:
            kept.append(message.raw_line)
    return "\n".join(kept)


def month_name(period: str | None) -> str:
    """``"07/2025"`` -> ``"July 2025"``; unknown or missing periods are labelled as such."""
    if not period:
        return "Unknown period"
    month, _, year = period.partition("/")
    if month.isdigit() and 1 <= int(month) <= 12:
        return f"{MONTH_NAMES[int(month) - 1]} {year}"
    return period


def split_recent(
    content: str,
    label: str,
    cutoff_year: int = 2025,
    max_lines: int = 2000,
    min_period_lines: int = 100,
) -> list[Chunk]:
    """Extract recent lines and split them by month into smaller, precise chunks.

    A month change only closes a chunk holding more than *min_period_lines*
    lines, so quiet months merge into the following one.
    """
    stem = label_stem(label)

    def title_for(period: str | None, part: int | None) -> str:
        suffix = f" part {part}" if part is not None else ""
        return f"{stem} - {month_name(period)}{suffix} (recent)"

    return split_by_period(
        extract_recent(content, cutoff_year),
        stem,
        max_lines=max_lines,
        min_period_lines=min_period_lines,
        strategy=ChunkingStrategy.RECENT,
        title_for=title_for,
    )
