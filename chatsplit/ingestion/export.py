"""Serialize chunks to text files with a deterministic, sortable naming scheme."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from chatsplit.ingestion.models import Chunk

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^\w.-]+")
_DATE_RE = re.compile(r"^(?:(\d{2})/)?(\d{2})/(\d{4})$")


def _sortable_date(value: str) -> str:
    """``DD/MM/YYYY`` -> ``YYYY-MM-DD`` and ``MM/YYYY`` -> ``YYYY-MM``."""
    match = _DATE_RE.match(value)
    if not match:
        return value
    day, month, year = match.groups()
    return f"{year}-{month}-{day}" if day else f"{year}-{month}"


def _slug(value: str) -> str:
    return _UNSAFE_RE.sub("_", value).strip("_") or "chunk"


def chunk_key(chunk: Chunk) -> str:
    """Period, theme or date range identifying a chunk in its filename."""
    if chunk.period:
        return _sortable_date(chunk.period)
    if chunk.theme:
        return chunk.theme
    meta = chunk.metadata
    if meta and meta.date_start:
        start = _sortable_date(meta.date_start)
        end = _sortable_date(meta.date_end or meta.date_start)
        return start if start == end else f"{start}_to_{end}"
    return "undated"


def chunk_filename(chunk: Chunk) -> str:
    """``<strategy>_<period-or-theme>_<index>.txt`` with a zero-padded 1-based index."""
    return f"{chunk.strategy}_{_slug(chunk_key(chunk))}_{chunk.chunk_index + 1:04d}.txt"


def render_chunk(chunk: Chunk) -> str:
    """Chunk text prefixed with a readable metadata header."""
    header = ["=== CHUNK METADATA ===", f"Title: {chunk.title}"]
    if chunk.theme:
        header.append(f"Theme: {chunk.theme}")
    meta = chunk.metadata
    if meta is not None:
        header.extend(
            [
                f"Period: {meta.date_start or '?'} -> {meta.date_end or '?'}",
                f"Participants: {', '.join(meta.participants)}",
                f"Topics: {', '.join(meta.topics)}",
                f"Tokens: {meta.token_count}",
                f"Messages: {meta.message_count}",
            ]
        )
    return "\n".join([*header, "", "=== CONTENT ===", chunk.content])


def export_chunks(chunks: list[Chunk], out_dir: str | Path) -> list[Path]:
    """Write each chunk to *out_dir* (created if missing) and return the paths."""
    directory = Path(out_dir)
    directory.mkdir(parents=True, exist_ok=True)

    paths: list[Path] = []
    for chunk in chunks:
        path = directory / chunk_filename(chunk)
        path.write_text(render_chunk(chunk), encoding="utf-8")
        paths.append(path)

    logger.info("Exported %d chunks to %s", len(paths), directory)
    return paths


def load_chunk_files(out_dir: str | Path) -> list[tuple[str, str]]:
    """Read exported chunk files back as ``(filename, text)`` pairs, sorted by name."""
    directory = Path(out_dir)
    if not directory.is_dir():
        msg = f"Chunk directory not found: {directory}"
        raise FileNotFoundError(msg)
    return [
        (path.name, path.read_text(encoding="utf-8"))
        for path in sorted(directory.glob("*.txt"))
    ]
