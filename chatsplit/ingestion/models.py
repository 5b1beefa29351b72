"""Data models for the ingestion pipeline."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class Message:
    """One classified transcript line.

    Lines that start a new WhatsApp message carry ``date``/``time``/``participant``;
    continuation lines (wrapped bodies, headers) only carry ``raw_line``.
    """

    raw_line: str
    line_number: int = 0
    date: dt.date | None = None
    time: str | None = None
    participant: str | None = None
    text: str | None = None

    @property
    def has_timestamp(self) -> bool:
        return self.date is not None

    @property
    def date_label(self) -> str | None:
        """Date formatted the way exports write it (``DD/MM/YYYY``)."""
        return self.date.strftime("%d/%m/%Y") if self.date else None


@dataclass
class ChunkMetadata:
    """Metadata accumulated while a chunk is built."""

    date_start: str | None = None
    date_end: str | None = None
    participants: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)
    token_count: int = 0
    message_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass
class Chunk:
    """A chunk ready for export or indexing."""

    lines: list[str]
    title: str
    strategy: str
    chunk_index: int = 0
    metadata: ChunkMetadata | None = None
    theme: str | None = None
    period: str | None = None

    @property
    def content(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass
class UploadOutcome:
    """Result of indexing a single chunk."""

    chunk_title: str
    chunk_index: int
    success: bool
    file_id: str | None = None
    error: str | None = None


@dataclass
class UploadReport:
    """Aggregate of per-chunk upload outcomes (partial success is normal)."""

    outcomes: list[UploadOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    @property
    def file_ids(self) -> list[str]:
        return [o.file_id for o in self.outcomes if o.success and o.file_id]

    @property
    def errors(self) -> list[str]:
        return [f"{o.chunk_title}: {o.error}" for o in self.outcomes if not o.success]
