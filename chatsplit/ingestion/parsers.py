"""WhatsApp export line parser.

Two export layouts are recognized at the start of a line:

- Android: ``DD/MM/YYYY, HH:MM - Name: text``
- iOS: ``[DD/MM/YYYY, HH:MM:SS] Name: text``

Anything else is a continuation of the previous message. Parsing never
raises: a line that looks dated but is not a real calendar date degrades to
a continuation too.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from chatsplit.ingestion.models import Message

_ANDROID_RE = re.compile(
    r"^(\d{2})/(\d{2})/(\d{4}),\s*(\d{1,2}:\d{2}(?::\d{2})?)\s*[-\u2013]\s*(.*)$"
)
_IOS_RE = re.compile(r"^\[(\d{2})/(\d{2})/(\d{4}),\s*(\d{1,2}:\d{2}(?::\d{2})?)\]\s*(.*)$")
# Author names never contain a colon; system notices ("Alice added Bob") have none.
_AUTHOR_RE = re.compile(r"^([^:]+?):(?:\s|$)(.*)$")

# iOS exports prefix some lines with a left-to-right mark; the first line may carry a BOM.
_INVISIBLE_PREFIX = "\u200e\ufeff"


def split_lines(content: str) -> list[str]:
    """Split transcript text into lines, keeping blank lines in place."""
    if not content:
        return []
    return content.split("\n")


def parse_line(line: str, line_number: int = 0) -> Message:
    """Classify a single line as a new dated message or a continuation."""
    candidate = line.lstrip(_INVISIBLE_PREFIX).rstrip("\r")
    match = _ANDROID_RE.match(candidate) or _IOS_RE.match(candidate)
    if not match:
        return Message(raw_line=line, line_number=line_number)

    day, month, year, time, rest = match.groups()
    try:
        date = dt.date(int(year), int(month), int(day))
    except ValueError:
        return Message(raw_line=line, line_number=line_number)

    participant: str | None = None
    text = rest
    author_match = _AUTHOR_RE.match(rest)
    if author_match:
        participant = author_match.group(1).strip()
        text = author_match.group(2)

    return Message(
        raw_line=line,
        line_number=line_number,
        date=date,
        time=time,
        participant=participant,
        text=text,
    )


def iter_messages(lines: Iterable[str]) -> Iterator[Message]:
    """Lazily classify lines in transcript order."""
    for number, line in enumerate(lines):
        yield parse_line(line, number)


def parse_messages(content: str) -> list[Message]:
    """Parse a whole transcript into classified messages (one per line)."""
    return list(iter_messages(split_lines(content)))


def read_transcript(path: str | Path) -> str:
    """Read an export from disk as UTF-8."""
    return Path(path).read_text(encoding="utf-8")
