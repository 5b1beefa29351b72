"""Keyword tables used to tag chunks with topics and build thematic chunks.

Both tables are plain data (label -> regex) so new themes never need new code.
Patterns are matched case-insensitively anywhere in a line.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache

# Topics attached to temporal chunks while they accumulate.
TOPIC_KEYWORDS: dict[str, str] = {
    "model": r"modèle|model",
    "swiss": r"suisse|swiss",
    "institutions": r"epfl|ethz",
    "podcast": r"podcast",
    "NotebookLM": r"notebooklm",
}

# Themes that get their own topic-centric chunks.
DEFAULT_THEMES: dict[str, str] = {
    "NotebookLM": r"notebooklm|notebook lm",
    "VideoGeneration": r"vidéo|video",
    "AITools": r"chatgpt|claude|midjourney|dall.?e|stable.?diffusion|gpt.?4|openai",
    "Podcasts": r"podcast|audio|\bson\b|enregistrement",
    "Education": r"enseignant|étudiant|université|formation|pédagogie",
}

CompiledThemes = tuple[tuple[str, re.Pattern[str]], ...]


@lru_cache(maxsize=32)
def _compile(items: tuple[tuple[str, str], ...]) -> CompiledThemes:
    return tuple((label, re.compile(pattern, re.IGNORECASE)) for label, pattern in items)


def compile_themes(themes: Mapping[str, str]) -> CompiledThemes:
    """Compile a label -> pattern table, preserving table order.

    Raises:
        ValueError: If a pattern is not a valid regular expression.
    """
    try:
        return _compile(tuple(themes.items()))
    except re.error as exc:
        msg = f"Invalid theme pattern: {exc}"
        raise ValueError(msg) from exc


def match_topics(line: str, themes: CompiledThemes) -> list[str]:
    """Return the labels whose pattern occurs in *line*, in table order."""
    return [label for label, pattern in themes if pattern.search(line)]
