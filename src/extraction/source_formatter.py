# src/extraction/source_formatter.py — v1
"""Expand contributor abbreviations in example source and note fields."""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from kubishi.core.models import Entry

DEFAULT_ABBREVIATIONS: dict[str, str] = {
    "nn": "Norma Nelson",
}


class SourceFormatter:
    """Replace whole-word abbreviation tokens with their expansions."""

    def __init__(self, abbreviations: Mapping[str, str] | None = None) -> None:
        self._abbreviations = dict(
            DEFAULT_ABBREVIATIONS if abbreviations is None else abbreviations
        )
        self._pattern: re.Pattern[str] | None = None
        if self._abbreviations:
            # Longest first so overlapping tokens resolve to the longer one.
            tokens = sorted(self._abbreviations, key=len, reverse=True)
            self._pattern = re.compile(
                r"\b(" + "|".join(re.escape(t) for t in tokens) + r")\b"
            )

    @property
    def abbreviations(self) -> dict[str, str]:
        return dict(self._abbreviations)

    def format(self, text: str | None) -> str:
        """Return ``text`` with abbreviations expanded; None becomes ""."""
        if not text:
            return ""
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda m: self._abbreviations[m.group(1)], text)


_default_formatter = SourceFormatter()


def format_source(text: str | None) -> str:
    """Format with the default abbreviation table."""
    return _default_formatter.format(text)


def format_entry_sources(
    entries: Iterable[Entry], formatter: SourceFormatter | None = None,
) -> list[Entry]:
    """Return copies of ``entries`` with example source and note formatted.

    Absent source/note values stay None; form, translation, gloss and
    definition are never touched.
    """
    fmt = formatter or _default_formatter
    formatted: list[Entry] = []
    for entry in entries:
        senses = []
        for sense in entry.senses:
            examples = [
                ex.model_copy(update={
                    "source": fmt.format(ex.source) if ex.source else ex.source,
                    "note": fmt.format(ex.note) if ex.note else ex.note,
                })
                for ex in sense.examples
            ]
            senses.append(sense.model_copy(update={"examples": examples}))
        formatted.append(entry.model_copy(update={"senses": senses}))
    return formatted
