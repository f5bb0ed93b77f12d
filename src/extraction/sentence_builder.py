# src/extraction/sentence_builder.py — v1
"""Derive deduplicated sentence records from entry examples."""

from __future__ import annotations

import logging
from typing import Iterable

from kubishi.cache.fingerprint import content_fingerprint
from kubishi.core.models import Entry, SentenceRecord
from kubishi.extraction.source_formatter import SourceFormatter

logger = logging.getLogger(__name__)


def build_sentences(
    entries: Iterable[Entry], formatter: SourceFormatter | None = None,
) -> list[SentenceRecord]:
    """Collect one SentenceRecord per distinct example text.

    The first example seen for a text supplies translation and source.
    Pass ``formatter`` only when the entries were not formatted already.
    Every contributing entry id is listed once, in first-seen order.
    """
    def fmt(value: str | None) -> str:
        if formatter is None:
            return value or ""
        return formatter.format(value)

    by_text: dict[str, SentenceRecord] = {}

    for entry in entries:
        for sense in entry.senses:
            for example in sense.examples:
                if not example.form:
                    continue
                record = by_text.get(example.form)
                if record is None:
                    record = SentenceRecord(
                        id=content_fingerprint(example.form),
                        text=example.form,
                        translation=example.translation or "",
                        source=fmt(example.source),
                    )
                    by_text[example.form] = record
                if entry.id is not None and entry.id not in record.word_ids:
                    record.word_ids.append(entry.id)

    logger.info("Derived %d distinct sentences", len(by_text))
    return list(by_text.values())
