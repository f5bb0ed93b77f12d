# src/pipeline/upload.py — v1
"""Upload orchestrator: LIFT file -> words and sentences collections.

Sequence of one run:
  1. parse, extract and format sources (``prepare``)
  2. optional snapshot of the current collections (reuse lookups)
  3. drop both collections, or clear their documents when ``clean``
  4. resolve word embeddings, stamp timestamps, insert words in chunks
  5. derive sentences, resolve their embeddings, insert sentences
  6. ensure standard indexes

Per-record embedding failures never stop the run; everything else raises.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping

from kubishi.core.clock import truncate_ms, utc_now
from kubishi.core.models import Entry
from kubishi.embeddings.resolver import (
    EmbeddingResolver,
    ResolutionCounts,
    ResolvedEmbedding,
)
from kubishi.extraction.entry_extractor import extract_entries
from kubishi.extraction.lift_parser import parse_lift
from kubishi.extraction.sentence_builder import build_sentences
from kubishi.extraction.source_formatter import SourceFormatter, format_entry_sources
from kubishi.logging.context import set_phase
from kubishi.pipeline.models import EmbeddingTally, UploadOptions, UploadReport
from kubishi.storage.backup import BackupManager
from kubishi.store.base_document_store import BaseDocumentStore, Document
from kubishi.store.indexes import ensure_standard_indexes
from kubishi.store.models import DICTIONARY_COLLECTIONS, SENTENCES, WORDS

logger = logging.getLogger(__name__)


class DuplicateEntryError(ValueError):
    """Raised when two entries of one upload share an id."""


class UploadPipeline:
    """Replace the dictionary collections with the contents of a LIFT file.

    Usage:
        pipeline = UploadPipeline(store, resolver, backups)
        entries = pipeline.prepare(Path("dictionary.lift"))
        report = await pipeline.run(entries, UploadOptions(backup=True))
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        resolver: EmbeddingResolver,
        backups: BackupManager,
        formatter: SourceFormatter | None = None,
        insert_batch_size: int = 500,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._backups = backups
        self._formatter = formatter or SourceFormatter()
        self._insert_batch_size = max(1, insert_batch_size)
        self._clock = clock or utc_now

    def prepare(self, path: Path) -> list[Entry]:
        """Parse a LIFT file into entries with formatted example sources.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            LiftParseError: If the document is not well-formed LIFT.
        """
        set_phase("parse")
        entries = extract_entries(parse_lift(path))
        logger.info("Extracted %d entries from %s", len(entries), path)
        return format_entry_sources(entries, self._formatter)

    async def run(self, entries: list[Entry], options: UploadOptions) -> UploadReport:
        """Execute the destructive upload.

        Args:
            entries: Prepared entries (see ``prepare``).
            options: Backup/clean flags and optional prior lookups.

        Returns:
            UploadReport with inserted counts and embedding origins.

        Raises:
            DuplicateEntryError: Before any mutation, if entry ids collide.
        """
        started = time.monotonic()
        entries = self._validate(entries)
        report = UploadReport(
            database=self._store.database_name,
            entries=len(entries),
            prior_source=options.prior_source,
        )

        prior = options.prior
        if options.backup:
            set_phase("backup")
            snapshot = await self._backups.snapshot()
            report.backup = snapshot.timestamp
            if prior is None:
                prior = snapshot.lookups
                report.prior_source = f"backup {snapshot.timestamp}"
        prior = prior or {}

        set_phase("clear")
        for collection in DICTIONARY_COLLECTIONS:
            if options.clean:
                report.cleared[collection] = await self._store.delete_many(collection)
                logger.info("Cleared %d documents from %s", report.cleared[collection], collection)
            else:
                outcome = await self._store.drop(collection)
                report.dropped[collection] = outcome.value
                logger.info("Drop %s: %s", collection, outcome.value)

        set_phase("words")
        resolved_words = await self._resolver.resolve_words(entries, prior.get(WORDS))
        word_docs = [
            self._stamp(entry.model_dump(by_alias=True), resolved, prior.get(WORDS))
            for entry, resolved in zip(entries, resolved_words)
        ]
        report.words_inserted = await self._insert(WORDS, word_docs)
        report.words = _tally(resolved_words)

        set_phase("sentences")
        # Sources were formatted in prepare().
        sentences = build_sentences(entries)
        resolved_sentences = await self._resolver.resolve_sentences(
            sentences, prior.get(SENTENCES),
        )
        sentence_docs = [
            self._stamp(record.model_dump(), resolved, prior.get(SENTENCES))
            for record, resolved in zip(sentences, resolved_sentences)
        ]
        report.sentences_inserted = await self._insert(SENTENCES, sentence_docs)
        report.sentences = _tally(resolved_sentences)

        set_phase("indexes")
        outcomes = await ensure_standard_indexes(self._store)
        for collection, fields in outcomes.items():
            logger.debug(
                "Indexes on %s: %s", collection,
                ", ".join(f"{f}={o.value}" for f, o in fields.items()),
            )

        set_phase(None)
        report.duration_seconds = round(time.monotonic() - started, 3)
        logger.info(
            "Upload complete: %d words, %d sentences in %.1fs",
            report.words_inserted, report.sentences_inserted, report.duration_seconds,
        )
        return report

    # --- Internals ---

    def _validate(self, entries: list[Entry]) -> list[Entry]:
        kept = [e for e in entries if e.id]
        if len(kept) != len(entries):
            logger.warning("Skipping %d entries without an id", len(entries) - len(kept))
        duplicates = sorted(i for i, n in Counter(e.id for e in kept).items() if n > 1)
        if duplicates:
            raise DuplicateEntryError(
                f"Duplicate entry ids: {', '.join(duplicates[:10])}"
                + (" ..." if len(duplicates) > 10 else "")
            )
        return kept

    def _stamp(
        self,
        document: Document,
        resolved: ResolvedEmbedding,
        prior: Mapping[str, Mapping[str, Any]] | None,
    ) -> Document:
        now = self._clock()
        previous = (prior or {}).get(document["id"])
        created = previous.get("created_at") if previous else None
        if resolved.embedding is not None:
            document["embedding"] = resolved.embedding
        document["created_at"] = truncate_ms(created) if isinstance(created, datetime) else now
        document["updated_at"] = now
        return document

    async def _insert(self, collection: str, documents: list[Document]) -> int:
        inserted = 0
        size = self._insert_batch_size
        for start in range(0, len(documents), size):
            inserted += await self._store.insert_many(collection, documents[start : start + size])
            logger.info("Inserted %d/%d %s", inserted, len(documents), collection)
        return inserted


def _tally(resolved: list[ResolvedEmbedding]) -> EmbeddingTally:
    counts = ResolutionCounts()
    for item in resolved:
        counts.add(item)
    return EmbeddingTally.from_counts(counts)
