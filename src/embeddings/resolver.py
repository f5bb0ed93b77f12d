# src/embeddings/resolver.py — v1
"""Embedding reuse resolver.

Decides per record whether a prior snapshot's embedding can be carried
forward or whether the text must go through the cache (and, on a miss, the
provider):

  - words: same id, stored embedding present, identical ``dateModified``
  - sentences: same id with a stored embedding (the id is the text hash)

Provider failures are recorded per record and never stop the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from bson.binary import Binary

from kubishi.cache.embedding_cache import EmbeddingCache
from kubishi.core.models import Entry, SentenceRecord
from kubishi.embeddings.packing import has_embedding, pack_embedding

logger = logging.getLogger(__name__)

Origin = Literal["reused", "cached", "computed", "failed", "skipped"]


@dataclass
class ResolvedEmbedding:
    """Embedding decision for one record."""

    record_id: str | None
    origin: Origin
    embedding: Binary | None = None
    error: str | None = None


@dataclass
class ResolutionCounts:
    """Tally of resolution origins for one collection."""

    reused: int = 0
    cached: int = 0
    computed: int = 0
    failed: int = 0
    skipped: int = 0
    failed_ids: list[str] = field(default_factory=list)

    def add(self, resolved: ResolvedEmbedding) -> None:
        setattr(self, resolved.origin, getattr(self, resolved.origin) + 1)
        if resolved.origin == "failed" and resolved.record_id is not None:
            self.failed_ids.append(resolved.record_id)

    @property
    def total(self) -> int:
        return self.reused + self.cached + self.computed + self.failed + self.skipped


def prior_date_modified(prior: Mapping[str, Any]) -> str | None:
    """``dateModified`` of a stored word; older snapshots used ``date_modified``."""
    if prior.get("dateModified") is not None:
        return prior["dateModified"]
    return prior.get("date_modified")


def can_reuse_word(entry: Entry, prior: Mapping[str, Any] | None) -> bool:
    """True when the prior word document still matches ``entry``.

    A missing ``date_modified`` on either side never proves anything.
    """
    if prior is None or not has_embedding(prior):
        return False
    if entry.date_modified is None:
        return False
    return prior_date_modified(prior) == entry.date_modified


def can_reuse_sentence(record: SentenceRecord, prior: Mapping[str, Any] | None) -> bool:
    """True when a prior sentence with the same content id has an embedding."""
    return prior is not None and has_embedding(prior)


class EmbeddingResolver:
    """Attach embeddings to words and sentences with minimal provider calls."""

    def __init__(self, cache: EmbeddingCache, progress_interval: int = 100) -> None:
        self._cache = cache
        self._progress_interval = max(1, progress_interval)

    async def resolve_words(
        self,
        entries: list[Entry],
        prior: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> list[ResolvedEmbedding]:
        """Resolve one embedding per entry, in input order."""
        prior = prior or {}
        decisions: list[tuple[str | None, str, Binary | None]] = []
        for entry in entries:
            previous = prior.get(entry.id) if entry.id is not None else None
            if can_reuse_word(entry, previous):
                decisions.append((entry.id, "", previous["embedding"]))  # type: ignore[index]
            else:
                decisions.append((entry.id, entry.embedding_text(), None))
        return await self._resolve("words", decisions)

    async def resolve_sentences(
        self,
        records: list[SentenceRecord],
        prior: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> list[ResolvedEmbedding]:
        """Resolve one embedding per sentence record, in input order."""
        prior = prior or {}
        decisions: list[tuple[str | None, str, Binary | None]] = []
        for record in records:
            previous = prior.get(record.id)
            if can_reuse_sentence(record, previous):
                decisions.append((record.id, "", previous["embedding"]))  # type: ignore[index]
            else:
                decisions.append((record.id, record.embedding_text(), None))
        return await self._resolve("sentences", decisions)

    async def _resolve(
        self,
        category: str,
        decisions: list[tuple[str | None, str, Binary | None]],
    ) -> list[ResolvedEmbedding]:
        results: list[ResolvedEmbedding | None] = [None] * len(decisions)
        counts = ResolutionCounts()
        pending: list[int] = []

        for index, (record_id, text, reused) in enumerate(decisions):
            if reused is not None:
                results[index] = ResolvedEmbedding(record_id, "reused", reused)
            elif not text.strip():
                logger.warning(
                    "No text to embed for %s %s; storing without embedding",
                    category, record_id,
                )
                results[index] = ResolvedEmbedding(record_id, "skipped")
            else:
                pending.append(index)
                continue
            counts.add(results[index])  # type: ignore[arg-type]

        logger.info(
            "%s: %d embeddings reused from prior snapshot, %d to resolve",
            category.capitalize(), counts.reused, len(pending),
        )

        for start in range(0, len(pending), self._progress_interval):
            window = pending[start : start + self._progress_interval]
            texts = [decisions[i][1] for i in window]
            resolutions = await self._cache.get_or_compute_many(texts, category)
            for index, resolution in zip(window, resolutions):
                record_id = decisions[index][0]
                if resolution.ok:
                    resolved = ResolvedEmbedding(
                        record_id,
                        "cached" if resolution.from_cache else "computed",
                        pack_embedding(resolution.embedding),  # type: ignore[arg-type]
                    )
                else:
                    logger.warning(
                        "Embedding failed for %s %s: %s",
                        category, record_id, resolution.error,
                    )
                    resolved = ResolvedEmbedding(
                        record_id, "failed", error=resolution.error,
                    )
                results[index] = resolved
                counts.add(resolved)
            logger.info(
                "%s: resolved %d/%d (reused=%d cached=%d computed=%d failed=%d)",
                category.capitalize(), counts.total, len(decisions),
                counts.reused, counts.cached, counts.computed, counts.failed,
            )

        return [r for r in results if r is not None]
