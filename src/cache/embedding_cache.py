# src/cache/embedding_cache.py — v1
"""Content-addressed on-disk embedding cache.

Layout: ``{cache_root}/{category}/{sha256(text)}.json`` holding
``{"text": ..., "embedding": [...]}``. The cache is a pure memoizer: nothing
is ever evicted, and staleness is decided by the caller before asking.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from kubishi.cache.fingerprint import cache_key
from kubishi.cache.models import CacheLookup, CacheResolution, EmbeddingCacheEntry
from kubishi.embeddings.base_embedder import BaseEmbedder, EmbeddingProviderError

logger = logging.getLogger(__name__)

CATEGORIES = ("words", "sentences")


class EmbeddingCache:
    """Memoize provider calls per (category, text)."""

    def __init__(
        self,
        cache_root: Path,
        embedder: BaseEmbedder,
        batch_size: int = 100,
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._embedder = embedder
        self._batch_size = max(1, batch_size)
        self.hits = 0
        self.misses = 0
        self.provider_calls = 0

    @property
    def root(self) -> Path:
        return self._root

    # --- Single entries ---

    def entry_path(self, text: str, category: str) -> Path:
        """Return the cache file path for ``text`` under ``category``."""
        if category not in CATEGORIES:
            raise ValueError(
                f"Unknown cache category {category!r}; expected one of {CATEGORIES}"
            )
        return self._root / category / f"{cache_key(text)}.json"

    def lookup(self, text: str, category: str) -> CacheLookup:
        """Read one entry.

        Unreadable files and vectors from another model or of another length
        are reported as ``corrupt``.
        """
        path = self.entry_path(text, category)
        if not path.exists():
            return CacheLookup(status="miss")
        try:
            entry = EmbeddingCacheEntry.model_validate_json(
                path.read_text(encoding="utf-8")
            )
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Unreadable cache entry %s: %s", path.name, e)
            return CacheLookup(status="corrupt")
        if not entry.embedding:
            logger.warning("Empty embedding in cache entry %s", path.name)
            return CacheLookup(status="corrupt")
        if len(entry.embedding) != self._embedder.dimensions:
            logger.warning(
                "Cache entry %s has %d dimensions, expected %d",
                path.name, len(entry.embedding), self._embedder.dimensions,
            )
            return CacheLookup(status="corrupt")
        if entry.model and entry.model != self._embedder.model_name:
            logger.warning(
                "Cache entry %s was written by model %s, not %s",
                path.name, entry.model, self._embedder.model_name,
            )
            return CacheLookup(status="corrupt")
        return CacheLookup(status="hit", embedding=entry.embedding)

    def put(self, text: str, category: str, embedding: list[float]) -> Path:
        """Write (or overwrite) one entry."""
        path = self.entry_path(text, category)
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = EmbeddingCacheEntry(
            text=text,
            embedding=embedding,
            model=self._embedder.model_name,
            created_at=datetime.now(timezone.utc),
        )
        path.write_text(
            json.dumps(entry.model_dump(mode="json")), encoding="utf-8"
        )
        return path

    async def get_or_compute(self, text: str, category: str) -> list[float]:
        """Return the cached vector for ``text`` or compute and store it.

        Raises:
            EmbeddingProviderError: If the provider call fails.
        """
        lookup = self.lookup(text, category)
        if lookup.is_hit:
            self.hits += 1
            return lookup.embedding  # type: ignore[return-value]

        self.misses += 1
        self.provider_calls += 1
        vectors = await self._embedder.embed_texts([text])
        if len(vectors) != 1:
            raise EmbeddingProviderError(
                f"Provider returned {len(vectors)} vectors for 1 text"
            )
        self.put(text, category, vectors[0])
        return vectors[0]

    # --- Batches ---

    async def get_or_compute_many(
        self, texts: list[str], category: str,
    ) -> list[CacheResolution]:
        """Resolve many texts, embedding the misses in sequential chunks.

        Never raises for provider failures: a failing chunk is retried text by
        text and texts that still fail come back with ``error`` set.
        """
        results: list[CacheResolution | None] = [None] * len(texts)
        pending: dict[str, list[int]] = {}

        for index, text in enumerate(texts):
            lookup = self.lookup(text, category)
            if lookup.is_hit:
                self.hits += 1
                results[index] = CacheResolution(
                    text=text, embedding=lookup.embedding, from_cache=True,
                )
            else:
                pending.setdefault(text, []).append(index)

        unique = list(pending)
        self.misses += len(unique)
        for start in range(0, len(unique), self._batch_size):
            chunk = unique[start : start + self._batch_size]
            for text, resolution in (await self._compute_chunk(chunk, category)).items():
                for index in pending[text]:
                    results[index] = resolution

        return [r for r in results if r is not None]

    async def _compute_chunk(
        self, chunk: list[str], category: str,
    ) -> dict[str, CacheResolution]:
        try:
            self.provider_calls += 1
            vectors = await self._embedder.embed_texts(chunk)
            if len(vectors) != len(chunk):
                raise EmbeddingProviderError(
                    f"Provider returned {len(vectors)} vectors for {len(chunk)} texts"
                )
        except EmbeddingProviderError as e:
            if len(chunk) == 1:
                return {chunk[0]: CacheResolution(text=chunk[0], error=str(e))}
            logger.warning(
                "Batch of %d %s failed (%s), retrying one by one",
                len(chunk), category, e,
            )
            resolved: dict[str, CacheResolution] = {}
            for text in chunk:
                resolved.update(await self._compute_chunk([text], category))
            return resolved

        resolved = {}
        for text, vector in zip(chunk, vectors):
            self.put(text, category, vector)
            resolved[text] = CacheResolution(text=text, embedding=vector)
        return resolved
