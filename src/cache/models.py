# src/cache/models.py — v2
"""Embedding cache models: EmbeddingCacheEntry, CacheLookup, CacheResolution."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class EmbeddingCacheEntry(BaseModel):
    """One cached vector, stored as ``<category>/<sha256(text)>.json``."""

    text: str
    embedding: list[float]
    model: str = ""
    created_at: datetime | None = None


class CacheLookup(BaseModel):
    """Outcome of reading one cache file.

    ``corrupt`` means a file existed but could not be used; callers treat it
    exactly like ``miss``.
    """

    status: Literal["hit", "miss", "corrupt"]
    embedding: list[float] | None = None

    @property
    def is_hit(self) -> bool:
        return self.status == "hit"


class CacheResolution(BaseModel):
    """Result of resolving one text through the cache and provider."""

    text: str
    embedding: list[float] | None = None
    from_cache: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.embedding is not None
