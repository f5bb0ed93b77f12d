# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a fake embedding provider that counts calls, an in-memory document
store, a sample LIFT document and temp directories. No network access.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from kubishi.cache.embedding_cache import EmbeddingCache
from kubishi.embeddings.base_embedder import BaseEmbedder, EmbeddingProviderError
from kubishi.embeddings.resolver import EmbeddingResolver
from kubishi.storage.backup import BackupManager
from kubishi.store.memory_store import MemoryDocumentStore


# === FAKES ===


class FakeEmbedder(BaseEmbedder):
    """Deterministic embedder: vector derived from the sha256 of the text.

    Components are multiples of 1/256 so they survive float32 packing
    exactly. Texts listed in ``fail_on`` make any batch containing them fail.
    """

    def __init__(self, dims: int = 8, fail_on: set[str] | None = None) -> None:
        self._dims = dims
        self.fail_on = set(fail_on or ())
        self.calls: list[list[str]] = []

    @staticmethod
    def vector_for(text: str, dims: int = 8) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 256 for b in digest[:dims]]

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def embedded_texts(self) -> list[str]:
        return [t for batch in self.calls for t in batch]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        bad = [t for t in texts if t in self.fail_on]
        if bad:
            raise EmbeddingProviderError(f"provider rejected {bad[0]!r}")
        return [self.vector_for(t, self._dims) for t in texts]

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-embedding"


class FixedClock:
    """Callable clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


# === FIXTURES: Sample data ===


SAMPLE_LIFT = b"""<?xml version="1.0" encoding="UTF-8"?>
<lift version="0.13" producer="SIL.FLEx">
  <header><ranges/></header>
  <entry id="pakwa_1" dateCreated="2023-05-01T10:00:00Z" dateModified="2024-01-01T00:00:00Z" guid="g-1">
    <lexical-unit><form lang="pao"><text>pakwa</text></form></lexical-unit>
    <trait name="morph-type" value="stem"/>
    <sense id="s-1">
      <grammatical-info value="Noun"/>
      <gloss lang="en"><text>fish</text></gloss>
      <definition><form lang="en"><text>a fish of the lake</text></form></definition>
      <example source="nn">
        <form lang="pao"><text>Pakwa tei.</text></form>
        <translation type="Free translation"><form lang="en"><text>The fish is there.</text></form></translation>
        <note type="reference"><form lang="en"><text>told by nn</text></form></note>
      </example>
    </sense>
  </entry>
  <entry id="tei_2" dateCreated="2023-05-02T10:00:00Z" dateModified="2024-02-01T00:00:00Z" guid="g-2">
    <lexical-unit><form lang="pao"><text>tei</text></form></lexical-unit>
    <sense id="s-2">
      <grammatical-info value="Adverb"/>
      <gloss lang="en"><text>there</text></gloss>
      <example source="recorded 2019">
        <form lang="pao"><text>Pakwa tei.</text></form>
        <translation type="Free translation"><form lang="en"><text>The fish is over there.</text></form></translation>
      </example>
      <example>
        <form lang="pao"><text>Tei ubi.</text></form>
        <translation type="Free translation"><form lang="en"><text>The house is there.</text></form></translation>
      </example>
    </sense>
  </entry>
  <entry id="ubi_3" guid="g-3">
    <lexical-unit><form lang="pao"><text>ubi</text></form></lexical-unit>
    <sense id="s-3">
      <definition><form lang="en"><text>house</text></form></definition>
    </sense>
  </entry>
</lift>
"""


@pytest.fixture
def sample_lift_bytes() -> bytes:
    return SAMPLE_LIFT


@pytest.fixture
def sample_lift_file(tmp_path: Path) -> Path:
    path = tmp_path / "dictionary.lift"
    path.write_bytes(SAMPLE_LIFT)
    return path


# === FIXTURES: Components ===


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore(database="kubishi_test", seed=7)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "embedding_cache"


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    return tmp_path / "backups"


@pytest.fixture
def embedding_cache(cache_dir: Path, fake_embedder: FakeEmbedder) -> EmbeddingCache:
    return EmbeddingCache(cache_dir, fake_embedder, batch_size=2)


@pytest.fixture
def resolver(embedding_cache: EmbeddingCache) -> EmbeddingResolver:
    return EmbeddingResolver(embedding_cache, progress_interval=2)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def backups(memory_store: MemoryDocumentStore, backup_dir: Path, clock: FixedClock) -> BackupManager:
    return BackupManager(memory_store, backup_dir, clock=clock)


@pytest.fixture
def make_embedder():
    """Factory for extra FakeEmbedder instances (e.g. with ``fail_on``)."""
    return FakeEmbedder
