# src/pipeline/models.py — v1
"""Upload pipeline models: UploadOptions, EmbeddingTally, UploadReport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from kubishi.embeddings.resolver import ResolutionCounts


@dataclass
class UploadOptions:
    """How one upload run treats existing data.

    ``prior`` maps collection -> id -> document and overrides the lookups
    taken from the pre-upload snapshot when given.
    """

    backup: bool
    clean: bool = False
    prior: dict[str, dict[str, dict[str, Any]]] | None = None
    prior_source: str | None = None


class EmbeddingTally(BaseModel):
    """Where the embeddings of one collection came from."""

    reused: int = 0
    cached: int = 0
    computed: int = 0
    failed: int = 0
    skipped: int = 0
    failed_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_counts(cls, counts: ResolutionCounts) -> EmbeddingTally:
        return cls(
            reused=counts.reused,
            cached=counts.cached,
            computed=counts.computed,
            failed=counts.failed,
            skipped=counts.skipped,
            failed_ids=list(counts.failed_ids),
        )


class UploadReport(BaseModel):
    """Summary of an upload run."""

    database: str
    entries: int
    words_inserted: int = 0
    sentences_inserted: int = 0
    backup: str | None = None
    prior_source: str | None = None
    cleared: dict[str, int] = Field(default_factory=dict)
    dropped: dict[str, str] = Field(default_factory=dict)
    words: EmbeddingTally = Field(default_factory=EmbeddingTally)
    sentences: EmbeddingTally = Field(default_factory=EmbeddingTally)
    duration_seconds: float = 0.0
