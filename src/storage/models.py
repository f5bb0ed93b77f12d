# src/storage/models.py — v2
"""Backup domain models: SnapshotInfo, Snapshot, RestoreReport."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class SnapshotInfo(BaseModel):
    """One backup key found on disk and the collections it covers."""

    timestamp: str
    words: bool = False
    sentences: bool = False

    @property
    def collections(self) -> list[str]:
        return [name for name in ("words", "sentences") if getattr(self, name)]


@dataclass
class Snapshot:
    """A snapshot just taken: files written plus id lookups for reuse."""

    timestamp: str
    files: dict[str, Path] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    lookups: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)


class RestoreReport(BaseModel):
    """Outcome of a rollback."""

    restored_from: str
    safety_snapshot: str
    cleared: dict[str, int] = Field(default_factory=dict)
    restored: dict[str, int] = Field(default_factory=dict)
    missing_files: list[str] = Field(default_factory=list)
