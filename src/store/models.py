# src/store/models.py — v1
"""Store outcome types and index specifications.

Outcomes that callers may safely ignore are explicit values rather than
swallowed exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

WORDS = "words"
SENTENCES = "sentences"
METADATA = "metadata"
AUDIOS = "audios"

DICTIONARY_COLLECTIONS: tuple[str, ...] = (WORDS, SENTENCES)


class DropOutcome(str, Enum):
    """Result of dropping a collection."""

    DROPPED = "dropped"
    ABSENT = "absent"


class IndexOutcome(str, Enum):
    """Result of creating an index."""

    CREATED = "created"
    EXISTS = "exists"


@dataclass(frozen=True)
class IndexSpec:
    """Single-field ascending index."""

    field: str
    unique: bool = False
