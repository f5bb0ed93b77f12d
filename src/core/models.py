# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

Entries, senses, examples and derived sentence records.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# === DICTIONARY ENTRIES ===


class Example(BaseModel):
    """One example sentence attached to a sense."""

    model_config = ConfigDict(frozen=True)

    source: str | None = None
    form: str | None = None
    translation: str | None = None
    note: str | None = None


class Sense(BaseModel):
    """One sense of a dictionary entry."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    grammatical_info: str | None = None
    gloss: str | None = None
    definition: str | None = None
    examples: list[Example] = Field(default_factory=list)


class Entry(BaseModel):
    """Flat record for one LIFT ``entry`` element.

    ``date_modified`` is the change-detection key used to decide whether a
    previously stored embedding is still valid. Stored documents keep the
    LIFT attribute names ``dateCreated`` and ``dateModified``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = None
    date_created: str | None = Field(default=None, alias="dateCreated")
    date_modified: str | None = Field(default=None, alias="dateModified")
    guid: str | None = None
    lexical_unit: str | None = None
    traits: dict[str, str | None] = Field(default_factory=dict)
    senses: list[Sense] = Field(default_factory=list)

    def embedding_text(self) -> str:
        """Lexical form, glosses, then definitions, joined by spaces."""
        parts = [self.lexical_unit]
        parts.extend(s.gloss for s in self.senses)
        parts.extend(s.definition for s in self.senses)
        return " ".join(p for p in parts if p)


# === SENTENCES ===


class SentenceRecord(BaseModel):
    """A distinct example sentence across the whole corpus.

    ``id`` is the content fingerprint of ``text``; ``word_ids`` lists the
    contributing entries in first-seen order without duplicates.
    """

    id: str
    text: str
    translation: str = ""
    word_ids: list[str] = Field(default_factory=list)
    source: str = ""

    def embedding_text(self) -> str:
        return f"{self.text} {self.translation}"
