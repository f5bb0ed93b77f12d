# src/dictionary/reader.py — v1
"""Read-side queries over the uploaded dictionary.

Every query projects ``_id`` and ``embedding`` away. Browsing and random
picks only consider valid entries: a lexical form plus at least one sense
carrying a gloss or a definition.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Callable

from kubishi.core.clock import utc_now
from kubishi.store.base_document_store import BaseDocumentStore, Document
from kubishi.store.models import AUDIOS, METADATA, SENTENCES, WORDS

logger = logging.getLogger(__name__)

WORD_OF_THE_DAY_KEY = "word_of_the_day"

PUBLIC_PROJECTION: dict[str, int] = {"_id": 0, "embedding": 0}

BROWSE_PROJECTION: dict[str, int] = {
    **PUBLIC_PROJECTION,
    "senses.examples": 0,
    "dateCreated": 0,
    "dateModified": 0,
    "guid": 0,
    "traits": 0,
    "created_at": 0,
    "updated_at": 0,
}

_HAS_MEANING: Document = {
    "senses": {
        "$elemMatch": {
            "$or": [{"gloss": {"$ne": None}}, {"definition": {"$ne": None}}],
        },
    },
}

VALID_ENTRY_FILTER: Document = {
    "lexical_unit": {"$ne": None},
    **_HAS_MEANING,
}

WITH_EXAMPLES_FILTER: Document = {
    "$and": [
        VALID_ENTRY_FILTER,
        {"senses": {"$elemMatch": {"examples.0": {"$exists": True}}}},
    ],
}

_FIRST_LETTER = re.compile(r"[A-Za-z]")


def is_valid_entry(document: Document) -> bool:
    """Python-side twin of VALID_ENTRY_FILTER."""
    if not document.get("lexical_unit"):
        return False
    return any(
        s.get("gloss") or s.get("definition") for s in document.get("senses") or []
    )


def first_letter(document: Document) -> str | None:
    """Upper-cased first ASCII letter of the lexical form, if any."""
    match = _FIRST_LETTER.search(document.get("lexical_unit") or "")
    return match.group(0).upper() if match else None


class DictionaryReader:
    """Lookups, browsing and random picks for the dictionary API."""

    def __init__(
        self,
        store: BaseDocumentStore,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._store = store
        self._today = today or (lambda: utc_now().date())

    async def get_word(self, word_id: str) -> Document | None:
        return await self._store.find_one(WORDS, {"id": word_id}, PUBLIC_PROJECTION)

    async def get_sentence(self, sentence_id: str) -> Document | None:
        return await self._store.find_one(
            SENTENCES, {"id": sentence_id}, PUBLIC_PROJECTION,
        )

    async def sentences_for_word(self, word_id: str) -> list[Document]:
        """Sentences whose ``word_ids`` include ``word_id``."""
        return await self._store.find(
            SENTENCES, {"word_ids": word_id}, PUBLIC_PROJECTION,
        )

    async def audios_for_word(self, word_id: str) -> list[Document]:
        """Audio records whose ``word_ids`` include ``word_id``."""
        return await self._store.find(AUDIOS, {"word_ids": word_id}, {"_id": 0})

    async def audio_for_word(self, word_id: str) -> Document | None:
        audios = await self.audios_for_word(word_id)
        return audios[0] if audios else None

    async def browse_words(
        self, letter: str | None = None, limit: int = 50, skip: int = 0,
    ) -> list[Document]:
        """Valid words sorted case-insensitively, optionally by first letter.

        Args:
            letter: Keep words whose first alphabetic character is this
                letter (case-insensitive). None keeps all.
            limit: Page size.
            skip: Page offset.

        Returns:
            Lightweight word documents (no examples, no timestamps).
        """
        words = await self._valid_words(BROWSE_PROJECTION)
        if letter:
            wanted = letter.upper()
            words = [w for w in words if first_letter(w) == wanted]
        words.sort(key=lambda w: (w.get("lexical_unit") or "").lower())
        return words[skip : skip + limit]

    async def letter_counts(self) -> dict[str, int]:
        """Number of valid words per first letter, alphabetically."""
        counts: dict[str, int] = {}
        for word in await self._valid_words(BROWSE_PROJECTION):
            letter = first_letter(word)
            if letter is not None:
                counts[letter] = counts.get(letter, 0) + 1
        return dict(sorted(counts.items()))

    async def random_word(self) -> Document | None:
        picked = await self._store.sample(
            WORDS, VALID_ENTRY_FILTER, size=1, projection=PUBLIC_PROJECTION,
        )
        return picked[0] if picked else None

    async def random_sentence(self) -> Document | None:
        picked = await self._store.sample(
            SENTENCES, None, size=1, projection=PUBLIC_PROJECTION,
        )
        return picked[0] if picked else None

    async def word_of_the_day(self, today: date | None = None) -> Document | None:
        """Return today's word, choosing and persisting one if needed.

        The choice is stored in the ``metadata`` collection (one upserted
        record) so every caller sees the same word for the whole day.
        Words with examples are preferred.
        """
        day = (today or self._today()).isoformat()
        record = await self._store.find_one(
            METADATA, {"key": WORD_OF_THE_DAY_KEY, "date": day},
        )
        if record is not None:
            word = await self.get_word(record["word_id"])
            if word is not None:
                return word
            logger.info("Stored word of the day %s no longer exists", record["word_id"])

        picked = await self._store.sample(
            WORDS, WITH_EXAMPLES_FILTER, size=1, projection=PUBLIC_PROJECTION,
        )
        word = picked[0] if picked else await self.random_word()
        if word is None:
            return None

        await self._store.update_one(
            METADATA,
            {"key": WORD_OF_THE_DAY_KEY},
            {"date": day, "word_id": word["id"], "updated_at": utc_now()},
            upsert=True,
        )
        logger.info("Word of the day for %s: %s", day, word["id"])
        return word

    async def _valid_words(self, projection: dict[str, int]) -> list[dict[str, Any]]:
        words = await self._store.find(WORDS, VALID_ENTRY_FILTER, projection)
        # The filter lets empty lexical forms through.
        return [w for w in words if is_valid_entry(w)]
