# src/store/indexes.py — v1
"""Standard indexes on the dictionary collections."""

from __future__ import annotations

import logging

from kubishi.store.base_document_store import BaseDocumentStore
from kubishi.store.models import SENTENCES, WORDS, IndexOutcome, IndexSpec

logger = logging.getLogger(__name__)

STANDARD_INDEXES: dict[str, tuple[IndexSpec, ...]] = {
    WORDS: (
        IndexSpec("id", unique=True),
        IndexSpec("guid"),
        IndexSpec("lexical_unit"),
    ),
    SENTENCES: (
        IndexSpec("id", unique=True),
        IndexSpec("text"),
        IndexSpec("word_ids"),
    ),
}


async def ensure_standard_indexes(
    store: BaseDocumentStore,
    collections: tuple[str, ...] | None = None,
) -> dict[str, dict[str, IndexOutcome]]:
    """Create the standard indexes; existing ones are reported, not errors.

    Raises:
        StoreError: For any index failure other than "already exists".
    """
    outcomes: dict[str, dict[str, IndexOutcome]] = {}
    for collection in collections or tuple(STANDARD_INDEXES):
        outcomes[collection] = {}
        for spec in STANDARD_INDEXES[collection]:
            outcome = await store.create_index(collection, spec.field, unique=spec.unique)
            outcomes[collection][spec.field] = outcome
            logger.debug("Index %s.%s: %s", collection, spec.field, outcome.value)
    return outcomes
