# src/store/store_factory.py — v1
"""Factory: instantiate the document store from configuration."""

from __future__ import annotations

import logging

from kubishi.config.settings import ConfigurationError, Settings
from kubishi.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)


def create_document_store(
    settings: Settings, database: str | None = None,
) -> BaseDocumentStore:
    """Create a store for ``database`` (defaults to MONGO_DB).

    Raises:
        ConfigurationError: If the selected backend is missing settings.
    """
    db_name = database or settings.mongo_db

    if settings.document_store == "memory":
        from kubishi.store.memory_store import MemoryDocumentStore

        logger.debug("Creating in-memory document store %s", db_name or "memory")
        return MemoryDocumentStore(database=db_name or "memory")

    if not settings.mongo_uri:
        raise ConfigurationError("DOCUMENT_STORE=mongodb requires MONGO_URI")
    if not db_name:
        raise ConfigurationError("No database selected: pass --db or set MONGO_DB")

    from kubishi.store.mongo_store import MongoDocumentStore

    logger.debug("Creating MongoDB document store %s", db_name)
    return MongoDocumentStore(uri=settings.mongo_uri, database=db_name)
