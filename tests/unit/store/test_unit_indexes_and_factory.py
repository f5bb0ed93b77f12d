# tests/unit/store/test_unit_indexes_and_factory.py — v1
"""Tests for store/indexes.py and store/store_factory.py."""

from __future__ import annotations

import pytest

from kubishi.config.settings import ConfigurationError, Settings
from kubishi.store.indexes import STANDARD_INDEXES, ensure_standard_indexes
from kubishi.store.memory_store import MemoryDocumentStore
from kubishi.store.models import IndexOutcome
from kubishi.store.mongo_store import MongoDocumentStore
from kubishi.store.store_factory import create_document_store


class TestEnsureStandardIndexes:
    @pytest.mark.asyncio
    async def test_creates_all(self, memory_store):
        outcomes = await ensure_standard_indexes(memory_store)
        assert outcomes["words"] == {
            "id": IndexOutcome.CREATED,
            "guid": IndexOutcome.CREATED,
            "lexical_unit": IndexOutcome.CREATED,
        }
        assert memory_store.index_fields("sentences") == {"id": True, "text": False, "word_ids": False}

    @pytest.mark.asyncio
    async def test_idempotent(self, memory_store):
        await ensure_standard_indexes(memory_store)
        outcomes = await ensure_standard_indexes(memory_store)
        assert all(
            o == IndexOutcome.EXISTS for fields in outcomes.values() for o in fields.values()
        )

    @pytest.mark.asyncio
    async def test_subset(self, memory_store):
        outcomes = await ensure_standard_indexes(memory_store, ("words",))
        assert list(outcomes) == ["words"]

    def test_unique_id_everywhere(self):
        for specs in STANDARD_INDEXES.values():
            assert any(s.field == "id" and s.unique for s in specs)


class TestCreateDocumentStore:
    def test_memory(self):
        store = create_document_store(Settings(_env_file=None, document_store="memory"), "dev")
        assert isinstance(store, MemoryDocumentStore)
        assert store.database_name == "dev"

    def test_mongo_requires_uri(self):
        settings = Settings(_env_file=None, document_store="mongodb", mongo_uri="", mongo_db="x")
        with pytest.raises(ConfigurationError, match="MONGO_URI"):
            create_document_store(settings)

    def test_mongo_requires_database(self):
        settings = Settings(
            _env_file=None, document_store="mongodb", mongo_uri="mongodb://localhost:1", mongo_db="",
        )
        with pytest.raises(ConfigurationError, match="database"):
            create_document_store(settings)

    @pytest.mark.asyncio
    async def test_mongo_database_override(self):
        settings = Settings(
            _env_file=None, document_store="mongodb", mongo_uri="mongodb://localhost:1", mongo_db="main",
        )
        store = create_document_store(settings, "staging")
        assert isinstance(store, MongoDocumentStore)
        assert store.database_name == "staging"
        await store.close()
