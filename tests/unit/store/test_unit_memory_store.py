# tests/unit/store/test_unit_memory_store.py — v1
"""Tests for store/memory_store.py — Mongo-like semantics in memory."""

from __future__ import annotations

import pytest

from kubishi.store.base_document_store import StoreError
from kubishi.store.memory_store import MemoryDocumentStore
from kubishi.store.models import DropOutcome, IndexOutcome


@pytest.fixture
def store():
    return MemoryDocumentStore(database="unit", seed=1)


class TestWrites:
    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, store):
        doc = {"id": "a"}
        assert await store.insert_many("words", [doc]) == 1
        assert "_id" in doc
        found = await store.find_one("words", {"id": "a"})
        assert found["_id"] == doc["_id"]

    @pytest.mark.asyncio
    async def test_insert_empty(self, store):
        assert await store.insert_many("words", []) == 0
        assert store.collection_names() == []

    @pytest.mark.asyncio
    async def test_stored_copy_is_isolated(self, store):
        doc = {"id": "a", "senses": [{"gloss": "x"}]}
        await store.insert_many("words", [doc])
        doc["senses"][0]["gloss"] = "changed"
        found = await store.find_one("words", {"id": "a"})
        assert found["senses"][0]["gloss"] == "x"

    @pytest.mark.asyncio
    async def test_unique_index_enforced(self, store):
        await store.create_index("words", "id", unique=True)
        await store.insert_many("words", [{"id": "a"}])
        with pytest.raises(StoreError, match="Duplicate"):
            await store.insert_many("words", [{"id": "a"}])

    @pytest.mark.asyncio
    async def test_update_one_upsert(self, store):
        await store.update_one("metadata", {"key": "k"}, {"value": 1}, upsert=True)
        await store.update_one("metadata", {"key": "k"}, {"value": 2}, upsert=True)
        docs = await store.find("metadata")
        assert len(docs) == 1
        assert docs[0]["value"] == 2

    @pytest.mark.asyncio
    async def test_update_without_upsert_is_noop(self, store):
        await store.update_one("metadata", {"key": "k"}, {"value": 1})
        assert await store.count("metadata") == 0

    @pytest.mark.asyncio
    async def test_delete_many_keeps_indexes(self, store):
        await store.create_index("words", "id", unique=True)
        await store.insert_many("words", [{"id": "a"}, {"id": "b"}])
        assert await store.delete_many("words") == 2
        assert await store.count("words") == 0
        assert store.index_fields("words") == {"id": True}

    @pytest.mark.asyncio
    async def test_delete_many_with_filter(self, store):
        await store.insert_many("words", [{"id": "a"}, {"id": "b"}])
        assert await store.delete_many("words", {"id": "a"}) == 1
        assert [d["id"] for d in await store.find("words")] == ["b"]

    @pytest.mark.asyncio
    async def test_drop(self, store):
        await store.insert_many("words", [{"id": "a"}])
        await store.create_index("words", "id")
        assert await store.drop("words") == DropOutcome.DROPPED
        assert store.index_fields("words") == {}
        assert await store.drop("words") == DropOutcome.ABSENT


class TestIndexes:
    @pytest.mark.asyncio
    async def test_create_then_exists(self, store):
        assert await store.create_index("words", "guid") == IndexOutcome.CREATED
        assert await store.create_index("words", "guid") == IndexOutcome.EXISTS

    @pytest.mark.asyncio
    async def test_unique_on_duplicates_fails(self, store):
        await store.insert_many("words", [{"id": "a"}, {"id": "a"}])
        with pytest.raises(StoreError, match="duplicates"):
            await store.create_index("words", "id", unique=True)


class TestReads:
    @staticmethod
    async def _seed(store):
        await store.insert_many("words", [
            {"id": "a", "lexical_unit": "pakwa", "senses": [{"gloss": "fish", "examples": [{"form": "x"}]}]},
            {"id": "b", "lexical_unit": None, "senses": [{"gloss": None, "definition": "d"}]},
            {"id": "c", "lexical_unit": "ubi", "senses": []},
        ])
        return store

    @pytest.mark.asyncio
    async def test_equality_and_ne(self, store):
        seeded = await self._seed(store)
        assert [d["id"] for d in await seeded.find("words", {"lexical_unit": {"$ne": None}})] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_exists_and_in(self, store):
        seeded = await self._seed(store)
        found = await seeded.find("words", {"id": {"$in": ["a", "c", "z"]}})
        assert [d["id"] for d in found] == ["a", "c"]
        assert await seeded.find("words", {"missing": {"$exists": True}}) == []

    @pytest.mark.asyncio
    async def test_elem_match_with_or(self, store):
        seeded = await self._seed(store)
        query = {"senses": {"$elemMatch": {"$or": [{"gloss": {"$ne": None}}, {"definition": {"$ne": None}}]}}}
        assert [d["id"] for d in await seeded.find("words", query)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_and(self, store):
        seeded = await self._seed(store)
        query = {"$and": [{"lexical_unit": {"$ne": None}}, {"senses": {"$elemMatch": {"examples.0": {"$exists": True}}}}]}
        assert [d["id"] for d in await seeded.find("words", query)] == ["a"]

    @pytest.mark.asyncio
    async def test_array_membership(self, store):
        await store.insert_many("sentences", [{"id": "s", "word_ids": ["a", "b"]}])
        assert await store.find_one("sentences", {"word_ids": "b"}) is not None
        assert await store.find_one("sentences", {"word_ids": "z"}) is None

    @pytest.mark.asyncio
    async def test_exclusion_projection(self, store):
        seeded = await self._seed(store)
        doc = await seeded.find_one("words", {"id": "a"}, {"_id": 0, "senses.examples": 0})
        assert "_id" not in doc
        assert doc["senses"] == [{"gloss": "fish"}]

    @pytest.mark.asyncio
    async def test_inclusion_projection_rejected(self, store):
        seeded = await self._seed(store)
        with pytest.raises(StoreError):
            await seeded.find("words", None, {"id": 1})

    @pytest.mark.asyncio
    async def test_unsupported_operator(self, store):
        seeded = await self._seed(store)
        with pytest.raises(StoreError, match="Unsupported"):
            await seeded.find("words", {"id": {"$regex": "a"}})

    @pytest.mark.asyncio
    async def test_sample(self, store):
        seeded = await self._seed(store)
        picked = await seeded.sample("words", {"lexical_unit": {"$ne": None}}, size=1, projection={"_id": 0})
        assert len(picked) == 1
        assert picked[0]["id"] in {"a", "c"}
        assert await seeded.sample("nothing", size=3) == []

    @pytest.mark.asyncio
    async def test_count(self, store):
        seeded = await self._seed(store)
        assert await seeded.count("words") == 3
        assert await seeded.count("sentences") == 0
