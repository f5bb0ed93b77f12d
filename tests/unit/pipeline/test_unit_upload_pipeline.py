# tests/unit/pipeline/test_unit_upload_pipeline.py — v1
"""Tests for pipeline/upload.py — orchestration over the memory store."""

from __future__ import annotations

import pytest

from kubishi.core.models import Entry, Sense
from kubishi.embeddings.packing import unpack_embedding
from kubishi.pipeline.models import UploadOptions
from kubishi.pipeline.upload import DuplicateEntryError, UploadPipeline
from kubishi.store.models import IndexOutcome


@pytest.fixture
def pipeline(memory_store, resolver, backups, clock):
    return UploadPipeline(memory_store, resolver, backups, insert_batch_size=2, clock=clock)


class TestPrepare:
    def test_parse_extract_format(self, pipeline, sample_lift_file):
        entries = pipeline.prepare(sample_lift_file)
        assert [e.id for e in entries] == ["pakwa_1", "tei_2", "ubi_3"]
        example = entries[0].senses[0].examples[0]
        assert example.source == "Norma Nelson"
        assert example.note == "told by Norma Nelson"

    def test_missing_file(self, pipeline, tmp_path):
        with pytest.raises(FileNotFoundError):
            pipeline.prepare(tmp_path / "missing.lift")


class TestRun:
    @pytest.mark.asyncio
    async def test_first_upload(self, pipeline, memory_store, sample_lift_file, fake_embedder):
        entries = pipeline.prepare(sample_lift_file)
        report = await pipeline.run(entries, UploadOptions(backup=True))

        assert report.words_inserted == 3
        assert report.sentences_inserted == 2
        assert report.words.computed == 3
        assert report.sentences.computed == 2
        assert report.words.reused == 0
        assert report.backup == "2025-03-14_09-26-53"
        assert report.dropped == {"words": "absent", "sentences": "absent"}

        pakwa = await memory_store.find_one("words", {"id": "pakwa_1"})
        assert unpack_embedding(pakwa["embedding"]) == fake_embedder.vector_for("pakwa fish a fish of the lake")
        assert pakwa["created_at"] == pakwa["updated_at"]
        assert pakwa["created_at"].tzinfo is not None
        assert pakwa["dateModified"] == "2024-01-01T00:00:00Z"
        assert pakwa["dateCreated"] == "2023-05-01T10:00:00Z"
        assert "date_modified" not in pakwa

        shared = await memory_store.find_one("sentences", {"text": "Pakwa tei."})
        assert shared["word_ids"] == ["pakwa_1", "tei_2"]
        assert shared["source"] == "Norma Nelson"
        assert shared["translation"] == "The fish is there."
        assert memory_store.index_fields("words") == {"id": True, "guid": False, "lexical_unit": False}

    @pytest.mark.asyncio
    async def test_rerun_unchanged_makes_no_provider_calls(
        self, pipeline, sample_lift_file, fake_embedder, cache_dir, memory_store,
    ):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=True))
        first = await memory_store.find_one("words", {"id": "pakwa_1"})
        # Empty the disk cache so only snapshot reuse can avoid the provider.
        for path in cache_dir.rglob("*.json"):
            path.unlink()
        fake_embedder.calls.clear()

        report = await pipeline.run(entries, UploadOptions(backup=True))

        # ubi_3 has no dateModified and goes through the provider again.
        assert fake_embedder.embedded_texts == ["ubi house"]
        assert report.words.reused == 2
        assert report.sentences.reused == 2
        second = await memory_store.find_one("words", {"id": "pakwa_1"})
        assert second["embedding"] == first["embedding"]
        assert second["created_at"] == first["created_at"]
        assert second["updated_at"] > first["updated_at"]

    @pytest.mark.asyncio
    async def test_changed_date_modified_recomputes(self, pipeline, sample_lift_file, fake_embedder):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=True))
        fake_embedder.calls.clear()

        changed = [
            e.model_copy(update={
                "date_modified": "2025-01-01T00:00:00Z",
                "senses": [Sense(gloss="salmon")],
            }) if e.id == "pakwa_1" else e
            for e in entries
        ]
        report = await pipeline.run(changed, UploadOptions(backup=True))

        assert "pakwa salmon" in fake_embedder.embedded_texts
        assert report.words.computed == 1
        assert report.words.reused == 1

    @pytest.mark.asyncio
    async def test_without_backup_no_reuse_but_cache(self, pipeline, sample_lift_file, fake_embedder, backup_dir):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=False))
        fake_embedder.calls.clear()

        report = await pipeline.run(entries, UploadOptions(backup=False))

        assert report.backup is None
        assert report.words.cached == 3
        assert fake_embedder.call_count == 0
        assert not backup_dir.exists() or list(backup_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_explicit_prior_takes_precedence(self, pipeline, sample_lift_file, fake_embedder, memory_store):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=False))
        stored = {d["id"]: d for d in await memory_store.find("words")}

        report = await pipeline.run(
            entries,
            UploadOptions(backup=True, prior={"words": stored}, prior_source="database other"),
        )
        assert report.prior_source == "database other"
        assert report.words.reused == 2
        assert report.sentences.reused == 0

    @pytest.mark.asyncio
    async def test_clean_keeps_indexes(self, pipeline, sample_lift_file, memory_store):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=False))

        report = await pipeline.run(entries, UploadOptions(backup=False, clean=True))

        assert report.cleared == {"words": 3, "sentences": 2}
        assert report.dropped == {}
        assert await memory_store.count("words") == 3

    @pytest.mark.asyncio
    async def test_provider_failure_stores_without_embedding(
        self, memory_store, backups, cache_dir, make_embedder, clock,
    ):
        from kubishi.cache.embedding_cache import EmbeddingCache
        from kubishi.embeddings.resolver import EmbeddingResolver

        embedder = make_embedder(fail_on={"tei there"})
        pipeline = UploadPipeline(
            memory_store, EmbeddingResolver(EmbeddingCache(cache_dir, embedder)), backups, clock=clock,
        )
        entries = [
            Entry(id="a", lexical_unit="pakwa", senses=[Sense(gloss="fish")]),
            Entry(id="b", lexical_unit="tei", senses=[Sense(gloss="there")]),
        ]

        report = await pipeline.run(entries, UploadOptions(backup=False))

        assert report.words_inserted == 2
        assert report.words.failed_ids == ["b"]
        failed = await memory_store.find_one("words", {"id": "b"})
        assert "embedding" not in failed

    @pytest.mark.asyncio
    async def test_duplicate_ids_rejected_before_mutation(self, pipeline, memory_store, backup_dir):
        await memory_store.insert_many("words", [{"id": "keep"}])
        entries = [Entry(id="a"), Entry(id="a")]

        with pytest.raises(DuplicateEntryError, match="a"):
            await pipeline.run(entries, UploadOptions(backup=True))

        assert await memory_store.count("words") == 1
        assert not backup_dir.exists()

    @pytest.mark.asyncio
    async def test_entries_without_id_skipped(self, pipeline, memory_store):
        report = await pipeline.run([Entry(lexical_unit="x"), Entry(id="a")], UploadOptions(backup=False))
        assert report.entries == 1
        assert await memory_store.count("words") == 1

    @pytest.mark.asyncio
    async def test_indexes_reported_existing_on_clean(self, pipeline, sample_lift_file, memory_store):
        entries = pipeline.prepare(sample_lift_file)
        await pipeline.run(entries, UploadOptions(backup=False))
        await pipeline.run(entries, UploadOptions(backup=False, clean=True))
        assert await memory_store.create_index("words", "id", unique=True) == IndexOutcome.EXISTS
