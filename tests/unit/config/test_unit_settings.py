# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from kubishi.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_store_and_embeddings(self):
        s = Settings(_env_file=None)
        assert s.document_store == "mongodb"
        assert s.embedding_provider == "openai"
        assert s.embedding_model == "text-embedding-3-small"
        assert s.embedding_dimensions == 1536
        assert s.embedding_batch_size == 100

    def test_paths_expanded(self):
        s = Settings(_env_file=None)
        assert s.backup_path == Path("~/.kubishi/backups").expanduser()
        assert s.cache_path == Path("~/.kubishi/embedding_cache").expanduser()

    def test_default_abbreviations(self):
        assert Settings(_env_file=None).source_abbreviations == {"nn": "Norma Nelson"}

    def test_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "text"
        assert s.log_file is None


class TestSettingsValidation:
    @pytest.mark.parametrize("field", [
        "embedding_dimensions", "embedding_batch_size", "insert_batch_size", "progress_interval",
    ])
    def test_positive_sizes(self, field):
        with pytest.raises(ValidationError, match="must be > 0"):
            Settings(_env_file=None, **{field: 0})

    def test_ada_dimensions(self):
        with pytest.raises(ConfigurationError, match="1536"):
            Settings(_env_file=None, embedding_model="text-embedding-ada-002", embedding_dimensions=512)

    def test_empty_abbreviation(self):
        with pytest.raises(ConfigurationError, match="SOURCE_ABBREVIATIONS"):
            Settings(_env_file=None, source_abbreviations={"nn": " "})

    def test_bad_rotation(self):
        with pytest.raises(ValidationError, match="Invalid size"):
            Settings(_env_file=None, log_rotation="huge")

    def test_unknown_store(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, document_store="postgres")


class TestEnvironment:
    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("MONGO_DB", "dictionary")
        monkeypatch.setenv("SOURCE_ABBREVIATIONS", '{"nn": "Norma Nelson", "jd": "Jane Doe"}')
        s = Settings(_env_file=None)
        assert s.mongo_uri == "mongodb://db:27017"
        assert s.mongo_db == "dictionary"
        assert s.source_abbreviations["jd"] == "Jane Doe"

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MONGO_DB", raising=False)
        env = tmp_path / ".env"
        env.write_text("MONGO_DB=from_file\nINSERT_BATCH_SIZE=50\n", encoding="utf-8")
        s = Settings(_env_file=env)
        assert s.mongo_db == "from_file"
        assert s.insert_batch_size == 50

    def test_load_settings_overrides(self, monkeypatch):
        monkeypatch.chdir("/")
        s = load_settings(document_store="memory", mongo_db="x")
        assert s.document_store == "memory"
        assert s.mongo_db == "x"
