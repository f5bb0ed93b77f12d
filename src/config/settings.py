# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Environment
variable names match the field names (MONGO_URI, MONGO_DB, OPENAI_API_KEY...).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kubishi.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Document store ===
    document_store: Literal["mongodb", "memory"] = "mongodb"
    mongo_uri: str = ""
    mongo_db: str = ""

    # === Embeddings ===
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100
    openai_api_key: str = ""

    # === Cache and backups ===
    cache_root: Path = Path("~/.kubishi/embedding_cache")
    backup_dir: Path = Path("~/.kubishi/backups")

    # === Ingestion ===
    source_abbreviations: dict[str, str] = Field(
        default_factory=lambda: {"nn": "Norma Nelson"}
    )
    insert_batch_size: int = 500
    progress_interval: int = 100

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator(
        "embedding_dimensions",
        "embedding_batch_size",
        "insert_batch_size",
        "progress_interval",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("log_rotation")
    @classmethod
    def validate_rotation(cls, v: str) -> str:  # noqa: N805
        parse_size(v)
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.embedding_model.startswith("text-embedding-ada") and self.embedding_dimensions != 1536:
            errors.append("text-embedding-ada-002 only produces 1536 dimensions")

        for token, expansion in self.source_abbreviations.items():
            if not token.strip() or not expansion.strip():
                errors.append("SOURCE_ABBREVIATIONS entries must be non-empty")
                break

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def backup_path(self) -> Path:
        return self.backup_dir.expanduser()

    @property
    def cache_path(self) -> Path:
        return self.cache_root.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
