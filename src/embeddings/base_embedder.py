# src/embeddings/base_embedder.py — v2
"""Abstract embeddings interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmbeddingProviderError(RuntimeError):
    """Raised when the provider cannot return embeddings for a request.

    Callers treat this as recoverable for the records involved.
    """


class BaseEmbedder(ABC):
    """Unified interface for embedding providers."""

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts into vectors, in input order."""

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.embed_texts([text])
        return vectors[0]

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Output vector dimensions."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
