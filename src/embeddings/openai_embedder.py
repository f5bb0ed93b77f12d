# src/embeddings/openai_embedder.py — v2
"""OpenAI embedding adapter.

Uses the openai SDK for embedding generation.
Models: text-embedding-3-small (default, 1536 dims), text-embedding-3-large.
"""

from __future__ import annotations

import logging

import openai

from kubishi.embeddings.base_embedder import BaseEmbedder, EmbeddingProviderError
from kubishi.embeddings.retry import RetryConfig, RetryExhausted, with_retry

logger = logging.getLogger(__name__)


class OpenAIEmbedder(BaseEmbedder):
    """Embeddings via OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._retry_configs = retry_configs
        self.__client: openai.AsyncOpenAI | None = None

    @property
    def _client(self) -> openai.AsyncOpenAI:
        if self.__client is None:
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or None)
        return self.__client

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in one request, retrying transient failures.

        Raises:
            EmbeddingProviderError: If the request cannot be completed.
        """
        if not texts:
            return []
        options: dict = {"input": texts, "model": self._model}
        # Only the text-embedding-3 family accepts a dimensions parameter.
        if self._model.startswith("text-embedding-3"):
            options["dimensions"] = self._dimensions
        try:
            response = await with_retry(
                self._client.embeddings.create,
                operation=f"openai embeddings ({len(texts)} texts)",
                retry_configs=self._retry_configs,
                **options,
            )
        except RetryExhausted as e:
            raise EmbeddingProviderError(str(e)) from e

        data = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in data]
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise EmbeddingProviderError(
                    f"Expected {self._dimensions} dimensions, got {len(vector)}"
                )
        return vectors

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
