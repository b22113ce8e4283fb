"""Google Gemini embedding provider."""

from __future__ import annotations

from typing import Any

from tutorrag.core.retry_config import RetryConfig
from tutorrag.embed._base import EMBEDDING_DIMENSIONS, EmbedderMixin


class GeminiEmbeddingProvider(EmbedderMixin):
    """Embedding provider using Gemini ``text-embedding-004``.

    Documents and queries are embedded with the matching retrieval task type.
    """

    _provider_name: str = "gemini_embedding"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "text-embedding-004",
        dimensions: int = EMBEDDING_DIMENSIONS,
        retry_config: RetryConfig | None = None,
    ) -> None:
        import httpx
        from google import genai
        from google.genai import errors as genai_errors

        self._retryable_exceptions = (
            genai_errors.ServerError,
            httpx.ConnectError,
            httpx.NetworkError,
            httpx.TimeoutException,
            ConnectionError,
        )
        super().__init__(model=model, dimensions=dimensions, retry_config=retry_config)
        self._client = genai.Client(api_key=api_key) if api_key else genai.Client()

    async def _embed_batch(self, texts: list[str], for_query: bool) -> list[list[float]]:
        from google.genai import types

        config = types.EmbedContentConfig(
            task_type="RETRIEVAL_QUERY" if for_query else "RETRIEVAL_DOCUMENT",
            output_dimensionality=self.dimensions,
        )
        response: Any = await self._client.aio.models.embed_content(
            model=self.model,
            contents=texts,
            config=config,
        )
        return [list(embedding.values or []) for embedding in response.embeddings or []]
