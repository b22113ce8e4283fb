"""OpenAI embedding provider implementation."""

from __future__ import annotations

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError  # type: ignore

from tutorrag.core.retry_config import RetryConfig
from tutorrag.embed._base import EMBEDDING_DIMENSIONS, EmbedderMixin


class OpenAIEmbeddingProvider(EmbedderMixin):
    """Embedding provider using OpenAI's embedding models.

    ``text-embedding-3-*`` models are asked for ``dimensions`` components so
    they fit the same 768-dimensional namespaces as the Gemini default.
    """

    _provider_name: str = "openai_embedding"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        RateLimitError,
        APITimeoutError,
        APIError,
        ConnectionError,
    )

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        dimensions: int = EMBEDDING_DIMENSIONS,
        retry_config: RetryConfig | None = None,
    ) -> None:
        super().__init__(model=model, dimensions=dimensions, retry_config=retry_config)
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def _embed_batch(self, texts: list[str], for_query: bool) -> list[list[float]]:
        response = await self.client.embeddings.create(
            model=self.model,
            input=texts,
            dimensions=self.dimensions,
        )
        return [item.embedding for item in response.data]
