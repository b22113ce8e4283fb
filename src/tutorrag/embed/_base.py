"""Base embedder mixin for embedding providers."""

from __future__ import annotations

from typing import Any

from tutorrag.core.exceptions import ProviderError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)

EMBEDDING_DIMENSIONS = 768


class EmbedderMixin:
    """Mixin providing batching, retry and dimension checks for embedders.

    Subclasses must set ``_provider_name`` and ``_retryable_exceptions`` and
    implement ``_embed_batch(texts, for_query)``.
    """

    _provider_name: str = "embedder"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )
    _max_batch_size: int = 100

    def __init__(
        self,
        *,
        model: str,
        dimensions: int = EMBEDDING_DIMENSIONS,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name, model=model)

    @property
    def model(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_retry_decorator(self) -> Any:
        """Get retry decorator configured for provider API calls."""
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    async def _wrap_error(self, e: Exception, operation: str) -> ProviderError:
        if isinstance(e, ProviderError):
            return e
        return ProviderError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )

    async def _embed_batch(self, texts: list[str], for_query: bool) -> list[list[float]]:
        raise NotImplementedError

    def _check_dimensions(self, vectors: list[list[float]], expected_count: int) -> None:
        if len(vectors) != expected_count:
            raise ProviderError(
                message=(
                    f"{self._provider_name} returned {len(vectors)} vectors "
                    f"for {expected_count} texts"
                ),
                provider=self._provider_name,
            )
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise ProviderError(
                    message=(
                        f"{self._provider_name} returned a {len(vector)}-dimensional vector, "
                        f"expected {self._dimensions}"
                    ),
                    provider=self._provider_name,
                )

    async def _embed(self, texts: list[str], for_query: bool) -> list[list[float]]:
        operation_logger = self._logger.bind(texts_count=len(texts), for_query=for_query)
        operation_logger.debug("embedding_started")

        retry_decorator = self._get_retry_decorator()

        @retry_decorator
        async def _embed_with_retry(batch: list[str]) -> list[list[float]]:
            return await self._embed_batch(batch, for_query)

        vectors: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._max_batch_size):
                batch = texts[start : start + self._max_batch_size]
                vectors.extend(await _embed_with_retry(batch))
        except Exception as e:
            operation_logger.error(
                "embedding_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise await self._wrap_error(e, "embed") from e

        self._check_dimensions(vectors, len(texts))
        operation_logger.info("embedding_completed", embeddings_count=len(vectors))
        return vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts, preserving order."""
        if not texts:
            return []
        return await self._embed(texts, for_query=False)

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single search query."""
        vectors = await self._embed([text], for_query=True)
        return vectors[0]
