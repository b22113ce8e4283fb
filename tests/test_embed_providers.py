"""Unit tests for embedding providers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tutorrag.core.exceptions import ProviderError
from tutorrag.core.retry_config import RETRY_CONFIG_NONE


def gemini_response(count: int, dimensions: int = 768) -> SimpleNamespace:
    return SimpleNamespace(
        embeddings=[SimpleNamespace(values=[0.1] * dimensions) for _ in range(count)]
    )


def openai_response(count: int, dimensions: int = 768) -> SimpleNamespace:
    return SimpleNamespace(
        data=[SimpleNamespace(embedding=[0.1] * dimensions) for _ in range(count)]
    )


@pytest.fixture
def gemini_embedder():
    from tutorrag.embed import GeminiEmbeddingProvider

    provider = GeminiEmbeddingProvider(api_key="test-key", retry_config=RETRY_CONFIG_NONE)
    provider._client = MagicMock()
    provider._client.aio.models.embed_content = AsyncMock(
        side_effect=lambda model, contents, config: gemini_response(len(contents))
    )
    return provider


class TestGeminiEmbeddingProvider:
    """Test suite for the Gemini embedder."""

    def test_defaults(self, gemini_embedder):
        assert gemini_embedder.model == "text-embedding-004"
        assert gemini_embedder.dimensions == 768

    async def test_embed_documents(self, gemini_embedder):
        vectors = await gemini_embedder.embed(["a", "b"])

        assert len(vectors) == 2
        assert len(vectors[0]) == 768
        config = gemini_embedder._client.aio.models.embed_content.call_args.kwargs["config"]
        assert config.task_type == "RETRIEVAL_DOCUMENT"
        assert config.output_dimensionality == 768

    async def test_embed_query_task_type(self, gemini_embedder):
        vector = await gemini_embedder.embed_one("question")

        assert len(vector) == 768
        config = gemini_embedder._client.aio.models.embed_content.call_args.kwargs["config"]
        assert config.task_type == "RETRIEVAL_QUERY"

    async def test_empty_input(self, gemini_embedder):
        assert await gemini_embedder.embed([]) == []
        gemini_embedder._client.aio.models.embed_content.assert_not_called()

    async def test_batches_of_one_hundred(self, gemini_embedder):
        vectors = await gemini_embedder.embed([f"t{i}" for i in range(250)])

        assert len(vectors) == 250
        assert gemini_embedder._client.aio.models.embed_content.await_count == 3

    async def test_dimension_mismatch(self, gemini_embedder):
        gemini_embedder._client.aio.models.embed_content = AsyncMock(
            return_value=gemini_response(1, dimensions=512)
        )
        with pytest.raises(ProviderError, match="512-dimensional"):
            await gemini_embedder.embed(["a"])

    async def test_count_mismatch(self, gemini_embedder):
        gemini_embedder._client.aio.models.embed_content = AsyncMock(
            return_value=gemini_response(1)
        )
        with pytest.raises(ProviderError):
            await gemini_embedder.embed(["a", "b"])

    async def test_sdk_error_wrapped(self, gemini_embedder):
        gemini_embedder._client.aio.models.embed_content = AsyncMock(
            side_effect=ConnectionError("reset")
        )
        with pytest.raises(ProviderError) as exc_info:
            await gemini_embedder.embed(["a"])
        assert exc_info.value.provider == "gemini_embedding"
        assert exc_info.value.retryable


class TestOpenAIEmbeddingProvider:
    """Test suite for the OpenAI embedder."""

    async def test_requests_configured_dimensions(self):
        from tutorrag.embed import OpenAIEmbeddingProvider

        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=openai_response(2))
        provider = OpenAIEmbeddingProvider(client, retry_config=RETRY_CONFIG_NONE)

        vectors = await provider.embed(["a", "b"])

        assert len(vectors) == 2
        kwargs = client.embeddings.create.call_args.kwargs
        assert kwargs["dimensions"] == 768
        assert kwargs["model"] == "text-embedding-3-small"

    async def test_dimension_mismatch(self):
        from tutorrag.embed import OpenAIEmbeddingProvider

        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=openai_response(1, dimensions=1536))
        provider = OpenAIEmbeddingProvider(client, retry_config=RETRY_CONFIG_NONE)

        with pytest.raises(ProviderError):
            await provider.embed(["a"])

    def test_instantiation_with_api_key(self):
        from tutorrag.embed import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(api_key="test-key", model="text-embedding-3-large")
        assert provider.model == "text-embedding-3-large"
