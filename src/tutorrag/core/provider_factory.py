"""Construction of providers from ``TutorRAGConfig``."""

from __future__ import annotations

from tutorrag.core.config import TutorRAGConfig
from tutorrag.core.exceptions import ConfigurationError
from tutorrag.core.protocols import (
    EmbeddingProvider,
    GenerationProvider,
    STTProvider,
    VectorIndexProvider,
)
from tutorrag.core.retry_config import RetryConfig


def create_retry_config(config: TutorRAGConfig) -> RetryConfig:
    return RetryConfig(
        max_attempts=config.retry_max_attempts,
        min_wait_seconds=config.retry_min_wait_seconds,
        max_wait_seconds=config.retry_max_wait_seconds,
        exponential_multiplier=config.retry_exponential_multiplier,
    )


def _require(value: str, env_name: str, provider: str) -> str:
    if not value:
        raise ConfigurationError(
            f"{provider} requires an API key but none is set. "
            f"Please set the TUTORRAG_{env_name} environment variable."
        )
    return value


def create_video_source(config: TutorRAGConfig, retry_config: RetryConfig):
    """YouTube source acting as both metadata source and audio acquirer."""
    from tutorrag.source.youtube import YouTubeChannelSource

    return YouTubeChannelSource(
        retry_config=retry_config,
        audio_format=config.audio_format,
        cookie_file=config.youtube_cookie_file,
        po_token=config.youtube_po_token,
        player_clients=config.youtube_player_clients,
    )


def create_stt_provider(config: TutorRAGConfig, retry_config: RetryConfig) -> STTProvider:
    if config.stt_provider == "whisper_cli":
        from tutorrag.transcribe.whisper_cli import WhisperCLITranscriber

        return WhisperCLITranscriber(model=config.get_stt_model(), retry_config=retry_config)

    from tutorrag.transcribe.openai import OpenAITranscriber

    return OpenAITranscriber(
        api_key=_require(config.openai_api_key, "OPENAI_API_KEY", "openai_stt"),
        model=config.get_stt_model(),
        retry_config=retry_config,
    )


def create_embedding_provider(
    config: TutorRAGConfig, retry_config: RetryConfig
) -> EmbeddingProvider:
    if config.embedding_provider == "openai":
        from tutorrag.embed.openai import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(
            api_key=_require(config.openai_api_key, "OPENAI_API_KEY", "openai_embedding"),
            model=config.get_embedding_model(),
            dimensions=config.embedding_dimensions,
            retry_config=retry_config,
        )

    from tutorrag.embed.gemini import GeminiEmbeddingProvider

    return GeminiEmbeddingProvider(
        api_key=_require(config.google_api_key, "GOOGLE_API_KEY", "gemini_embedding"),
        model=config.get_embedding_model(),
        dimensions=config.embedding_dimensions,
        retry_config=retry_config,
    )


def create_vector_index_provider(
    config: TutorRAGConfig, retry_config: RetryConfig
) -> VectorIndexProvider:
    common = {
        "namespace_prefix": config.namespace_prefix,
        "dimensions": config.embedding_dimensions,
        "batch_size": config.upsert_batch_size,
        "ready_timeout_seconds": config.namespace_ready_timeout_seconds,
        "poll_interval_seconds": config.namespace_poll_interval_seconds,
        "retry_config": retry_config,
    }
    if config.vector_store_provider == "memory":
        from tutorrag.store.memory import InMemoryVectorIndex

        return InMemoryVectorIndex(**common)
    if config.vector_store_provider == "chromadb":
        try:
            from tutorrag.store.chromadb import ChromaDBVectorIndex
        except ImportError as e:
            raise ImportError(
                "chromadb vector index requires 'chromadb'. Install with: pip install chromadb"
            ) from e
        return ChromaDBVectorIndex(persist_directory=config.chromadb_persist_directory, **common)

    try:
        from tutorrag.store.pinecone import PineconeVectorIndex
    except ImportError as e:
        raise ImportError(
            "pinecone vector index requires 'pinecone'. Install with: pip install pinecone"
        ) from e
    return PineconeVectorIndex(
        api_key=_require(config.pinecone_api_key, "PINECONE_API_KEY", "pinecone"),
        cloud=config.pinecone_cloud,
        region=config.pinecone_region,
        **common,
    )


def create_generation_provider(
    config: TutorRAGConfig,
    retry_config: RetryConfig,
    model: str | None = None,
) -> GenerationProvider:
    """Generator for ``model``, or the configured generation model."""
    model = model or config.get_generation_model()
    if config.generation_provider == "openai":
        from tutorrag.generate.openai import OpenAIGenerator

        return OpenAIGenerator(
            api_key=_require(config.openai_api_key, "OPENAI_API_KEY", "openai_generation"),
            model=model,
            retry_config=retry_config,
        )

    from tutorrag.generate.gemini import GeminiGenerator

    return GeminiGenerator(
        api_key=_require(config.google_api_key, "GOOGLE_API_KEY", "gemini_generation"),
        model=model,
        retry_config=retry_config,
    )
