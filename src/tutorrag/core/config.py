"""Configuration management for TutorRAG using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TutorRAGConfig(BaseSettings):
    """TutorRAG configuration with environment variable support.

    All settings use the TUTORRAG_ env prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="TUTORRAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- Provider Selection --
    stt_provider: Literal["openai", "whisper_cli"] = "openai"
    embedding_provider: Literal["gemini", "openai"] = "gemini"
    vector_store_provider: Literal["pinecone", "chromadb", "memory"] = "pinecone"
    generation_provider: Literal["gemini", "openai"] = "gemini"

    # -- API Keys --
    openai_api_key: str = ""
    google_api_key: str = ""
    pinecone_api_key: str = ""

    # -- Model Configuration --
    stt_model: str | None = None
    stt_language: str | None = None
    whisper_cli_model: str = "base"
    embedding_model: str | None = None
    embedding_dimensions: int = 768
    generation_model: str | None = None
    rewrite_model: str | None = None
    extraction_model: str | None = None

    # -- Vector Index Settings --
    namespace_prefix: str = "tutor-chatbot-"
    pinecone_cloud: str = "aws"
    pinecone_region: str = "us-east-1"
    chromadb_persist_directory: str = "./chroma_db"
    namespace_ready_timeout_seconds: float = 300.0
    namespace_poll_interval_seconds: float = 3.0
    upsert_batch_size: int = 100

    # -- Ingestion --
    max_videos_limit: int = 10
    default_max_videos: int = 5
    ingest_max_concurrency: int = 1
    ingest_mode: Literal["upsert", "replace"] = "upsert"
    chunk_size: int = 1000
    chunk_overlap: int = 200
    work_dir: Path = Path("./tutorrag_work")
    audio_format: str = "mp3"
    audio_split_max_size_mb: int = 24
    database_path: str = "tutorrag.db"

    # -- YouTube (yt-dlp) --
    youtube_cookie_file: str | None = None
    youtube_po_token: str | None = None
    youtube_player_clients: list[str] = ["tv", "web", "mweb"]

    # -- Retrieval --
    retrieval_top_k: int = 10

    # -- Timeouts (seconds) --
    metadata_timeout_seconds: float = 120.0
    video_timeout_seconds: float = 1800.0
    embed_timeout_seconds: float = 120.0
    index_timeout_seconds: float = 120.0
    generation_timeout_seconds: float = 90.0

    # -- Logging --
    log_level: str = "INFO"
    log_format: Literal["colored", "plain", "json"] = "colored"
    log_timestamps: bool = True

    # -- Retry Configuration --
    retry_max_attempts: int = 3
    retry_min_wait_seconds: float = 4.0
    retry_max_wait_seconds: float = 60.0
    retry_exponential_multiplier: float = 1.0

    @model_validator(mode="after")
    def _validate_chunking(self) -> "TutorRAGConfig":
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        if self.ingest_max_concurrency < 1:
            raise ValueError("ingest_max_concurrency must be >= 1")
        if not 1 <= self.default_max_videos <= self.max_videos_limit:
            raise ValueError("default_max_videos must be between 1 and max_videos_limit")
        return self

    def get_stt_model(self) -> str:
        """Get STT model based on provider."""
        if self.stt_model:
            return self.stt_model
        if self.stt_provider == "whisper_cli":
            return self.whisper_cli_model
        return "whisper-1"

    def get_embedding_model(self) -> str:
        """Get embedding model based on provider."""
        if self.embedding_model:
            return self.embedding_model
        if self.embedding_provider == "openai":
            return "text-embedding-3-small"
        return "text-embedding-004"

    def get_generation_model(self) -> str:
        """Get generation model based on provider."""
        if self.generation_model:
            return self.generation_model
        if self.generation_provider == "openai":
            return "gpt-4o-mini"
        return "gemini-2.0-flash"

    def get_rewrite_model(self) -> str:
        """Model used for query rewriting, falls back to the generation model."""
        return self.rewrite_model or self.get_generation_model()

    def get_extraction_model(self) -> str:
        """Model used for structured extraction, falls back to the generation model."""
        return self.extraction_model or self.get_generation_model()
