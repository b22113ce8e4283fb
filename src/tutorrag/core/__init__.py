"""Core TutorRAG components.

This module contains the models, protocols, exceptions and configuration that
are shared by the ingestion and query pipelines.
"""

from __future__ import annotations

from tutorrag.core.config import TutorRAGConfig
from tutorrag.core.exceptions import (
    ConfigurationError,
    GenerationError,
    IndexUnreadyError,
    InvalidRequestError,
    NoContentError,
    ParseFailure,
    PipelineError,
    ProviderError,
    QueryError,
    SourceUnavailableError,
    StateError,
    TranscriptionError,
    TutorRAGError,
)
from tutorrag.core.logging_config import configure_logging, get_logger, tenant_context
from tutorrag.core.models import (
    Chunk,
    EmbeddingVector,
    IngestionResult,
    IngestionStatus,
    QueryResult,
    QueryStage,
    RollingContext,
    StructuredAnswer,
    TenantCorpus,
    TenantRecord,
    TranscriptUnit,
    VectorMatch,
    VideoFailure,
    VideoRecord,
)
from tutorrag.core.protocols import (
    AudioAcquirer,
    EmbeddingProvider,
    GenerationProvider,
    MetadataSource,
    STTProvider,
    TenantRecordStoreProvider,
    VectorIndexProvider,
)
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator
from tutorrag.core.tenant_store import TenantRecordStore

__all__ = [
    # Protocols
    "AudioAcquirer",
    # Models
    "Chunk",
    # Exceptions
    "ConfigurationError",
    "EmbeddingProvider",
    "EmbeddingVector",
    "GenerationError",
    "GenerationProvider",
    "IndexUnreadyError",
    "IngestionResult",
    "IngestionStatus",
    "InvalidRequestError",
    "MetadataSource",
    "NoContentError",
    "ParseFailure",
    "PipelineError",
    "ProviderError",
    "QueryError",
    "QueryResult",
    "QueryStage",
    "RetryConfig",
    "RollingContext",
    "STTProvider",
    "SourceUnavailableError",
    "StateError",
    "StructuredAnswer",
    "TenantCorpus",
    "TenantRecord",
    # State
    "TenantRecordStore",
    "TenantRecordStoreProvider",
    "TranscriptUnit",
    "TranscriptionError",
    # Config
    "TutorRAGConfig",
    "TutorRAGError",
    "VectorIndexProvider",
    "VectorMatch",
    "VideoFailure",
    "VideoRecord",
    # Logging
    "configure_logging",
    "create_retry_decorator",
    "get_logger",
    "tenant_context",
]
