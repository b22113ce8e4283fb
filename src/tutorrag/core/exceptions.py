"""Structured exception hierarchy for TutorRAG.

Exception Hierarchy:
    TutorRAGError (base)
    ├── ConfigurationError
    ├── InvalidRequestError
    ├── PipelineError
    │   ├── SourceUnavailableError
    │   ├── NoContentError
    │   └── QueryError
    ├── ProviderError
    │   ├── TranscriptionError
    │   └── GenerationError
    ├── IndexUnreadyError
    ├── ParseFailure
    └── StateError

Per-video and per-parse failures (``TranscriptionError``, ``ParseFailure``) are
absorbed inside their stage. ``SourceUnavailableError`` and ``NoContentError``
terminate an ingestion run. Every other failure on the query path reaches the
caller as a single ``QueryError`` carrying the stage it failed in, except
``IndexUnreadyError`` which callers handle by ingesting first or polling.

Usage:
    from tutorrag.core.exceptions import NoContentError, QueryError

    try:
        await pipeline.ingest("@somechannel", max_videos=5)
    except NoContentError as e:
        logger.error("nothing_transcribed", tenant_id=e.tenant_id)
"""

from __future__ import annotations

from typing import Any


class TutorRAGError(Exception):
    """Base exception class for all TutorRAG errors."""

    pass


class ConfigurationError(TutorRAGError):
    """Raised when configuration is invalid or a required value is missing.

    Example:
        raise ConfigurationError(
            "PINECONE_API_KEY is required but not set. "
            "Please set the TUTORRAG_PINECONE_API_KEY environment variable."
        )
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidRequestError(TutorRAGError):
    """Raised when caller input violates the request contract.

    Never retryable. Raised before any external collaborator is invoked,
    e.g. when ``max_videos`` exceeds the configured ceiling.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PipelineError(TutorRAGError):
    """Raised when a pipeline run fails at a given stage.

    Args:
        message: Human-readable error message.
        stage: The pipeline stage that failed (e.g., "fetch_metadata", "upsert").
        tenant_id: The tenant being processed, if known.

    Attributes:
        result: For ingestion failures, the ``IngestionResult`` with its
            terminal status and the progress made before the failure.

    Example:
        raise PipelineError(
            "Vector upsert failed: connection reset",
            stage="upsert",
            tenant_id="mychannel",
        )
    """

    def __init__(self, message: str, stage: str, tenant_id: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.tenant_id = tenant_id
        self.result: Any = None


class SourceUnavailableError(PipelineError):
    """The video listing upstream could not be reached or returned nothing usable."""

    def __init__(self, message: str, tenant_id: str | None = None) -> None:
        super().__init__(message, stage="fetch_metadata", tenant_id=tenant_id)


class NoContentError(PipelineError):
    """Zero videos were transcribed, so there is nothing to chunk or embed."""

    def __init__(self, message: str, tenant_id: str | None = None) -> None:
        super().__init__(message, stage="assemble", tenant_id=tenant_id)


class QueryError(PipelineError):
    """Generic failure of the query-resolution pipeline.

    ``stage`` names the query stage that failed (``rewrite``, ``embed_query``,
    ``retrieve``, ``augment``, ``generate`` or ``structure``).
    """


class ProviderError(TutorRAGError):
    """Raised when an external provider fails.

    Args:
        message: Human-readable error message.
        provider: The name of the provider that failed (e.g., "gemini_generation").
        retryable: Whether the error is transient and can be retried.

    Example:
        raise ProviderError(
            "Gemini API rate limit exceeded",
            provider="gemini_generation",
            retryable=True,
        )
    """

    def __init__(self, message: str, provider: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable


class TranscriptionError(ProviderError):
    """Audio acquisition or speech-to-text failed for a single video."""

    def __init__(
        self,
        message: str,
        provider: str,
        retryable: bool = False,
        video_id: str | None = None,
    ) -> None:
        super().__init__(message, provider=provider, retryable=retryable)
        self.video_id = video_id


class GenerationError(ProviderError):
    """A generation call (rewrite, answer or extraction) failed."""


class IndexUnreadyError(TutorRAGError):
    """The tenant's vector namespace has not been provisioned yet."""

    def __init__(self, tenant_id: str, namespace: str | None = None) -> None:
        super().__init__(
            f"Vector namespace for tenant '{tenant_id}' is not ready. "
            "Ingest the channel first or wait for provisioning to finish."
        )
        self.tenant_id = tenant_id
        self.namespace = namespace


class ParseFailure(TutorRAGError):
    """Structured extraction output could not be parsed or validated."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class StateError(TutorRAGError):
    """Raised when the tenant record store fails.

    Example:
        raise StateError("Failed to upsert tenant record: database is locked")
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "GenerationError",
    "IndexUnreadyError",
    "InvalidRequestError",
    "NoContentError",
    "ParseFailure",
    "PipelineError",
    "ProviderError",
    "QueryError",
    "SourceUnavailableError",
    "StateError",
    "TranscriptionError",
    "TutorRAGError",
]
