"""Main TutorRAG pipeline orchestrator.

Ingestion is decomposed into discrete Stage classes executed by a stage-runner
loop. A per-tenant ``asyncio.Lock`` prevents the same tenant from being
ingested concurrently within a single process, and every tenant works in its
own directory under ``work_dir``. Query resolution is lock-free; conversation
state travels in an explicit ``RollingContext``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from tutorrag.chunking import chunk_corpus
from tutorrag.core.config import TutorRAGConfig
from tutorrag.core.exceptions import (
    IndexUnreadyError,
    InvalidRequestError,
    NoContentError,
    PipelineError,
    QueryError,
    SourceUnavailableError,
    StateError,
)
from tutorrag.core.logging_config import Timer, configure_logging, get_logger, tenant_context
from tutorrag.core.models import (
    Chunk,
    EmbeddingVector,
    IngestionResult,
    IngestionStatus,
    QueryResult,
    QueryStage,
    RollingContext,
    TenantCorpus,
    VideoRecord,
)
from tutorrag.core.naming import namespace_for, tenant_id_for
from tutorrag.core.protocols import (
    AudioAcquirer,
    EmbeddingProvider,
    GenerationProvider,
    MetadataSource,
    STTProvider,
    TenantRecordStoreProvider,
    VectorIndexProvider,
)
from tutorrag.core.provider_factory import (
    create_embedding_provider,
    create_generation_provider,
    create_retry_config,
    create_stt_provider,
    create_vector_index_provider,
    create_video_source,
)
from tutorrag.core.tenant_store import TenantRecordStore
from tutorrag.corpus import assemble_corpus
from tutorrag.query import (
    AnswerGenerator,
    QueryRewriter,
    ResponseStructurer,
    Retriever,
    build_context_block,
)
from tutorrag.source.splitter import AudioSplitter
from tutorrag.source.workspace import Workspace
from tutorrag.transcribe.video import TranscriptionOutcome, VideoTranscriber

if TYPE_CHECKING:
    import structlog

logger = get_logger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Stage context - mutable bag of data passed through the stage pipeline
# ---------------------------------------------------------------------------
@dataclass
class IngestionContext:
    """Mutable context shared across all stages of a single ingestion run."""

    channel_identifier: str
    max_videos: int
    mode: Literal["upsert", "replace"]
    config: TutorRAGConfig
    logger: structlog.stdlib.BoundLogger
    workspace: Workspace
    result: IngestionResult

    # Populated during execution
    videos: list[VideoRecord] = field(default_factory=list)
    outcomes: list[TranscriptionOutcome] = field(default_factory=list)
    corpus: TenantCorpus | None = None
    chunks: list[Chunk] = field(default_factory=list)
    vectors: list[EmbeddingVector] = field(default_factory=list)

    @property
    def tenant_id(self) -> str:
        return self.result.tenant_id


# ---------------------------------------------------------------------------
# Stage base class
# ---------------------------------------------------------------------------
class Stage(ABC):
    """Abstract ingestion stage."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short, logging-friendly stage name (e.g. ``'chunk'``)."""

    @abstractmethod
    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        """Run the stage, mutating *ctx* in place.

        Args:
            ctx: Shared mutable context for this ingestion run.
            pipeline: The pipeline instance (provides providers & state).
        """


# ---------------------------------------------------------------------------
# Concrete stages
# ---------------------------------------------------------------------------
class FetchMetadataStage(Stage):
    """Stage 1 - List the channel's most recent videos."""

    @property
    def name(self) -> str:
        return IngestionStatus.FETCH_METADATA

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        with Timer(ctx.logger, "stage_fetch_metadata") as timer:
            try:
                async with asyncio.timeout(ctx.config.metadata_timeout_seconds):
                    videos = await pipeline._source.list_videos(
                        ctx.channel_identifier, ctx.max_videos
                    )
            except TimeoutError as e:
                raise SourceUnavailableError(
                    f"Listing '{ctx.channel_identifier}' timed out after "
                    f"{ctx.config.metadata_timeout_seconds}s",
                    tenant_id=ctx.tenant_id,
                ) from e
            ctx.videos = list(videos)[: ctx.max_videos]
            ctx.result.videos_listed = len(ctx.videos)
            timer.complete(videos_count=len(ctx.videos))


class TranscribeStage(Stage):
    """Stage 2 - Reset the workspace, then download and transcribe every video."""

    @property
    def name(self) -> str:
        return IngestionStatus.TRANSCRIBE

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        with Timer(ctx.logger, "stage_transcribe") as timer:
            ctx.workspace.reset()
            ctx.workspace.write_metadata(ctx.videos)
            ctx.result.status = IngestionStatus.DOWNLOAD
            ctx.outcomes = await pipeline._transcriber.transcribe_all(ctx.videos, ctx.workspace)
            ctx.result.status = IngestionStatus.TRANSCRIBE
            ctx.result.failures = [o.failure for o in ctx.outcomes if o.failure is not None]
            ctx.result.videos_transcribed = sum(1 for o in ctx.outcomes if o.ok)
            timer.complete(
                transcribed=ctx.result.videos_transcribed,
                failed=len(ctx.result.failures),
            )


class AssembleStage(Stage):
    """Stage 3 - Concatenate the surviving transcripts into the tenant corpus."""

    @property
    def name(self) -> str:
        return IngestionStatus.ASSEMBLE

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        units = [o.unit for o in ctx.outcomes if o.unit is not None]
        ctx.corpus = assemble_corpus(ctx.tenant_id, ctx.videos, units)
        ctx.workspace.write_corpus(ctx.corpus.render())


class ChunkStage(Stage):
    """Stage 4 - Split each transcript into overlapping windows."""

    @property
    def name(self) -> str:
        return IngestionStatus.CHUNK

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        if ctx.corpus is None:
            raise PipelineError(
                f"No corpus assembled for tenant {ctx.tenant_id} before chunking",
                stage=self.name,
                tenant_id=ctx.tenant_id,
            )
        with Timer(ctx.logger, "stage_chunk") as timer:
            ctx.chunks = chunk_corpus(
                ctx.corpus,
                ctx.config.chunk_size,
                ctx.config.chunk_overlap,
            )
            if not ctx.chunks:
                raise NoContentError(
                    f"Corpus of tenant '{ctx.tenant_id}' produced no chunks",
                    tenant_id=ctx.tenant_id,
                )
            timer.complete(chunks_count=len(ctx.chunks))


class EmbedStage(Stage):
    """Stage 5 - Embed every chunk."""

    @property
    def name(self) -> str:
        return IngestionStatus.EMBED

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        with Timer(ctx.logger, "stage_embed") as timer:
            async with asyncio.timeout(ctx.config.embed_timeout_seconds):
                vectors = await pipeline._embedder.embed([c.text for c in ctx.chunks])
            ctx.vectors = [
                EmbeddingVector(
                    chunk_ref=chunk.id,
                    vector=vector,
                    metadata_text=chunk.text,
                    source_video_id=chunk.source_video_id,
                    title=chunk.title,
                    url=chunk.url,
                    sequence_index=chunk.sequence_index,
                )
                for chunk, vector in zip(ctx.chunks, vectors, strict=True)
            ]
            timer.complete(vectors_count=len(ctx.vectors))


class EnsureNamespaceStage(Stage):
    """Stage 6 - Create the tenant namespace if needed and wait until it serves."""

    @property
    def name(self) -> str:
        return IngestionStatus.ENSURE_NAMESPACE

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        with Timer(ctx.logger, "stage_ensure_namespace"):
            await pipeline._index.ensure_namespace(ctx.tenant_id)
            if ctx.mode == "replace":
                ctx.logger.info("namespace_replace")
                async with asyncio.timeout(ctx.config.index_timeout_seconds):
                    await pipeline._index.clear(ctx.tenant_id)


class UpsertStage(Stage):
    """Stage 7 - Write vectors; a failed or cancelled write is rolled back."""

    @property
    def name(self) -> str:
        return IngestionStatus.UPSERT

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        with Timer(ctx.logger, "stage_upsert") as timer:
            async with asyncio.timeout(ctx.config.index_timeout_seconds):
                ids = await pipeline._index.upsert(ctx.tenant_id, ctx.vectors)
            ctx.result.chunks_indexed = len(ids)
            timer.complete(vectors_count=len(ids))


class PersistTenantRecordStage(Stage):
    """Stage 8 - Remember the channel and the embedding model it was indexed with."""

    @property
    def name(self) -> str:
        return IngestionStatus.PERSIST_TENANT_RECORD

    async def execute(self, ctx: IngestionContext, pipeline: TutorRAGPipeline) -> None:
        first = ctx.videos[0] if ctx.videos else None
        await pipeline._tenant_store.upsert(
            ctx.tenant_id,
            {
                "channel_identifier": ctx.channel_identifier,
                "namespace": ctx.result.namespace,
                "first_video": first.model_dump() if first else None,
                "videos_listed": ctx.result.videos_listed,
                "videos_transcribed": ctx.result.videos_transcribed,
                "chunks_indexed": ctx.result.chunks_indexed,
                "embedding_model": pipeline.embedding_model,
            },
        )


# ---------------------------------------------------------------------------
# Default stage ordering
# ---------------------------------------------------------------------------
_DEFAULT_STAGES: tuple[Stage, ...] = (
    FetchMetadataStage(),
    TranscribeStage(),
    AssembleStage(),
    ChunkStage(),
    EmbedStage(),
    EnsureNamespaceStage(),
    UpsertStage(),
    PersistTenantRecordStage(),
)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
class TutorRAGPipeline:
    """Orchestrates channel ingestion and question answering.

    Ingestion lists a channel's videos, transcribes them with isolated
    failures, chunks and embeds the transcripts and writes them into the
    tenant's own vector namespace. Queries are rewritten, answered from the
    retrieved passages and structured into a citation record.
    """

    def __init__(
        self,
        config: TutorRAGConfig | None = None,
        *,
        source: MetadataSource | None = None,
        acquirer: AudioAcquirer | None = None,
        stt: STTProvider | None = None,
        embedder: EmbeddingProvider | None = None,
        index: VectorIndexProvider | None = None,
        generator: GenerationProvider | None = None,
        rewrite_generator: GenerationProvider | None = None,
        extraction_generator: GenerationProvider | None = None,
        tenant_store: TenantRecordStoreProvider | None = None,
    ) -> None:
        """Initialize the pipeline with config and optional provider overrides.

        Args:
            config: TutorRAG configuration. Defaults to ``TutorRAGConfig()``.
            source: Channel metadata source. Defaults to the YouTube source.
            acquirer: Audio acquirer. Defaults to ``source`` when it can fetch
                audio, otherwise to the YouTube source.
            stt: Custom STT provider. Defaults based on config.stt_provider.
            embedder: Custom embedding provider. Defaults based on
                config.embedding_provider.
            index: Custom vector index. Defaults based on
                config.vector_store_provider.
            generator: Answer generator. Defaults based on
                config.generation_provider.
            rewrite_generator: Generator for query rewriting. Defaults to
                ``generator`` unless a rewrite model is configured.
            extraction_generator: Generator for citation extraction. Defaults
                to ``generator`` unless an extraction model is configured.
            tenant_store: Tenant record store. Defaults to SQLite at
                config.database_path.
        """
        config = config or TutorRAGConfig()
        self._config = config

        configure_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_timestamps=config.log_timestamps,
        )

        retry_config = create_retry_config(config)

        self._source = source or create_video_source(config, retry_config)
        if acquirer is None:
            if isinstance(self._source, AudioAcquirer):
                acquirer = self._source
            else:
                acquirer = create_video_source(config, retry_config)
        self._stt = stt or create_stt_provider(config, retry_config)
        self._embedder = embedder or create_embedding_provider(config, retry_config)
        self._index = index or create_vector_index_provider(config, retry_config)
        self._generator = generator or create_generation_provider(config, retry_config)

        if rewrite_generator is None:
            rewrite_generator = self._generator
            if config.rewrite_model and generator is None:
                rewrite_generator = create_generation_provider(
                    config, retry_config, model=config.rewrite_model
                )
        if extraction_generator is None:
            extraction_generator = self._generator
            if config.extraction_model and generator is None:
                extraction_generator = create_generation_provider(
                    config, retry_config, model=config.extraction_model
                )

        self._transcriber = VideoTranscriber(
            acquirer,
            self._stt,
            splitter=AudioSplitter(max_size_mb=config.audio_split_max_size_mb),
            max_concurrency=config.ingest_max_concurrency,
            video_timeout_seconds=config.video_timeout_seconds,
            language=config.stt_language,
        )
        self._rewriter = QueryRewriter(rewrite_generator)
        self._retriever = Retriever(self._embedder, self._index, top_k=config.retrieval_top_k)
        self._answerer = AnswerGenerator(self._generator)
        self._structurer = ResponseStructurer(extraction_generator)

        self._tenant_store = tenant_store or TenantRecordStore(config.database_path)
        self._initialized = False

        # Per-tenant asyncio locks for single-process concurrency guard
        self._tenant_locks: dict[str, asyncio.Lock] = {}

    @property
    def config(self) -> TutorRAGConfig:
        return self._config

    @property
    def embedding_model(self) -> str:
        return self._config.get_embedding_model()

    # ------------------------------------------------------------------
    # Initialization helpers
    # ------------------------------------------------------------------

    async def _ensure_initialized(self) -> None:
        """Initialize the tenant store if not already done."""
        if not self._initialized:
            await self._tenant_store.initialize()
            self._initialized = True

    async def close(self) -> None:
        """Close the tenant store. Safe to call multiple times."""
        if self._initialized:
            await self._tenant_store.close()
            self._initialized = False

    async def __aenter__(self) -> TutorRAGPipeline:
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _get_tenant_lock(self, tenant_id: str) -> asyncio.Lock:
        """Return (or create) the per-tenant asyncio lock."""
        if tenant_id not in self._tenant_locks:
            self._tenant_locks[tenant_id] = asyncio.Lock()
        return self._tenant_locks[tenant_id]

    def workspace_for(self, tenant_id: str) -> Workspace:
        return Workspace(self._config.work_dir / tenant_id)

    # ------------------------------------------------------------------
    # Stage runner
    # ------------------------------------------------------------------

    async def _run_stages(
        self,
        stages: tuple[Stage, ...],
        ctx: IngestionContext,
    ) -> None:
        """Execute *stages* in order, tagging failures with the stage name.

        Args:
            stages: Ordered tuple of Stage instances.
            ctx: Shared mutable context for this ingestion run.
        """
        for stage in stages:
            ctx.result.status = IngestionStatus(stage.name)
            try:
                await stage.execute(ctx, self)
            except PipelineError:
                raise
            except Exception as exc:
                raise PipelineError(
                    f"Stage '{stage.name}' failed for tenant {ctx.tenant_id}: {exc}",
                    stage=stage.name,
                    tenant_id=ctx.tenant_id,
                ) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def _validate_max_videos(self, max_videos: int | None) -> int:
        if max_videos is None:
            return self._config.default_max_videos
        limit = self._config.max_videos_limit
        if not 1 <= max_videos <= limit:
            raise InvalidRequestError(
                f"max_videos must be between 1 and {limit}, got {max_videos}",
                field="max_videos",
            )
        return max_videos

    async def ingest(
        self,
        channel_identifier: str,
        max_videos: int | None = None,
        *,
        mode: Literal["upsert", "replace"] | None = None,
    ) -> IngestionResult:
        """Build or refresh the knowledge base of one channel.

        Args:
            channel_identifier: Channel handle (``@name``) or channel URL.
            max_videos: Number of most recent videos to ingest, at most
                ``max_videos_limit``. Defaults to ``default_max_videos``.
            mode: ``"upsert"`` overwrites vectors by chunk id and leaves
                vectors of content that disappeared; ``"replace"`` clears the
                namespace first. Defaults to config.ingest_mode.

        Returns:
            IngestionResult with status ``DONE`` and per-video failures.

        Raises:
            InvalidRequestError: Bad channel identifier or ``max_videos``.
            SourceUnavailableError: The channel listing could not be fetched.
            NoContentError: No video produced a transcript.
            PipelineError: Any other stage failed; ``stage`` names it.

            Pipeline errors carry the run's ``IngestionResult`` as ``result``.
        """
        tenant_id = tenant_id_for(channel_identifier)
        max_videos = self._validate_max_videos(max_videos)
        mode = mode or self._config.ingest_mode

        await self._ensure_initialized()

        operation_logger = logger.bind(tenant_id=tenant_id, operation="ingest")
        result = IngestionResult(
            tenant_id=tenant_id,
            namespace=namespace_for(tenant_id, self._config.namespace_prefix),
        )

        with tenant_context(tenant_id):
            async with self._get_tenant_lock(tenant_id):
                operation_logger.info("ingest_started", max_videos=max_videos, mode=mode)
                ctx = IngestionContext(
                    channel_identifier=channel_identifier,
                    max_videos=max_videos,
                    mode=mode,
                    config=self._config,
                    logger=operation_logger,
                    workspace=self.workspace_for(tenant_id),
                    result=result,
                )
                try:
                    await self._run_stages(_DEFAULT_STAGES, ctx)
                except SourceUnavailableError as e:
                    result.status = IngestionStatus.ABORTED_SOURCE_UNAVAILABLE
                    e.result = result
                    operation_logger.error(
                        "ingest_aborted", reason="source_unavailable", error=str(e)
                    )
                    raise
                except NoContentError as e:
                    result.status = IngestionStatus.ABORTED_NO_CONTENT
                    e.result = result
                    operation_logger.error("ingest_aborted", reason="no_content", error=str(e))
                    raise
                except PipelineError as e:
                    result.status = IngestionStatus.FAILED
                    e.result = result
                    operation_logger.error("ingest_failed", stage=e.stage, error=str(e))
                    raise

                result.status = IngestionStatus.DONE
                operation_logger.info(
                    "ingest_completed",
                    videos_listed=result.videos_listed,
                    videos_transcribed=result.videos_transcribed,
                    chunks_indexed=result.chunks_indexed,
                    failures=len(result.failures),
                )
                return result

    async def _query_stage(
        self,
        stage: QueryStage,
        awaitable: Awaitable[T],
        tenant_id: str,
        timeout: float | None,
    ) -> T:
        try:
            async with asyncio.timeout(timeout):
                return await awaitable
        except (IndexUnreadyError, InvalidRequestError):
            raise
        except Exception as e:
            raise QueryError(
                f"Query stage '{stage}' failed for tenant {tenant_id}: {e}",
                stage=stage,
                tenant_id=tenant_id,
            ) from e

    async def _check_embedding_model(self, tenant_id: str, operation_logger: Any) -> None:
        try:
            record = await self._tenant_store.get(tenant_id)
        except StateError as e:
            operation_logger.warning("embedding_model_check_failed", error=str(e))
            return
        if record is None:
            return
        indexed_with = record.channel_metadata.get("embedding_model")
        if indexed_with and indexed_with != self.embedding_model:
            operation_logger.warning(
                "embedding_model_mismatch",
                indexed_with=indexed_with,
                querying_with=self.embedding_model,
            )

    async def ask(
        self,
        channel_identifier: str,
        question: str,
        context: RollingContext | None = None,
    ) -> QueryResult:
        """Answer ``question`` from the channel's knowledge base.

        Args:
            channel_identifier: Channel handle or URL the tenant was built from.
            question: The user's question in any language.
            context: Conversation state of the session. The finished exchange
                is recorded into it on success.

        Returns:
            QueryResult with the structured answer and the retrieved sources.

        Raises:
            InvalidRequestError: Blank question or bad channel identifier.
            IndexUnreadyError: The channel has not been ingested yet.
            QueryError: Any other stage failed; ``stage`` names it.
        """
        tenant_id = tenant_id_for(channel_identifier)
        if not question or not question.strip():
            raise InvalidRequestError("question must not be empty", field="question")

        await self._ensure_initialized()

        operation_logger = logger.bind(
            tenant_id=tenant_id,
            query=question[:100],
            operation="query",
        )
        operation_logger.info("query_started", has_context=bool(context and not context.is_empty()))
        await self._check_embedding_model(tenant_id, operation_logger)

        generation_timeout = self._config.generation_timeout_seconds
        with tenant_context(tenant_id):
            try:
                with Timer(operation_logger, "query_rewrite"):
                    rewritten = await self._query_stage(
                        QueryStage.REWRITE,
                        self._rewriter.rewrite(question, context),
                        tenant_id,
                        generation_timeout,
                    )

                with Timer(operation_logger, "query_embed"):
                    vector = await self._query_stage(
                        QueryStage.EMBED_QUERY,
                        self._retriever.embed_query(rewritten),
                        tenant_id,
                        self._config.embed_timeout_seconds,
                    )

                with Timer(operation_logger, "query_retrieve") as timer:
                    matches = await self._query_stage(
                        QueryStage.RETRIEVE,
                        self._retriever.search(tenant_id, vector),
                        tenant_id,
                        self._config.index_timeout_seconds,
                    )
                    timer.complete(results_count=len(matches))

                context_block = build_context_block(matches)

                with Timer(operation_logger, "query_generate"):
                    raw_answer = await self._query_stage(
                        QueryStage.GENERATE,
                        self._answerer.answer(rewritten, context_block, context),
                        tenant_id,
                        generation_timeout,
                    )

                with Timer(operation_logger, "query_structure"):
                    structured = await self._query_stage(
                        QueryStage.STRUCTURE,
                        self._structurer.structure(raw_answer),
                        tenant_id,
                        generation_timeout,
                    )
            except QueryError as e:
                operation_logger.error("query_failed", stage=e.stage, error=str(e))
                raise

        if context is not None:
            context.record(question, structured.answer)

        operation_logger.info(
            "query_completed",
            sources_count=len(matches),
            cited=structured.is_cited,
            answer_length=len(structured.answer),
        )
        return QueryResult(
            answer=structured,
            rewritten_query=rewritten,
            raw_answer=raw_answer,
            sources=matches,
        )
