"""Pydantic data models for TutorRAG."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VideoRecord(BaseModel):
    """One source video as listed by the metadata source."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str
    duration_seconds: float | None = None
    channel_identifier: str


class TranscriptUnit(BaseModel):
    """Transcript text of one successfully transcribed video."""

    video_id: str
    text: str


class VideoFailure(BaseModel):
    """Why a single video produced no transcript."""

    video_id: str
    title: str
    stage: Literal["download", "transcribe"]
    error_message: str


class CorpusEntry(BaseModel):
    """A transcript tagged with the video it came from."""

    video: VideoRecord
    text: str


class TenantCorpus(BaseModel):
    """Ordered transcripts of one tenant, alive for a single ingestion run."""

    tenant_id: str
    entries: list[CorpusEntry] = Field(default_factory=list)

    def render(self) -> str:
        """Render the corpus as one document with per-video headers."""
        sections = [
            f"{entry.video.title}\n{entry.video.url}\n\n{entry.text.strip()}"
            for entry in self.entries
        ]
        return "\n\n\f\n\n".join(sections)


class Chunk(BaseModel):
    """A fixed-size window of one video's transcript."""

    id: str
    source_video_id: str
    text: str
    sequence_index: int
    title: str
    url: str


class EmbeddingVector(BaseModel):
    """Vector for one chunk, ready to be upserted."""

    chunk_ref: str
    vector: list[float]
    metadata_text: str
    source_video_id: str
    title: str = ""
    url: str = ""
    sequence_index: int = 0

    def to_metadata(self) -> dict[str, Any]:
        """Flat metadata stored next to the vector in the index."""
        return {
            "text": self.metadata_text,
            "source_video_id": self.source_video_id,
            "title": self.title,
            "url": self.url,
            "sequence_index": self.sequence_index,
        }

    @classmethod
    def from_stored(
        cls, id_: str, vector: list[float], metadata: dict[str, Any]
    ) -> EmbeddingVector:
        """Rebuild a record read back from an index."""
        return cls(
            chunk_ref=id_,
            vector=[float(v) for v in vector],
            metadata_text=str(metadata.get("text", "")),
            source_video_id=str(metadata.get("source_video_id", "")),
            title=str(metadata.get("title", "")),
            url=str(metadata.get("url", "")),
            sequence_index=int(metadata.get("sequence_index", 0)),
        )


class VectorMatch(BaseModel):
    """One similarity search hit."""

    id: str
    text: str
    score: float
    source_video_id: str = ""
    title: str = ""
    url: str = ""
    sequence_index: int = 0

    @classmethod
    def from_metadata(cls, id_: str, score: float, metadata: dict[str, Any]) -> VectorMatch:
        return cls(
            id=id_,
            score=float(score),
            text=str(metadata.get("text", "")),
            source_video_id=str(metadata.get("source_video_id", "")),
            title=str(metadata.get("title", "")),
            url=str(metadata.get("url", "")),
            sequence_index=int(metadata.get("sequence_index", 0)),
        )


class TenantRecord(BaseModel):
    """Channel metadata persisted once per tenant."""

    tenant_id: str
    channel_metadata: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime | None = None


class ConversationTurn(BaseModel):
    """A single message in a conversation."""

    role: Literal["user", "model"]
    text: str


class RollingContext(BaseModel):
    """Explicit conversation state for one session.

    Owned by the caller and passed into every resolution call. Only the most
    recent exchange (one user turn plus its answer) is kept.
    """

    turns: list[ConversationTurn] = Field(default_factory=list)
    max_turns: int = 2

    def record(self, question: str, answer: str) -> None:
        """Remember the latest exchange, dropping anything older."""
        self.turns.extend(
            [
                ConversationTurn(role="user", text=question),
                ConversationTurn(role="model", text=answer),
            ]
        )
        self.turns = self.turns[-self.max_turns :]

    def last_exchange(self) -> list[ConversationTurn]:
        return list(self.turns[-self.max_turns :])

    def is_empty(self) -> bool:
        return not self.turns


class StructuredAnswer(BaseModel):
    """Citation-bearing answer extracted from free text.

    Either all four citation fields are present or none of them is.
    """

    answer: str
    title: str | None = None
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    video_url: str | None = Field(default=None, alias="videoUrl")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _all_or_nothing(self) -> StructuredAnswer:
        fields = (self.title, self.start_time, self.end_time, self.video_url)
        present = [bool(value and str(value).strip()) for value in fields]
        if any(present) and not all(present):
            raise ValueError("citation fields must be all present or all absent")
        return self

    @property
    def is_cited(self) -> bool:
        return self.title is not None

    def to_response(self) -> dict[str, str]:
        """Wire shape: camelCase keys, citation fields only when present."""
        return self.model_dump(by_alias=True, exclude_none=True)


class IngestionStatus(StrEnum):
    """States of the ingestion state machine."""

    INIT = "init"
    FETCH_METADATA = "fetch_metadata"
    DOWNLOAD = "download"
    TRANSCRIBE = "transcribe"
    ASSEMBLE = "assemble"
    CHUNK = "chunk"
    EMBED = "embed"
    ENSURE_NAMESPACE = "ensure_namespace"
    UPSERT = "upsert"
    PERSIST_TENANT_RECORD = "persist_tenant_record"
    DONE = "done"
    ABORTED_NO_CONTENT = "aborted_no_content"
    ABORTED_SOURCE_UNAVAILABLE = "aborted_source_unavailable"
    FAILED = "failed"


class QueryStage(StrEnum):
    """States of the query-resolution state machine."""

    RECEIVED = "received"
    REWRITE = "rewrite"
    EMBED_QUERY = "embed_query"
    RETRIEVE = "retrieve"
    AUGMENT = "augment"
    GENERATE = "generate"
    STRUCTURE = "structure"
    RESPONDED = "responded"
    FAILED = "failed"


class IngestionResult(BaseModel):
    """Outcome of one ingestion run."""

    tenant_id: str
    namespace: str
    status: IngestionStatus = IngestionStatus.INIT
    videos_listed: int = 0
    videos_transcribed: int = 0
    chunks_indexed: int = 0
    failures: list[VideoFailure] = Field(default_factory=list)


class QueryResult(BaseModel):
    """Outcome of one query resolution."""

    answer: StructuredAnswer
    rewritten_query: str
    raw_answer: str
    sources: list[VectorMatch] = Field(default_factory=list)
