"""Shared pytest fixtures for the TutorRAG test suite."""

import hashlib
import re
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from tutorrag.core.config import TutorRAGConfig
from tutorrag.core.models import ConversationTurn, EmbeddingVector, VideoRecord
from tutorrag.core.retry_config import RETRY_CONFIG_NONE
from tutorrag.core.tenant_store import TenantRecordStore
from tutorrag.pipeline import TutorRAGPipeline
from tutorrag.query.prompts import REWRITE_PROMPT
from tutorrag.store.memory import InMemoryVectorIndex

DIMENSIONS = 768
_WORD = re.compile(r"[a-z0-9]+")


# ============================================================================
# Deterministic Provider Stubs
# ============================================================================


def hash_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Bag-of-words vector: one hashed bucket per word."""
    vector = [0.0] * dimensions
    for word in _WORD.findall(text.lower()):
        bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % dimensions
        vector[bucket] += 1.0
    return vector


class HashEmbedder:
    """Embedding provider whose similarity reflects shared words."""

    model = "hash-embedding"

    def __init__(self, dimensions: int = DIMENSIONS) -> None:
        self.dimensions = dimensions
        self.embed_calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        return [hash_vector(t, self.dimensions) for t in texts]

    async def embed_one(self, text: str) -> list[float]:
        return hash_vector(text, self.dimensions)


def scripted_generator(
    answer: str = "The deadline is Friday.",
    extraction: str = '{"answer": "The deadline is Friday."}',
) -> AsyncMock:
    """Generator that echoes rewrites, answers with ``answer`` and extracts ``extraction``."""

    async def generate(
        system_prompt: str, turns: list[ConversationTurn], *, json_output: bool = False
    ) -> str:
        if json_output:
            return extraction
        if system_prompt == REWRITE_PROMPT:
            return turns[-1].text
        return answer

    mock = AsyncMock()
    mock.generate = AsyncMock(side_effect=generate)
    return mock


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_videos() -> list[VideoRecord]:
    """Three videos of one channel in listing order."""
    return [
        VideoRecord(
            id=f"vid{i}",
            title=f"Lecture {i}",
            url=f"https://www.youtube.com/watch?v=vid{i}",
            duration_seconds=600.0,
            channel_identifier="@MyChannel",
        )
        for i in range(1, 4)
    ]


@pytest.fixture
def transcripts() -> dict[str, str]:
    return {
        "vid1": "[0:00] Welcome. The assignment deadline is Friday at noon.",
        "vid2": "[0:00] Today we cover recursion and base cases.",
        "vid3": "[0:00] Office hours move to the library on Tuesdays.",
    }


# ============================================================================
# Mock Provider Fixtures
# ============================================================================


@pytest.fixture
def mock_source(sample_videos: list[VideoRecord]) -> AsyncMock:
    """Metadata source and audio acquirer writing a tiny audio file per video."""

    async def fetch_audio(video: VideoRecord, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"{video.id}.mp3"
        path.write_bytes(b"audio")
        return path

    mock = AsyncMock()
    mock.list_videos = AsyncMock(return_value=sample_videos)
    mock.fetch_audio = AsyncMock(side_effect=fetch_audio)
    return mock


@pytest.fixture
def mock_stt(transcripts: dict[str, str]) -> AsyncMock:
    """STT provider returning the transcript keyed by the audio file stem."""

    async def transcribe(audio_path: Path, language: str | None = None) -> str:
        return transcripts[audio_path.stem]

    mock = AsyncMock()
    mock.transcribe = AsyncMock(side_effect=transcribe)
    return mock


@pytest.fixture
def embedder() -> HashEmbedder:
    return HashEmbedder()


@pytest.fixture
def memory_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex(retry_config=RETRY_CONFIG_NONE, batch_size=2)


@pytest.fixture
def mock_generator() -> AsyncMock:
    return scripted_generator()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config(tmp_path: Path) -> TutorRAGConfig:
    """Configuration isolated from the environment and the working directory."""
    return TutorRAGConfig(
        _env_file=None,
        vector_store_provider="memory",
        work_dir=tmp_path / "work",
        database_path=str(tmp_path / "tenants.db"),
        chunk_size=40,
        chunk_overlap=10,
        retry_max_attempts=1,
        retry_min_wait_seconds=0,
        retry_max_wait_seconds=0,
        log_format="plain",
    )


@pytest.fixture
async def tenant_store(tmp_path: Path) -> AsyncGenerator[TenantRecordStore, None]:
    async with TenantRecordStore(tmp_path / "store.db") as store:
        yield store


@pytest.fixture
async def pipeline(
    config: TutorRAGConfig,
    mock_source: AsyncMock,
    mock_stt: AsyncMock,
    embedder: HashEmbedder,
    memory_index: InMemoryVectorIndex,
    mock_generator: AsyncMock,
) -> AsyncGenerator[TutorRAGPipeline, None]:
    """Pipeline wired to in-process fakes with an initialized tenant store."""
    async with TutorRAGPipeline(
        config,
        source=mock_source,
        stt=mock_stt,
        embedder=embedder,
        index=memory_index,
        generator=mock_generator,
    ) as pipe:
        yield pipe


# ============================================================================
# Vector Helpers
# ============================================================================


@pytest.fixture
def vectorize():
    """The bag-of-words function behind ``HashEmbedder``."""
    return hash_vector


@pytest.fixture
def make_records():
    """Build ``EmbeddingVector`` records ``c0..cN`` from texts."""

    def _make(texts: list[str]) -> list[EmbeddingVector]:
        return [
            EmbeddingVector(
                chunk_ref=f"c{i}",
                vector=hash_vector(text),
                metadata_text=text,
                source_video_id=f"v{i}",
                title=f"Video {i}",
                url=f"https://youtu.be/v{i}",
                sequence_index=0,
            )
            for i, text in enumerate(texts)
        ]

    return _make
