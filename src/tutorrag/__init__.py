"""TutorRAG package.

Turns a YouTube channel into a question-answering knowledge base with
citations.

This package provides composable components for:
- Ingesting a channel (list, transcribe, chunk, embed, index)
- Answering questions (rewrite, retrieve, generate, structure)

Usage:
    from tutorrag import RollingContext, TutorRAGConfig, TutorRAGPipeline

    async with TutorRAGPipeline(TutorRAGConfig()) as pipeline:
        await pipeline.ingest("@somechannel", max_videos=5)
        context = RollingContext()
        result = await pipeline.ask("@somechannel", "What is covered?", context)
        print(result.answer.to_response())

    # Modular imports
    from tutorrag.embed import GeminiEmbeddingProvider
    from tutorrag.store import PineconeVectorIndex
"""

from __future__ import annotations

from tutorrag.core import (
    IngestionResult,
    QueryResult,
    RetryConfig,
    RollingContext,
    StructuredAnswer,
    TutorRAGConfig,
    configure_logging,
    get_logger,
)
from tutorrag.pipeline import TutorRAGPipeline

__version__ = "0.1.0"

__all__ = [
    "IngestionResult",
    "QueryResult",
    "RetryConfig",
    "RollingContext",
    "StructuredAnswer",
    "TutorRAGConfig",
    "TutorRAGPipeline",
    "__version__",
    "configure_logging",
    "get_logger",
]
