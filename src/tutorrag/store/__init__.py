"""Vector index providers."""

from __future__ import annotations

from tutorrag.store.memory import InMemoryVectorIndex


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "ChromaDBVectorIndex":
        try:
            from tutorrag.store.chromadb import ChromaDBVectorIndex

            return ChromaDBVectorIndex
        except ImportError:
            raise ImportError(
                "ChromaDBVectorIndex requires 'chromadb'. Install with: pip install chromadb"
            ) from None
    if name == "PineconeVectorIndex":
        try:
            from tutorrag.store.pinecone import PineconeVectorIndex

            return PineconeVectorIndex
        except ImportError:
            raise ImportError(
                "PineconeVectorIndex requires 'pinecone'. Install with: pip install pinecone"
            ) from None
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ChromaDBVectorIndex",
    "InMemoryVectorIndex",
    "PineconeVectorIndex",
]
