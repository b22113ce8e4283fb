"""Embedding providers."""

from __future__ import annotations


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "GeminiEmbeddingProvider":
        try:
            from tutorrag.embed.gemini import GeminiEmbeddingProvider

            return GeminiEmbeddingProvider
        except ImportError:
            raise ImportError(
                "GeminiEmbeddingProvider requires 'google-genai'. "
                "Install with: pip install google-genai"
            ) from None
    if name == "OpenAIEmbeddingProvider":
        try:
            from tutorrag.embed.openai import OpenAIEmbeddingProvider

            return OpenAIEmbeddingProvider
        except ImportError:
            raise ImportError(
                "OpenAIEmbeddingProvider requires 'openai'. Install with: pip install openai"
            ) from None
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GeminiEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
