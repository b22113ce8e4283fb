"""Transcription (STT) providers and the per-video transcriber."""

from __future__ import annotations


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "OpenAITranscriber":
        try:
            from tutorrag.transcribe.openai import OpenAITranscriber

            return OpenAITranscriber
        except ImportError:
            raise ImportError(
                "OpenAITranscriber requires 'openai'. Install with: pip install openai"
            ) from None
    if name == "WhisperCLITranscriber":
        from tutorrag.transcribe.whisper_cli import WhisperCLITranscriber

        return WhisperCLITranscriber
    if name in ("VideoTranscriber", "TranscriptionOutcome"):
        from tutorrag.transcribe import video

        return getattr(video, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "OpenAITranscriber",
    "TranscriptionOutcome",
    "VideoTranscriber",
    "WhisperCLITranscriber",
]
