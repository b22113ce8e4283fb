"""Video sources and the ingestion working area."""

from __future__ import annotations

from tutorrag.source.splitter import AudioPart, AudioSplitter
from tutorrag.source.workspace import Workspace, audio_basename


def __getattr__(name: str):
    """Lazy import with clear error messages for missing dependencies."""
    if name == "YouTubeChannelSource":
        try:
            from tutorrag.source.youtube import YouTubeChannelSource

            return YouTubeChannelSource
        except ImportError:
            raise ImportError(
                "YouTubeChannelSource requires 'yt-dlp'. Install with: pip install yt-dlp"
            ) from None
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AudioPart",
    "AudioSplitter",
    "Workspace",
    "YouTubeChannelSource",
    "audio_basename",
]
