from pathlib import Path
from typing import Protocol, runtime_checkable

from tutorrag.core.models import VideoRecord


@runtime_checkable
class MetadataSource(Protocol):
    async def list_videos(self, channel_identifier: str, max_videos: int) -> list[VideoRecord]: ...


@runtime_checkable
class AudioAcquirer(Protocol):
    async def fetch_audio(self, video: VideoRecord, output_dir: Path) -> Path: ...
