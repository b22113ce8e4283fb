"""Cutting oversized audio into parts the speech-to-text upload accepts."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from tutorrag.core.exceptions import ProviderError
from tutorrag.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AudioPart:
    """One piece of a video's audio and where it starts in the video."""

    path: Path
    offset_seconds: float = 0.0


class AudioSplitter:
    """Splits audio above ``max_size_mb`` into equal-duration ffmpeg stream copies.

    Each part remembers its start offset so transcript timestamps of later
    parts can be shifted back onto the video's timeline.
    """

    def __init__(self, max_size_mb: float = 24.0) -> None:
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._logger = logger.bind(provider="audio_splitter", max_size_mb=max_size_mb)

    def _fail(self, message: str) -> ProviderError:
        return ProviderError(message=f"audio_splitter: {message}", provider="audio_splitter")

    def _tool(self, name: str) -> str:
        path = shutil.which(name)
        if not path:
            raise self._fail(f"{name} is not installed or not in PATH")
        return path

    async def split_if_needed(self, audio_path: Path) -> list[AudioPart]:
        """``[AudioPart(audio_path)]`` when the file is small enough, else its parts.

        Parts are written next to the source file as ``<stem>_partNNN<suffix>``.

        Raises:
            ProviderError: The file is missing or ffmpeg/ffprobe fails.
        """
        if not audio_path.exists():
            raise self._fail(f"file not found: {audio_path}")

        file_size = audio_path.stat().st_size
        if file_size <= self.max_size_bytes:
            return [AudioPart(audio_path)]

        part_count = file_size // self.max_size_bytes + 1
        operation_logger = self._logger.bind(audio_path=str(audio_path), parts_count=part_count)
        operation_logger.info("audio_split_started", file_size_bytes=file_size)
        parts = await asyncio.to_thread(self._split_sync, audio_path, part_count)
        operation_logger.info("audio_split_completed")
        return parts

    def _duration(self, audio_path: Path) -> float:
        command = [
            self._tool("ffprobe"),
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(audio_path),
        ]
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=True)
            return float(completed.stdout.strip())
        except (subprocess.CalledProcessError, ValueError) as e:
            raise self._fail(f"cannot read duration of {audio_path.name}: {e}") from e

    def _split_sync(self, audio_path: Path, part_count: int) -> list[AudioPart]:
        ffmpeg = self._tool("ffmpeg")
        step = self._duration(audio_path) / part_count

        parts: list[AudioPart] = []
        for index in range(part_count):
            offset = index * step
            target = audio_path.with_name(
                f"{audio_path.stem}_part{index + 1:03d}{audio_path.suffix}"
            )
            command = [
                ffmpeg,
                "-y",
                "-i",
                str(audio_path),
                "-ss",
                f"{offset:.3f}",
                "-t",
                f"{step:.3f}",
                "-c",
                "copy",
                str(target),
            ]
            try:
                subprocess.run(command, capture_output=True, text=True, check=True)
            except subprocess.CalledProcessError as e:
                raise self._fail(f"ffmpeg failed on part {index + 1}: {e.stderr}") from e
            parts.append(AudioPart(target, offset))
        return parts
