"""Per-video audio acquisition and transcription with isolated failures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import TranscriptUnit, VideoFailure, VideoRecord
from tutorrag.core.naming import audio_basename
from tutorrag.core.protocols import AudioAcquirer, STTProvider
from tutorrag.source.splitter import AudioPart, AudioSplitter
from tutorrag.source.workspace import Workspace
from tutorrag.transcribe._base import shift_timestamps

logger = get_logger(__name__)


@dataclass
class TranscriptionOutcome:
    """Result of one video: exactly one of ``unit`` or ``failure`` is set."""

    video: VideoRecord
    unit: TranscriptUnit | None = None
    failure: VideoFailure | None = None

    @property
    def ok(self) -> bool:
        return self.unit is not None


class VideoTranscriber:
    """Downloads and transcribes videos in a bounded worker pool.

    A failure for one video is recorded in its outcome and never aborts the
    batch. Cancelling ``transcribe_all`` cancels every in-flight task.
    """

    def __init__(
        self,
        acquirer: AudioAcquirer,
        stt: STTProvider,
        *,
        splitter: AudioSplitter | None = None,
        max_concurrency: int = 1,
        video_timeout_seconds: float | None = None,
        language: str | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._acquirer = acquirer
        self._stt = stt
        self._splitter = splitter
        self._max_concurrency = max_concurrency
        self._video_timeout = video_timeout_seconds
        self._language = language
        self._logger = logger.bind(max_concurrency=max_concurrency)

    async def transcribe_all(
        self, videos: list[VideoRecord], workspace: Workspace
    ) -> list[TranscriptionOutcome]:
        """Process every video and return outcomes in listing order."""
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(video: VideoRecord) -> TranscriptionOutcome:
            async with semaphore:
                return await self._process(video, workspace)

        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_bounded(video)) for video in videos]

        outcomes = [task.result() for task in tasks]
        self._logger.info(
            "transcription_batch_completed",
            videos=len(videos),
            succeeded=sum(1 for o in outcomes if o.ok),
            failed=sum(1 for o in outcomes if not o.ok),
        )
        return outcomes

    async def _process(self, video: VideoRecord, workspace: Workspace) -> TranscriptionOutcome:
        video_logger = self._logger.bind(video_id=video.id)
        stage = "download"
        try:
            async with asyncio.timeout(self._video_timeout):
                audio_path = await self._acquirer.fetch_audio(video, workspace.audio_dir)
                stage = "transcribe"
                text = await self._transcribe(audio_path)
            workspace.write_transcript(audio_basename(video.title, video.id, video.url), text)
        except Exception as e:
            # CancelledError is not an Exception and still tears the batch down
            video_logger.warning(
                "video_skipped",
                stage=stage,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TranscriptionOutcome(
                video=video,
                failure=VideoFailure(
                    video_id=video.id,
                    title=video.title,
                    stage=stage,
                    error_message=str(e) or type(e).__name__,
                ),
            )

        video_logger.info("video_transcribed", characters=len(text))
        return TranscriptionOutcome(
            video=video,
            unit=TranscriptUnit(video_id=video.id, text=text),
        )

    async def _transcribe(self, audio_path: Path) -> str:
        parts = [AudioPart(audio_path)]
        if self._splitter is not None:
            parts = await self._splitter.split_if_needed(audio_path)
        texts = []
        for part in parts:
            text = await self._stt.transcribe(part.path, self._language)
            texts.append(shift_timestamps(text.strip(), part.offset_seconds))
        return "\n".join(text for text in texts if text)
