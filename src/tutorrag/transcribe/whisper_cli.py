"""Local speech-to-text using the openai-whisper command line tool."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
import tempfile
from pathlib import Path

from tutorrag.core.exceptions import TranscriptionError
from tutorrag.core.retry_config import RetryConfig
from tutorrag.transcribe._base import TranscriberMixin


class WhisperCLITranscriber(TranscriberMixin):
    """Runs ``whisper <file> --model <model> --output_format txt`` locally.

    No API key and no upload limit, at the cost of local CPU/GPU time.
    """

    _provider_name: str = "whisper_cli"
    _retryable_exceptions: tuple[type[Exception], ...] = ()

    def __init__(
        self,
        *,
        model: str = "base",
        executable: str = "whisper",
        retry_config: RetryConfig | None = None,
    ) -> None:
        super().__init__(model=model, retry_config=retry_config)
        self._executable = executable

    def _command(self, audio_path: Path, output_dir: Path, language: str | None) -> list[str]:
        binary = shutil.which(self._executable)
        if not binary:
            raise TranscriptionError(
                f"{self._executable!r} not found in PATH. Install with: pip install openai-whisper",
                provider=self._provider_name,
            )
        command = [
            binary,
            str(audio_path),
            "--model",
            self.model,
            "--output_format",
            "txt",
            "--output_dir",
            str(output_dir),
        ]
        if language:
            command += ["--language", language]
        return command

    def _run_sync(self, audio_path: Path, language: str | None) -> str:
        with tempfile.TemporaryDirectory(prefix="tutorrag-whisper-") as tmp:
            output_dir = Path(tmp)
            try:
                subprocess.run(
                    self._command(audio_path, output_dir, language),
                    capture_output=True,
                    text=True,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                raise TranscriptionError(
                    f"whisper exited with {e.returncode}: {e.stderr.strip()[-500:]}",
                    provider=self._provider_name,
                ) from e

            transcript = output_dir / f"{audio_path.stem}.txt"
            if not transcript.exists():
                raise TranscriptionError(
                    f"whisper produced no transcript for {audio_path.name}",
                    provider=self._provider_name,
                )
            return transcript.read_text(encoding="utf-8").strip()

    async def transcribe(self, audio_path: Path, language: str | None = None) -> str:
        operation_logger = self._logger.bind(audio_path=str(audio_path), operation="transcribe")
        operation_logger.debug("transcription_started")
        text = await asyncio.to_thread(self._run_sync, audio_path, language)
        operation_logger.info("transcription_completed", characters=len(text))
        return text
