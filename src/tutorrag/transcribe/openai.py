"""OpenAI Speech-to-Text provider using Whisper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError  # type: ignore

from tutorrag.core.retry_config import RetryConfig
from tutorrag.transcribe._base import TranscriberMixin, format_timestamp


class OpenAITranscriber(TranscriberMixin):
    """Speech-to-Text provider using OpenAI's Whisper API.

    Segments are rendered one per line with a ``[m:ss]`` start marker so the
    answer generator can cite where in the video something was said.
    """

    MODEL_WHISPER_1 = "whisper-1"

    _provider_name: str = "openai_stt"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        RateLimitError,
        APIError,
        APITimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "whisper-1",
        retry_config: RetryConfig | None = None,
    ) -> None:
        super().__init__(model=model, retry_config=retry_config)
        self.client = AsyncOpenAI(api_key=api_key)

    async def transcribe(self, audio_path: Path, language: str | None = None) -> str:
        """Transcribe an audio file and return its text."""
        operation_logger = self._logger.bind(
            audio_path=str(audio_path),
            language=language,
            operation="transcribe",
        )
        operation_logger.debug("transcription_started")

        retry_decorator = self._get_retry_decorator()

        @retry_decorator
        async def _transcribe_with_retry() -> Any:
            with open(audio_path, "rb") as audio_file:
                kwargs: dict[str, Any] = {
                    "model": self.model,
                    "file": audio_file,
                    "response_format": "verbose_json",
                    "timestamp_granularities": ["segment"],
                }
                if language:
                    kwargs["language"] = language
                return await self.client.audio.transcriptions.create(**kwargs)

        try:
            response = await _transcribe_with_retry()
        except Exception as e:
            raise await self._wrap_error(e, "transcribe") from e

        text = self._render(response)
        operation_logger.info("transcription_completed", characters=len(text))
        return text

    @staticmethod
    def _render(response: Any) -> str:
        segments = getattr(response, "segments", None) or []
        lines = []
        for segment in segments:
            if isinstance(segment, dict):
                start = segment.get("start", 0.0)
                text = segment.get("text", "")
            else:
                start = getattr(segment, "start", 0.0)
                text = getattr(segment, "text", "")
            if text.strip():
                lines.append(f"[{format_timestamp(start)}] {text.strip()}")
        if lines:
            return "\n".join(lines)
        return (getattr(response, "text", "") or "").strip()
