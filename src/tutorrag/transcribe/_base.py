"""Base transcriber mixin for STT providers."""

from __future__ import annotations

import re
from typing import Any

from tutorrag.core.exceptions import TranscriptionError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)

_MARKER = re.compile(r"^\[(?:(\d+):)?(\d+):(\d{2})\]", re.MULTILINE)


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``m:ss`` or ``h:mm:ss``."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def shift_timestamps(text: str, offset_seconds: float) -> str:
    """Move every leading ``[m:ss]``/``[h:mm:ss]`` marker forward by ``offset_seconds``."""
    if not offset_seconds:
        return text

    def _shift(match: re.Match[str]) -> str:
        hours, minutes, seconds = (int(group or 0) for group in match.groups())
        return f"[{format_timestamp(hours * 3600 + minutes * 60 + seconds + offset_seconds)}]"

    return _MARKER.sub(_shift, text)


class TranscriberMixin:
    """Mixin providing common functionality for STT providers.

    Subclasses must set:
    - _provider_name: str
    - _retryable_exceptions: tuple[type[Exception], ...]
    """

    _provider_name: str = "transcriber"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(
        self,
        *,
        model: str,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._model = model
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name, model=model)

    @property
    def model(self) -> str:
        """Get the current model name."""
        return self._model

    def _get_retry_decorator(self) -> Any:
        """Get retry decorator configured for provider API calls."""
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    async def _wrap_error(self, e: Exception, operation: str) -> TranscriptionError:
        """Wrap provider errors with structured exception."""
        if isinstance(e, TranscriptionError):
            return e
        return TranscriptionError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )
