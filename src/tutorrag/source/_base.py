"""Shared plumbing for channel sources: listing and audio download."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TypeVar

from tutorrag.core.exceptions import ProviderError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)

T = TypeVar("T")


class SourceMixin:
    """Base for sources that list a channel and download its videos' audio.

    Listing and download libraries are blocking, so subclasses write each
    upstream call as a plain function and hand it to ``_run_blocking``. Only
    ``_retryable_exceptions`` are retried; a subclass turns upstream hiccups
    into one of them and lets permanent errors (unknown channel, removed
    video) through unchanged.
    """

    _provider_name: str = "video_source"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(self, *, retry_config: RetryConfig | None = None) -> None:
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name)

    async def _run_blocking(self, func: Callable[[], T]) -> T:
        """Run ``func`` in a worker thread under the retry policy."""
        retry_decorator = create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )
        return await asyncio.to_thread(retry_decorator(func))

    async def _wrap_error(self, e: Exception, operation: str) -> ProviderError:
        """``ProviderError`` for a failed listing or download; passes one through as is."""
        if isinstance(e, ProviderError):
            return e
        return ProviderError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )
