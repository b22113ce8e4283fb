"""Shared retry and error handling for generation providers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tutorrag.core.exceptions import GenerationError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import ConversationTurn
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)

T = TypeVar("T")


class GeneratorMixin:
    """Base for the rewrite, answer and extraction generators.

    Subclasses set ``_provider_name`` and ``_retryable_exceptions`` and send
    their SDK request through ``_request``, which retries transient errors
    and turns whatever is left into a ``GenerationError``.
    """

    _provider_name: str = "generator"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(self, *, model: str, retry_config: RetryConfig | None = None) -> None:
        self._model = model
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name, model=model)

    @property
    def model(self) -> str:
        return self._model

    def _get_retry_decorator(self) -> Any:
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    async def _wrap_error(self, e: Exception, operation: str) -> GenerationError:
        if isinstance(e, GenerationError):
            return e
        return GenerationError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )

    def _operation_logger(self, turns: list[ConversationTurn], json_output: bool) -> Any:
        return self._logger.bind(
            turns_count=len(turns),
            json_output=json_output,
            operation="generate",
        )

    async def _request(self, send: Callable[[], Awaitable[T]]) -> T:
        """Await ``send()`` under the retry policy.

        Raises:
            GenerationError: The request failed after all attempts, or with a
                non-transient error.
        """

        @self._get_retry_decorator()
        async def _send_with_retry() -> T:
            return await send()

        try:
            return await _send_with_retry()
        except Exception as e:
            raise await self._wrap_error(e, "generate") from e
