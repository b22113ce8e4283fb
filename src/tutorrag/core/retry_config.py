"""Retry configuration for TutorRAG providers.

Centralized retry logic with exponential backoff for transient failures of
external calls (video listing, embedding, vector index, generation).
"""

from __future__ import annotations

from typing import Any

from tenacity import (
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity import (
    retry as tenacity_retry,
)

from tutorrag.core.exceptions import (
    InvalidRequestError,
    NoContentError,
    ParseFailure,
)
from tutorrag.core.logging_config import get_logger

logger = get_logger(__name__)

# Input and content errors are deterministic, so retrying them is pointless.
NON_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    InvalidRequestError,
    NoContentError,
    ParseFailure,
)


class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first call
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries
        exponential_multiplier: Multiplier for exponential backoff
    """

    def __init__(
        self,
        max_attempts: int = 3,
        min_wait_seconds: float = 4.0,
        max_wait_seconds: float = 60.0,
        exponential_multiplier: float = 1.0,
    ):
        self.max_attempts = max_attempts
        self.min_wait_seconds = min_wait_seconds
        self.max_wait_seconds = max_wait_seconds
        self.exponential_multiplier = exponential_multiplier


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log retry attempts with structured context."""
    fn_name = retry_state.fn.__name__ if retry_state.fn else "unknown"
    exception = retry_state.outcome.exception() if retry_state.outcome else None

    logger.warning(
        "retry_attempt",
        function=fn_name,
        attempt=retry_state.attempt_number,
        max_attempts=retry_state.retry_object.stop.max_attempt_number,  # type: ignore[attr-defined]
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
        error=str(exception) if exception else None,
        error_type=type(exception).__name__ if exception else None,
    )


def _is_retryable(exception_types: tuple[type[Exception], ...]) -> Any:
    def predicate(exc: BaseException) -> bool:
        if isinstance(exc, NON_RETRYABLE_EXCEPTIONS):
            return False
        return isinstance(exc, exception_types)

    return predicate


def create_retry_decorator(
    config: RetryConfig,
    exception_types: tuple[type[Exception], ...],
) -> Any:
    """Create a retry decorator with the specified configuration.

    Args:
        config: Retry configuration
        exception_types: Tuple of exception types to retry on

    Returns:
        Configured retry decorator
    """
    return tenacity_retry(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_exponential(
            multiplier=config.exponential_multiplier,
            min=config.min_wait_seconds,
            max=config.max_wait_seconds,
        ),
        retry=retry_if_exception(_is_retryable(exception_types)),
        before_sleep=log_retry_attempt,
        reraise=True,
    )


RETRY_CONFIG_DEFAULT = RetryConfig(
    max_attempts=3,
    min_wait_seconds=4.0,
    max_wait_seconds=60.0,
    exponential_multiplier=1.0,
)

RETRY_CONFIG_NONE = RetryConfig(
    max_attempts=1,
    min_wait_seconds=0.0,
    max_wait_seconds=0.0,
    exponential_multiplier=0.0,
)
