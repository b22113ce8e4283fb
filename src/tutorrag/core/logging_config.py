"""structlog setup for TutorRAG.

Every module logs snake_case events through ``get_logger(__name__)``. The
pipeline binds ``tenant_id`` for the duration of an ingestion run or a query
with ``tenant_context``, so provider events carry it without being passed
the tenant explicitly.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

# SDK loggers kept at WARNING; they log every HTTP request at INFO
_QUIET_LOGGERS = ("urllib3", "httpx", "openai", "google_genai", "pinecone", "chromadb", "yt_dlp")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    colors = log_format == "colored" and sys.stderr.isatty()
    return structlog.dev.ConsoleRenderer(colors=colors)


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "colored",
    log_timestamps: bool = True,
) -> None:
    """Route structlog through stdlib logging on stderr.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        log_format: "colored" for terminals, "plain" for files, "json" for
            log shippers.
        log_timestamps: Prefix events with an ISO timestamp.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
    ]
    if log_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def tenant_context(tenant_id: str, **context: Any) -> Iterator[None]:
    """Bind ``tenant_id`` (and ``context``) to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(tenant_id=tenant_id, **context):
        yield


class Timer:
    """Logs ``<operation>_started`` and then ``_completed`` or ``_failed`` with ``duration_ms``.

    Call ``complete(**counts)`` inside the block to attach result counts to
    the completion event.

    Example:
        with Timer(logger, "stage_embed") as timer:
            vectors = await embedder.embed(texts)
            timer.complete(vectors_count=len(vectors))
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ) -> None:
        self.logger = logger.bind(operation=operation, **context)
        self.operation = operation
        self._started = 0.0
        self._completed = False

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self._started) * 1000, 2)

    def __enter__(self) -> Timer:
        self._started = time.monotonic()
        self.logger.info(f"{self.operation}_started")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=self.elapsed_ms,
                error_type=exc_type.__name__,
                error=str(exc_val) if exc_val else None,
            )
        elif not self._completed:
            self.complete()

    def complete(self, **counts: Any) -> None:
        self._completed = True
        self.logger.info(f"{self.operation}_completed", duration_ms=self.elapsed_ms, **counts)
