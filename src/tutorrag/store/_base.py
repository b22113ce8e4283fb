"""Base mixin for per-tenant vector index providers."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

from tutorrag.core.exceptions import IndexUnreadyError, ProviderError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import EmbeddingVector, VectorMatch
from tutorrag.core.naming import NAMESPACE_PREFIX, namespace_for
from tutorrag.core.retry_config import RetryConfig, create_retry_decorator

logger = get_logger(__name__)


class VectorIndexMixin:
    """Shared tenant-namespace logic for vector index providers.

    Subclasses set ``_provider_name`` and ``_retryable_exceptions`` and
    implement the blocking ``_*_sync`` primitives, which run in a worker
    thread under the retry decorator:

    - ``_exists_sync(namespace) -> bool``
    - ``_create_sync(namespace) -> None``
    - ``_ready_sync(namespace) -> bool``
    - ``_fetch_sync(namespace, ids) -> dict[str, EmbeddingVector]``
    - ``_upsert_sync(namespace, records) -> None``
    - ``_query_sync(namespace, vector, top_k) -> list[VectorMatch]``
    - ``_delete_sync(namespace, ids) -> None``
    - ``_clear_sync(namespace) -> None``
    """

    _provider_name: str = "vector_index"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
    )

    def __init__(
        self,
        *,
        namespace_prefix: str = NAMESPACE_PREFIX,
        dimensions: int = 768,
        batch_size: int = 100,
        ready_timeout_seconds: float = 300.0,
        poll_interval_seconds: float = 3.0,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._namespace_prefix = namespace_prefix
        self._dimensions = dimensions
        self._batch_size = batch_size
        self._ready_timeout = ready_timeout_seconds
        self._poll_interval = poll_interval_seconds
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger.bind(provider=self._provider_name)

    def namespace(self, tenant_id: str) -> str:
        return namespace_for(tenant_id, self._namespace_prefix)

    def _get_retry_decorator(self) -> Any:
        """Get retry decorator configured for index API calls."""
        return create_retry_decorator(
            config=self._retry_config,
            exception_types=self._retryable_exceptions,
        )

    async def _wrap_error(self, e: Exception, operation: str) -> ProviderError:
        if isinstance(e, ProviderError):
            return e
        return ProviderError(
            message=f"{self._provider_name} {operation} failed: {e}",
            provider=self._provider_name,
            retryable=isinstance(e, self._retryable_exceptions),
        )

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        retry_decorator = self._get_retry_decorator()
        try:
            return await asyncio.to_thread(retry_decorator(func), *args)
        except (IndexUnreadyError, ProviderError):
            raise
        except Exception as e:
            self._logger.error(
                f"{operation}_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise await self._wrap_error(e, operation) from e

    async def namespace_exists(self, tenant_id: str) -> bool:
        return await self._call("namespace_exists", self._exists_sync, self.namespace(tenant_id))

    async def ensure_namespace(self, tenant_id: str) -> None:
        """Create the tenant namespace if absent and wait until it is servable.

        Idempotent. Raises ``IndexUnreadyError`` if the namespace is not ready
        within the configured timeout.
        """
        namespace = self.namespace(tenant_id)
        operation_logger = self._logger.bind(namespace=namespace, operation="ensure_namespace")

        if await self._call("ensure_namespace", self._exists_sync, namespace):
            operation_logger.debug("namespace_exists")
        else:
            operation_logger.info("namespace_creating", dimensions=self._dimensions)
            await self._call("ensure_namespace", self._create_sync, namespace)

        deadline = time.monotonic() + self._ready_timeout
        while not await self._call("ensure_namespace", self._ready_sync, namespace):
            if time.monotonic() >= deadline:
                raise IndexUnreadyError(tenant_id, namespace)
            operation_logger.info("namespace_waiting", poll_interval=self._poll_interval)
            await asyncio.sleep(self._poll_interval)
        operation_logger.info("namespace_ready")

    async def upsert(self, tenant_id: str, records: list[EmbeddingVector]) -> list[str]:
        """Write records in batches, overwriting by id.

        Before each batch the records it is about to overwrite are read back.
        If a batch fails or the call is cancelled, ids that did not exist
        before are deleted and overwritten records are written back, so the
        namespace ends up as it was before the call.

        Returns:
            Ids of the written vectors.
        """
        namespace = self.namespace(tenant_id)
        operation_logger = self._logger.bind(
            namespace=namespace,
            records_count=len(records),
            operation="upsert",
        )
        for record in records:
            if len(record.vector) != self._dimensions:
                raise ProviderError(
                    message=(
                        f"{self._provider_name} upsert: vector {record.chunk_ref} has "
                        f"{len(record.vector)} dimensions, expected {self._dimensions}"
                    ),
                    provider=self._provider_name,
                )

        sent: list[str] = []
        previous: dict[str, EmbeddingVector] = {}
        try:
            for start in range(0, len(records), self._batch_size):
                batch = records[start : start + self._batch_size]
                batch_ids = [record.chunk_ref for record in batch]
                stored = await self._call("snapshot", self._fetch_sync, namespace, batch_ids)
                for id_, record in stored.items():
                    # ids repeated within this call were snapshotted, or written, earlier
                    if id_ not in sent:
                        previous.setdefault(id_, record)
                # a failed batch may still be partially written
                sent.extend(batch_ids)
                await self._call("upsert", self._upsert_sync, namespace, batch)
        except BaseException as e:
            operation_logger.warning(
                "upsert_rolling_back",
                ids_count=len(sent),
                restored_count=len(previous),
                error_type=type(e).__name__,
            )
            await asyncio.shield(self._rollback(namespace, sent, previous))
            raise

        operation_logger.info(
            "upsert_completed",
            batches=-(-len(records) // self._batch_size),
            overwritten=len(previous),
        )
        return sent

    async def _rollback(
        self, namespace: str, sent: list[str], previous: dict[str, EmbeddingVector]
    ) -> None:
        added = list(dict.fromkeys(id_ for id_ in sent if id_ not in previous))
        restore = list(previous.values())
        try:
            if added:
                await self._call("rollback", self._delete_sync, namespace, added)
            for start in range(0, len(restore), self._batch_size):
                batch = restore[start : start + self._batch_size]
                await self._call("rollback", self._upsert_sync, namespace, batch)
        except ProviderError as e:
            self._logger.error(
                "rollback_failed",
                namespace=namespace,
                added_count=len(added),
                restore_count=len(restore),
                error=str(e),
            )

    async def query(
        self, tenant_id: str, vector: list[float], top_k: int = 10
    ) -> list[VectorMatch]:
        """Top ``top_k`` matches by descending similarity.

        Raises:
            IndexUnreadyError: The tenant namespace has not been created.
        """
        namespace = self.namespace(tenant_id)
        if not await self._call("query", self._exists_sync, namespace):
            raise IndexUnreadyError(tenant_id, namespace)
        matches = await self._call("query", self._query_sync, namespace, vector, top_k)
        matches = sorted(matches, key=lambda m: m.score, reverse=True)[:top_k]
        self._logger.debug("query_completed", namespace=namespace, results_count=len(matches))
        return matches

    async def delete(self, tenant_id: str, ids: list[str]) -> None:
        if ids:
            await self._call("delete", self._delete_sync, self.namespace(tenant_id), ids)

    async def clear(self, tenant_id: str) -> None:
        """Remove every vector of the tenant, keeping the namespace itself."""
        namespace = self.namespace(tenant_id)
        await self._call("clear", self._clear_sync, namespace)
        self._logger.info("namespace_cleared", namespace=namespace)

    def _exists_sync(self, namespace: str) -> bool:
        raise NotImplementedError

    def _create_sync(self, namespace: str) -> None:
        raise NotImplementedError

    def _ready_sync(self, namespace: str) -> bool:
        return True

    def _fetch_sync(self, namespace: str, ids: list[str]) -> dict[str, EmbeddingVector]:
        raise NotImplementedError

    def _upsert_sync(self, namespace: str, records: list[EmbeddingVector]) -> None:
        raise NotImplementedError

    def _query_sync(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        raise NotImplementedError

    def _delete_sync(self, namespace: str, ids: list[str]) -> None:
        raise NotImplementedError

    def _clear_sync(self, namespace: str) -> None:
        raise NotImplementedError
