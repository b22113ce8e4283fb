"""In-process vector index using exact cosine similarity."""

from __future__ import annotations

import math
import threading
from typing import Any

from tutorrag.core.models import EmbeddingVector, VectorMatch
from tutorrag.store._base import VectorIndexMixin


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorIndex(VectorIndexMixin):
    """Dictionary-backed index for tests and local experiments.

    Nothing is persisted; every namespace lives as long as the instance.
    """

    _provider_name: str = "memory_vector_index"

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("poll_interval_seconds", 0.0)
        super().__init__(**kwargs)
        self._namespaces: dict[str, dict[str, EmbeddingVector]] = {}
        self._lock = threading.Lock()

    def records(self, tenant_id: str) -> dict[str, EmbeddingVector]:
        """Snapshot of a tenant's stored records, keyed by id."""
        with self._lock:
            return dict(self._namespaces.get(self.namespace(tenant_id), {}))

    def _exists_sync(self, namespace: str) -> bool:
        with self._lock:
            return namespace in self._namespaces

    def _create_sync(self, namespace: str) -> None:
        with self._lock:
            self._namespaces.setdefault(namespace, {})

    def _fetch_sync(self, namespace: str, ids: list[str]) -> dict[str, EmbeddingVector]:
        with self._lock:
            store = self._namespaces.get(namespace, {})
            return {id_: store[id_] for id_ in ids if id_ in store}

    def _upsert_sync(self, namespace: str, records: list[EmbeddingVector]) -> None:
        with self._lock:
            store = self._namespaces.setdefault(namespace, {})
            for record in records:
                store[record.chunk_ref] = record

    def _query_sync(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        with self._lock:
            stored = list(self._namespaces.get(namespace, {}).values())
        scored = [
            VectorMatch.from_metadata(
                record.chunk_ref, cosine_similarity(vector, record.vector), record.to_metadata()
            )
            for record in stored
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    def _delete_sync(self, namespace: str, ids: list[str]) -> None:
        with self._lock:
            store = self._namespaces.get(namespace, {})
            for id_ in ids:
                store.pop(id_, None)

    def _clear_sync(self, namespace: str) -> None:
        with self._lock:
            if namespace in self._namespaces:
                self._namespaces[namespace] = {}
