"""Pinecone vector index provider: one serverless index per tenant."""

from __future__ import annotations

from typing import Any

from tutorrag.core.models import EmbeddingVector, VectorMatch
from tutorrag.store._base import VectorIndexMixin


class PineconeVectorIndex(VectorIndexMixin):
    """Pinecone-backed tenant index.

    Each tenant gets its own index named after its namespace key
    (``tutor-chatbot-<tenant>``), created with cosine metric on a serverless
    spec and polled until ready.
    """

    _provider_name: str = "pinecone_vector_index"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        cloud: str = "aws",
        region: str = "us-east-1",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        from pinecone import Pinecone  # type: ignore[import]

        self._pc = Pinecone(api_key=api_key)
        self._cloud = cloud
        self._region = region
        self._indexes: dict[str, Any] = {}

    def _index(self, namespace: str) -> Any:
        if namespace not in self._indexes:
            self._indexes[namespace] = self._pc.Index(namespace)
        return self._indexes[namespace]

    def _exists_sync(self, namespace: str) -> bool:
        return namespace in self._pc.list_indexes().names()

    def _create_sync(self, namespace: str) -> None:
        from pinecone import ServerlessSpec  # type: ignore[import]

        self._pc.create_index(
            name=namespace,
            dimension=self._dimensions,
            metric="cosine",
            spec=ServerlessSpec(cloud=self._cloud, region=self._region),
        )

    def _ready_sync(self, namespace: str) -> bool:
        status = self._pc.describe_index(namespace).status
        if isinstance(status, dict):
            return bool(status.get("ready"))
        return bool(getattr(status, "ready", False))

    def _fetch_sync(self, namespace: str, ids: list[str]) -> dict[str, EmbeddingVector]:
        vectors = self._index(namespace).fetch(ids=ids).vectors or {}
        return {
            id_: EmbeddingVector.from_stored(id_, stored.values, stored.metadata or {})
            for id_, stored in vectors.items()
        }

    def _upsert_sync(self, namespace: str, records: list[EmbeddingVector]) -> None:
        self._index(namespace).upsert(
            vectors=[
                {"id": r.chunk_ref, "values": r.vector, "metadata": r.to_metadata()}
                for r in records
            ]
        )

    def _query_sync(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        results = self._index(namespace).query(
            vector=vector,
            top_k=top_k,
            include_metadata=True,
        )
        return [
            VectorMatch.from_metadata(match.id, match.score, match.metadata or {})
            for match in results.matches or []
        ]

    def _delete_sync(self, namespace: str, ids: list[str]) -> None:
        index = self._index(namespace)
        for start in range(0, len(ids), 1000):
            index.delete(ids=ids[start : start + 1000])

    def _clear_sync(self, namespace: str) -> None:
        index = self._index(namespace)
        # delete_all on an empty serverless index answers 404
        if index.describe_index_stats().total_vector_count:
            index.delete(delete_all=True)
