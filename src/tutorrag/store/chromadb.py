"""ChromaDB vector index provider: one persistent collection per tenant."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from tutorrag.core.models import EmbeddingVector, VectorMatch
from tutorrag.store._base import VectorIndexMixin

if TYPE_CHECKING:
    from chromadb.api import ClientAPI  # type: ignore
    from chromadb.api.models.Collection import Collection  # type: ignore


class ChromaDBVectorIndex(VectorIndexMixin):
    """Local ChromaDB index using cosine distance collections."""

    _provider_name: str = "chromadb_vector_index"

    def __init__(self, *, persist_directory: str | Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._persist_directory = Path(persist_directory)
        self._client: ClientAPI | None = None
        self._logger = self._logger.bind(persist_directory=str(persist_directory))

    def _ensure_client(self) -> ClientAPI:
        if self._client is None:
            import chromadb  # type: ignore

            self._client = chromadb.PersistentClient(path=str(self._persist_directory))
            self._logger.info("chromadb_initialized")
        return self._client

    def _collection(self, namespace: str) -> Collection:
        return self._ensure_client().get_or_create_collection(
            name=namespace,
            metadata={"hnsw:space": "cosine"},
        )

    def _exists_sync(self, namespace: str) -> bool:
        # list_collections returns names on chromadb >= 0.6, Collection objects before
        collections = self._ensure_client().list_collections()
        names = [c if isinstance(c, str) else c.name for c in collections]
        return namespace in names

    def _create_sync(self, namespace: str) -> None:
        self._collection(namespace)

    def _fetch_sync(self, namespace: str, ids: list[str]) -> dict[str, EmbeddingVector]:
        found = self._collection(namespace).get(
            ids=ids,
            include=cast(Any, ["embeddings", "metadatas"]),
        )
        embeddings = found["embeddings"] if found["embeddings"] is not None else []
        metadatas = found["metadatas"] or []
        return {
            id_: EmbeddingVector.from_stored(id_, list(embeddings[i]), dict(metadatas[i] or {}))
            for i, id_ in enumerate(found["ids"])
        }

    def _upsert_sync(self, namespace: str, records: list[EmbeddingVector]) -> None:
        self._collection(namespace).upsert(
            ids=[r.chunk_ref for r in records],
            embeddings=cast(Any, [r.vector for r in records]),
            metadatas=cast(Any, [r.to_metadata() for r in records]),
            documents=[r.metadata_text for r in records],
        )

    def _query_sync(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        results = self._collection(namespace).query(
            query_embeddings=[vector],
            n_results=top_k,
            include=cast(Any, ["metadatas", "distances"]),
        )
        if not results["ids"] or not results["ids"][0]:
            return []
        metadatas = results["metadatas"][0] if results["metadatas"] else []
        distances = results["distances"][0] if results["distances"] else []
        return [
            # cosine distance -> similarity
            VectorMatch.from_metadata(id_, 1.0 - float(distances[i]), dict(metadatas[i] or {}))
            for i, id_ in enumerate(results["ids"][0])
        ]

    def _delete_sync(self, namespace: str, ids: list[str]) -> None:
        self._collection(namespace).delete(ids=ids)

    def _clear_sync(self, namespace: str) -> None:
        collection = self._collection(namespace)
        ids = collection.get(include=[])["ids"]
        if ids:
            collection.delete(ids=ids)
