from typing import Protocol, runtime_checkable

from tutorrag.core.models import EmbeddingVector, VectorMatch


@runtime_checkable
class VectorIndexProvider(Protocol):
    async def ensure_namespace(self, tenant_id: str) -> None: ...

    async def namespace_exists(self, tenant_id: str) -> bool: ...

    async def upsert(self, tenant_id: str, records: list[EmbeddingVector]) -> list[str]: ...

    async def query(
        self, tenant_id: str, vector: list[float], top_k: int = 10
    ) -> list[VectorMatch]: ...

    async def delete(self, tenant_id: str, ids: list[str]) -> None: ...

    async def clear(self, tenant_id: str) -> None: ...
