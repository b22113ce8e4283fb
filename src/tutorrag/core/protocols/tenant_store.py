"""Tenant record store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tutorrag.core.models import TenantRecord


@runtime_checkable
class TenantRecordStoreProvider(Protocol):
    """Persists one channel metadata record per tenant; last write wins."""

    async def initialize(self) -> None: ...

    async def upsert(self, tenant_id: str, channel_metadata: dict[str, Any]) -> TenantRecord: ...

    async def get(self, tenant_id: str) -> TenantRecord | None: ...

    async def close(self) -> None: ...
