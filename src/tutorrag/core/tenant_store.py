"""Tenant record persistence using async SQLite."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from tutorrag.core.exceptions import StateError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import TenantRecord

logger = get_logger(__name__)


class TenantRecordStore:
    """Stores one channel metadata record per tenant.

    Re-ingesting a tenant overwrites its record (last write wins), so there is
    never more than one row per tenant id.
    """

    def __init__(self, db_path: str | Path):
        """Initialize TenantRecordStore with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the database with WAL mode and create the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self.db_path))
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS tenants (
                    tenant_id TEXT PRIMARY KEY,
                    channel_metadata TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StateError(f"Failed to initialize tenant store: {e}") from e

    def _require_db(self) -> aiosqlite.Connection:
        if not self._db:
            raise StateError("Database not initialized. Call initialize() first.")
        return self._db

    def _now_iso8601(self) -> str:
        return datetime.now(UTC).isoformat()

    async def upsert(self, tenant_id: str, channel_metadata: dict[str, Any]) -> TenantRecord:
        """Insert or replace the record for a tenant.

        Args:
            tenant_id: Sanitized tenant identifier
            channel_metadata: JSON-serializable channel metadata

        Returns:
            The stored record
        """
        db = self._require_db()
        now = self._now_iso8601()

        try:
            await db.execute(
                "INSERT INTO tenants (tenant_id, channel_metadata, created_at, updated_at) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(tenant_id) DO UPDATE SET "
                "channel_metadata = excluded.channel_metadata, "
                "updated_at = excluded.updated_at",
                (tenant_id, json.dumps(channel_metadata), now, now),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StateError(f"Failed to upsert tenant record: {e}") from e

        logger.debug("tenant_record_upserted", tenant_id=tenant_id)
        return TenantRecord(
            tenant_id=tenant_id,
            channel_metadata=channel_metadata,
            updated_at=datetime.fromisoformat(now),
        )

    async def get(self, tenant_id: str) -> TenantRecord | None:
        """Fetch a tenant record, or None if the tenant was never ingested."""
        db = self._require_db()

        try:
            async with db.execute(
                "SELECT tenant_id, channel_metadata, updated_at FROM tenants WHERE tenant_id = ?",
                (tenant_id,),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StateError(f"Failed to read tenant record: {e}") from e

        if not row:
            return None

        return TenantRecord(
            tenant_id=row[0],
            channel_metadata=json.loads(row[1]),
            updated_at=datetime.fromisoformat(row[2]),
        )

    async def count(self, tenant_id: str | None = None) -> int:
        """Number of stored records, optionally for one tenant only."""
        db = self._require_db()
        if tenant_id is None:
            query, params = "SELECT COUNT(*) FROM tenants", ()
        else:
            query, params = "SELECT COUNT(*) FROM tenants WHERE tenant_id = ?", (tenant_id,)
        async with db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> TenantRecordStore:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
