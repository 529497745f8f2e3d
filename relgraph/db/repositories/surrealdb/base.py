"""Shared plumbing for SurrealDB repositories"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID, uuid4

from ....errors import RemoteRejectionError
from ....schemas import parse_record
from ...entities import EntityKind, Session
from ..base import require_session

if TYPE_CHECKING:
    from surrealdb import AsyncSurreal


def parse_record_id(record_id) -> UUID:
    """Extract UUID from SurrealDB record ID (RecordID object or string)"""
    # Handle RecordID object from surrealdb SDK
    if hasattr(record_id, "id") and hasattr(record_id, "table_name"):
        return UUID(str(record_id.id))
    # Handle dict with 'id' key
    if isinstance(record_id, dict):
        return parse_record_id(record_id.get("id", ""))
    # Handle string format 'table:uuid' or 'table:⟨uuid⟩'
    if isinstance(record_id, str) and ":" in record_id:
        uuid_part = record_id.split(":", 1)[1]
        uuid_part = uuid_part.strip("⟨⟩<>`")
        return UUID(uuid_part)
    return UUID(str(record_id))


def record_to_row(record: dict) -> dict:
    """SurrealDB record -> plain row with a UUID id"""
    row = dict(record)
    row["id"] = parse_record_id(record.get("id", ""))
    return row


def to_surreal(value: Any) -> Any:
    """Python value -> value stored in a SurrealDB field"""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value.isoformat()
    return value


class SurrealTable:
    """Base for one SurrealDB table"""

    kind: EntityKind

    def __init__(self, client: "AsyncSurreal"):
        self._client = client

    @property
    def table(self) -> str:
        return self.kind.value

    def _record_id(self, entity_id: UUID):
        from surrealdb import RecordID

        return RecordID(self.table, str(entity_id))

    def _to_entity(self, record: dict):
        """Convert SurrealDB record to domain entity"""
        return parse_record(self.kind, record_to_row(record))

    async def _query(self, operation: str, sql: str, params: Optional[dict] = None):
        try:
            return await self._client.query(sql, params or {})
        except Exception as e:
            raise RemoteRejectionError(f"{operation} {self.table}", e) from e

    async def list(self) -> list:
        result = await self._query(
            "list", f"SELECT * FROM {self.table} ORDER BY created_at ASC"
        )
        if result:
            return [self._to_entity(r) for r in result]
        return []

    async def _create(self, session: Optional[Session], content: dict):
        session = require_session(session)
        data = {k: to_surreal(v) for k, v in content.items() if v is not None}
        data["user_id"] = str(session.user_id)
        result = await self._query(
            "create",
            "CREATE $id CONTENT $data",
            {"id": self._record_id(uuid4()), "data": data},
        )
        if not result:
            raise RemoteRejectionError(f"create {self.table}", ValueError("empty result"))
        record = result[0] if isinstance(result, list) else result
        return self._to_entity(record)

    async def update(
        self, session: Optional[Session], entity_id: UUID, fields: dict[str, Any]
    ) -> None:
        """Apply a partial update"""
        require_session(session)
        data = {k: to_surreal(v) for k, v in fields.items()}
        await self._query(
            "update", "UPDATE $id MERGE $data", {"id": self._record_id(entity_id), "data": data}
        )

    async def delete(self, session: Optional[Session], entity_id: UUID) -> None:
        require_session(session)
        await self._query("delete", "DELETE $id", {"id": self._record_id(entity_id)})
