"""Shared plumbing for PostgreSQL repositories"""

from __future__ import annotations

from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncGenerator, Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ....errors import RemoteRejectionError
from ....schemas import entity_to_row
from ...database import get_session
from ...entities import EntityKind, Session
from ..base import require_session


class PostgresTable:
    """
    Base for one table. Each call runs in its own short transaction;
    the gateway is long-lived so sessions are not shared between calls.
    """

    kind: EntityKind
    model: type

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    def _to_entity(self, model):
        raise NotImplementedError

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with get_session(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            raise RemoteRejectionError(f"{operation} {self.kind.value}", e) from e

    async def get_row(self, entity_id: UUID) -> Optional[dict[str, Any]]:
        """Current row in change-feed form, None when it no longer exists"""
        async with self._transaction("read") as db:
            model = await db.get(self.model, entity_id)
            return None if model is None else entity_to_row(self._to_entity(model))

    async def update(
        self, session: Optional[Session], entity_id: UUID, fields: dict[str, Any]
    ) -> None:
        """Apply a partial update"""
        require_session(session)
        values = {
            k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()
        }
        async with self._transaction("update") as db:
            await db.execute(
                update(self.model).where(self.model.id == entity_id).values(**values)
            )

    async def delete(self, session: Optional[Session], entity_id: UUID) -> None:
        """Delete by id (dependent rows cascade in the schema)"""
        require_session(session)
        async with self._transaction("delete") as db:
            await db.execute(delete(self.model).where(self.model.id == entity_id))
