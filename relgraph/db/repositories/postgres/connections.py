"""PostgreSQL implementation of ConnectionRepository"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select

from ....schemas import ConnectionCreate
from ...entities import ConnectionEntity, EntityKind, Session
from ...models import Connection
from ..base import ConnectionRepository, require_session
from .base import PostgresTable


class PostgresConnectionRepository(PostgresTable, ConnectionRepository):
    """PostgreSQL implementation using SQLAlchemy"""

    kind = EntityKind.CONNECTIONS
    model = Connection

    def _to_entity(self, model: Connection) -> ConnectionEntity:
        """Convert SQLAlchemy model to domain entity"""
        return ConnectionEntity(
            id=model.id,
            user_id=model.user_id,
            from_person_id=model.from_person_id,
            to_person_id=model.to_person_id,
            created_at=model.created_at,
        )

    async def list(self) -> list[ConnectionEntity]:
        """List all connections, oldest first"""
        async with self._transaction("list") as db:
            result = await db.execute(
                select(Connection).order_by(Connection.created_at.asc())
            )
            return [self._to_entity(m) for m in result.scalars().all()]

    async def create(self, session: Optional[Session], fields: ConnectionCreate) -> ConnectionEntity:
        """Create a single connection"""
        created = await self.create_many(session, [fields])
        return created[0]

    async def create_many(
        self, session: Optional[Session], fields: Sequence[ConnectionCreate]
    ) -> list[ConnectionEntity]:
        """Create several connections in one transaction"""
        session = require_session(session)
        if not fields:
            return []
        models = [Connection(user_id=session.user_id, **f.model_dump()) for f in fields]
        async with self._transaction("create") as db:
            db.add_all(models)
            await db.flush()
            return [self._to_entity(m) for m in models]
