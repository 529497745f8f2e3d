"""SurrealDB implementation of ConnectionRepository"""

from __future__ import annotations

from typing import Optional, Sequence

from ....schemas import ConnectionCreate
from ...entities import ConnectionEntity, EntityKind, Session
from ..base import ConnectionRepository, require_session
from .base import SurrealTable


class SurrealConnectionRepository(SurrealTable, ConnectionRepository):
    """SurrealDB implementation using SurrealQL"""

    kind = EntityKind.CONNECTIONS

    async def create(self, session: Optional[Session], fields: ConnectionCreate) -> ConnectionEntity:
        return await self._create(session, fields.model_dump())

    async def create_many(
        self, session: Optional[Session], fields: Sequence[ConnectionCreate]
    ) -> list[ConnectionEntity]:
        """Create multiple connections"""
        require_session(session)
        created = []
        for f in fields:
            created.append(await self.create(session, f))
        return created
