"""SurrealDB implementation of PersonRepository"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from ....schemas import PersonCreate
from ...entities import EntityKind, PersonEntity, Session
from ..base import PersonRepository, require_session
from .base import SurrealTable


class SurrealPersonRepository(SurrealTable, PersonRepository):
    """SurrealDB implementation using SurrealQL"""

    kind = EntityKind.PEOPLE

    async def create(self, session: Optional[Session], fields: PersonCreate) -> PersonEntity:
        return await self._create(session, fields.model_dump())

    async def delete(self, session: Optional[Session], person_id: UUID) -> None:
        """Delete a person together with its connections and tasks"""
        require_session(session)
        pid = str(person_id)
        await self._query(
            "delete",
            """
            DELETE tasks WHERE person_id = $pid;
            DELETE connections WHERE from_person_id = $pid OR to_person_id = $pid;
            DELETE $id;
            """,
            {"pid": pid, "id": self._record_id(person_id)},
        )
