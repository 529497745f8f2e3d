"""SurrealDB implementation of TaskRepository"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from ....schemas import TaskCreate
from ...entities import EntityKind, Session, TaskEntity
from ..base import TaskRepository, require_session
from .base import SurrealTable


class SurrealTaskRepository(SurrealTable, TaskRepository):
    """SurrealDB implementation using SurrealQL"""

    kind = EntityKind.TASKS

    async def create(self, session: Optional[Session], fields: TaskCreate) -> TaskEntity:
        return await self._create(session, fields.model_dump())

    async def delete(self, session: Optional[Session], task_id: UUID) -> None:
        """Delete a task and its comments"""
        require_session(session)
        await self._query(
            "delete",
            "DELETE task_comments WHERE task_id = $tid; DELETE $id;",
            {"tid": str(task_id), "id": self._record_id(task_id)},
        )
