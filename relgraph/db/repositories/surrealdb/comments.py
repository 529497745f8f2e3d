"""SurrealDB implementation of TaskCommentRepository"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from ....schemas import TaskCommentCreate
from ...entities import EntityKind, Session, TaskCommentEntity
from ..base import TaskCommentRepository
from .base import SurrealTable


class SurrealTaskCommentRepository(SurrealTable, TaskCommentRepository):
    """SurrealDB implementation using SurrealQL"""

    kind = EntityKind.TASK_COMMENTS

    async def list_for_task(self, task_id: UUID) -> list[TaskCommentEntity]:
        result = await self._query(
            "list",
            "SELECT * FROM task_comments WHERE task_id = $tid ORDER BY created_at ASC",
            {"tid": str(task_id)},
        )
        if result:
            return [self._to_entity(r) for r in result]
        return []

    async def create(
        self, session: Optional[Session], fields: TaskCommentCreate
    ) -> TaskCommentEntity:
        return await self._create(session, fields.model_dump())
