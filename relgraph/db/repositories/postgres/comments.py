"""PostgreSQL implementation of TaskCommentRepository"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from ....schemas import TaskCommentCreate
from ...entities import EntityKind, Session, TaskCommentEntity
from ...models import TaskComment
from ..base import TaskCommentRepository, require_session
from .base import PostgresTable


class PostgresTaskCommentRepository(PostgresTable, TaskCommentRepository):
    """PostgreSQL implementation using SQLAlchemy"""

    kind = EntityKind.TASK_COMMENTS
    model = TaskComment

    def _to_entity(self, model: TaskComment) -> TaskCommentEntity:
        return TaskCommentEntity(
            id=model.id,
            task_id=model.task_id,
            user_id=model.user_id,
            body=model.body,
            created_at=model.created_at,
        )

    async def list(self) -> list[TaskCommentEntity]:
        async with self._transaction("list") as db:
            result = await db.execute(
                select(TaskComment).order_by(TaskComment.created_at.asc())
            )
            return [self._to_entity(m) for m in result.scalars().all()]

    async def list_for_task(self, task_id: UUID) -> list[TaskCommentEntity]:
        """Comments of one task, oldest first"""
        async with self._transaction("list") as db:
            result = await db.execute(
                select(TaskComment)
                .where(TaskComment.task_id == task_id)
                .order_by(TaskComment.created_at.asc())
            )
            return [self._to_entity(m) for m in result.scalars().all()]

    async def create(
        self, session: Optional[Session], fields: TaskCommentCreate
    ) -> TaskCommentEntity:
        session = require_session(session)
        model = TaskComment(user_id=session.user_id, **fields.model_dump())
        async with self._transaction("create") as db:
            db.add(model)
            await db.flush()
            await db.refresh(model)
            return self._to_entity(model)
