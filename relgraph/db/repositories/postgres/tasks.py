"""PostgreSQL implementation of TaskRepository"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from ....schemas import TaskCreate
from ...entities import EntityKind, Session, TaskEntity, TaskStatus
from ...models import Task
from ..base import TaskRepository, require_session
from .base import PostgresTable


class PostgresTaskRepository(PostgresTable, TaskRepository):
    """PostgreSQL implementation using SQLAlchemy"""

    kind = EntityKind.TASKS
    model = Task

    def _to_entity(self, model: Task) -> TaskEntity:
        """Convert SQLAlchemy model to domain entity"""
        return TaskEntity(
            id=model.id,
            user_id=model.user_id,
            person_id=model.person_id,
            title=model.title,
            completed=model.completed,
            deadline=model.deadline,
            status=TaskStatus(model.status) if model.status else None,
            connection_id=model.connection_id,
            created_at=model.created_at,
        )

    async def list(self) -> list[TaskEntity]:
        """List all tasks, oldest first"""
        async with self._transaction("list") as db:
            result = await db.execute(select(Task).order_by(Task.created_at.asc()))
            return [self._to_entity(m) for m in result.scalars().all()]

    async def create(self, session: Optional[Session], fields: TaskCreate) -> TaskEntity:
        session = require_session(session)
        data = fields.model_dump()
        data["status"] = fields.status.value
        model = Task(user_id=session.user_id, **data)
        async with self._transaction("create") as db:
            db.add(model)
            await db.flush()
            await db.refresh(model)
            return self._to_entity(model)
