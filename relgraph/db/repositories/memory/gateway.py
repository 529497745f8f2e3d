"""In-process remote store: tables, change feed and gateway"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import fields as dataclass_fields, replace
from typing import Any, Optional, Sequence
from uuid import UUID

from ....errors import RemoteRejectionError
from ....observability import logger
from ....schemas import (
    ConnectionCreate,
    PersonCreate,
    TaskCommentCreate,
    TaskCreate,
    entity_to_row,
)
from ...entities import (
    ConnectionEntity,
    Entity,
    EntityKind,
    ENTITY_TYPES,
    PersonEntity,
    Session,
    TaskCommentEntity,
    TaskEntity,
)
from ..auth import LocalSessionProvider
from ..base import (
    ChangeCallback,
    ChangeFeed,
    ConnectionRepository,
    PersonRepository,
    RemoteGateway,
    SessionProvider,
    TaskCommentRepository,
    TaskRepository,
    Unsubscribe,
    require_session,
)

# Immutable columns; everything else may be patched
_READONLY = {"id", "user_id", "created_at"}


class MemoryChangeFeed(ChangeFeed):
    """Fan-out of committed changes to subscribers, delivered on the next loop tick"""

    def __init__(self):
        self._subscribers: dict[EntityKind, list[ChangeCallback]] = defaultdict(list)

    async def subscribe(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        kind = EntityKind(kind)
        self._subscribers[kind].append(callback)

        async def unsubscribe() -> None:
            if callback in self._subscribers[kind]:
                self._subscribers[kind].remove(callback)

        return unsubscribe

    def subscriber_count(self, kind: EntityKind) -> int:
        return len(self._subscribers[EntityKind(kind)])

    def publish(self, op: str, kind: EntityKind, payload: dict) -> None:
        loop = asyncio.get_running_loop()
        event = {"op": op, "kind": kind.value, "payload": payload}
        for callback in list(self._subscribers[kind]):
            loop.call_soon(callback, dict(event))


class MemoryDatabase:
    """Shared tables; several gateways on one database behave like several sessions"""

    def __init__(self):
        self.tables: dict[EntityKind, dict[UUID, Entity]] = {kind: {} for kind in EntityKind}
        self.feed = MemoryChangeFeed()

    def rows(self, kind: EntityKind) -> list[Entity]:
        return sorted(self.tables[kind].values(), key=lambda e: e.created_at)

    def insert(self, kind: EntityKind, entity: Entity) -> Entity:
        self.tables[kind][entity.id] = entity
        self.feed.publish("insert", kind, entity_to_row(entity))
        return entity

    def update(self, kind: EntityKind, entity_id: UUID, changes: dict[str, Any]) -> None:
        allowed = {f.name for f in dataclass_fields(ENTITY_TYPES[kind])} - _READONLY
        unknown = set(changes) - allowed
        if unknown:
            raise RemoteRejectionError(
                f"update {kind.value}",
                ValueError(f"unknown columns: {sorted(unknown)}"),
            )
        current = self.tables[kind].get(entity_id)
        if current is None:
            # Matches an UPDATE ... WHERE id = ? touching zero rows
            return
        updated = replace(current, **changes)
        self.tables[kind][entity_id] = updated
        self.feed.publish("update", kind, entity_to_row(updated))

    def delete(self, kind: EntityKind, entity_id: UUID) -> None:
        if self.tables[kind].pop(entity_id, None) is None:
            return
        self.feed.publish("delete", kind, {"id": str(entity_id)})
        self._cascade(kind, entity_id)

    def _cascade(self, kind: EntityKind, entity_id: UUID) -> None:
        if kind is EntityKind.PEOPLE:
            for conn in list(self.tables[EntityKind.CONNECTIONS].values()):
                if conn.touches(entity_id):
                    self.delete(EntityKind.CONNECTIONS, conn.id)
            for task in list(self.tables[EntityKind.TASKS].values()):
                if task.person_id == entity_id:
                    self.delete(EntityKind.TASKS, task.id)
        elif kind is EntityKind.TASKS:
            for comment in list(self.tables[EntityKind.TASK_COMMENTS].values()):
                if comment.task_id == entity_id:
                    self.delete(EntityKind.TASK_COMMENTS, comment.id)


class _MemoryTable:
    kind: EntityKind

    def __init__(self, db: MemoryDatabase):
        self._db = db

    async def list(self) -> list:
        return self._db.rows(self.kind)

    async def update(self, session: Optional[Session], entity_id: UUID, fields: dict[str, Any]) -> None:
        require_session(session)
        self._db.update(self.kind, entity_id, dict(fields))

    async def delete(self, session: Optional[Session], entity_id: UUID) -> None:
        require_session(session)
        self._db.delete(self.kind, entity_id)


class MemoryPersonRepository(_MemoryTable, PersonRepository):
    kind = EntityKind.PEOPLE

    async def create(self, session: Optional[Session], fields: PersonCreate) -> PersonEntity:
        session = require_session(session)
        entity = PersonEntity(user_id=session.user_id, **fields.model_dump())
        return self._db.insert(self.kind, entity)


class MemoryConnectionRepository(_MemoryTable, ConnectionRepository):
    kind = EntityKind.CONNECTIONS

    async def create(self, session: Optional[Session], fields: ConnectionCreate) -> ConnectionEntity:
        created = await self.create_many(session, [fields])
        return created[0]

    async def create_many(
        self, session: Optional[Session], fields: Sequence[ConnectionCreate]
    ) -> list[ConnectionEntity]:
        session = require_session(session)
        entities = [
            ConnectionEntity(user_id=session.user_id, **f.model_dump()) for f in fields
        ]
        return [self._db.insert(self.kind, e) for e in entities]


class MemoryTaskRepository(_MemoryTable, TaskRepository):
    kind = EntityKind.TASKS

    async def create(self, session: Optional[Session], fields: TaskCreate) -> TaskEntity:
        session = require_session(session)
        entity = TaskEntity(user_id=session.user_id, **fields.model_dump())
        return self._db.insert(self.kind, entity)


class MemoryTaskCommentRepository(_MemoryTable, TaskCommentRepository):
    kind = EntityKind.TASK_COMMENTS

    async def list_for_task(self, task_id: UUID) -> list[TaskCommentEntity]:
        return [c for c in self._db.rows(self.kind) if c.task_id == task_id]

    async def create(
        self, session: Optional[Session], fields: TaskCommentCreate
    ) -> TaskCommentEntity:
        session = require_session(session)
        entity = TaskCommentEntity(user_id=session.user_id, **fields.model_dump())
        return self._db.insert(self.kind, entity)


class MemoryGateway(RemoteGateway):
    """
    Gateway backed by a MemoryDatabase.

    Used for local development and tests. Share one MemoryDatabase between
    gateways to simulate concurrent sessions.
    """

    def __init__(
        self,
        database: Optional[MemoryDatabase] = None,
        auth: Optional[SessionProvider] = None,
    ):
        self.database = database or MemoryDatabase()
        self.people = MemoryPersonRepository(self.database)
        self.connections = MemoryConnectionRepository(self.database)
        self.tasks = MemoryTaskRepository(self.database)
        self.comments = MemoryTaskCommentRepository(self.database)
        self.feed = self.database.feed
        self.auth = auth or LocalSessionProvider()

    async def connect(self) -> None:
        logger.debug("Memory gateway ready")

    async def close(self) -> None:
        logger.debug("Memory gateway closed")
