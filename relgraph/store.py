"""In-memory entity store - the local mirror of the remote graph"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional
from uuid import UUID

from .db.entities import (
    ConnectionEntity,
    Entity,
    EntityKind,
    ENTITY_TYPES,
    PersonEntity,
    TaskCommentEntity,
    TaskEntity,
    TaskStatus,
    effective_status,
    is_core_node,
)


class EntityStore:
    """
    Keyed collections of people, connections, tasks and task comments.

    Each collection is a dict keyed by id: replacing an existing key keeps
    its original position, new keys are appended. Views are recomputed on
    every call and return fresh lists, so callers never hold a reference
    into the store's own containers.

    The store has no knowledge of the network; only the sync controller
    writes to it.
    """

    def __init__(self, core_name: Optional[str] = None):
        self._core_name = core_name
        self._people: dict[UUID, PersonEntity] = {}
        self._connections: dict[UUID, ConnectionEntity] = {}
        self._tasks: dict[UUID, TaskEntity] = {}
        self._comments: dict[UUID, TaskCommentEntity] = {}

    def _table(self, kind: EntityKind) -> dict:
        return {
            EntityKind.PEOPLE: self._people,
            EntityKind.CONNECTIONS: self._connections,
            EntityKind.TASKS: self._tasks,
            EntityKind.TASK_COMMENTS: self._comments,
        }[EntityKind(kind)]

    # ============ Mutation ============

    def upsert(self, kind: EntityKind, entity: Entity) -> None:
        """Insert or replace `entity` by id."""
        expected = ENTITY_TYPES[EntityKind(kind)]
        if not isinstance(entity, expected):
            raise TypeError(
                f"Cannot store {type(entity).__name__} as {EntityKind(kind).value}"
            )
        self._table(kind)[entity.id] = entity

    def remove(self, kind: EntityKind, entity_id: UUID) -> bool:
        """Remove by id. Absent ids are ignored; returns whether anything was removed."""
        return self._table(kind).pop(entity_id, None) is not None

    def replace_all(
        self,
        people: list[PersonEntity],
        connections: list[ConnectionEntity],
        tasks: list[TaskEntity],
    ) -> None:
        """Swap in a full snapshot of the synced collections at once."""
        new_people = {p.id: p for p in people}
        new_connections = {c.id: c for c in connections}
        new_tasks = {t.id: t for t in tasks}
        self._people = new_people
        self._connections = new_connections
        self._tasks = new_tasks

    def get(self, kind: EntityKind, entity_id: UUID) -> Optional[Entity]:
        return self._table(kind).get(entity_id)

    def count(self, kind: EntityKind) -> int:
        return len(self._table(kind))

    # ============ Base views ============

    def people(self) -> list[PersonEntity]:
        return list(self._people.values())

    def connections(self) -> list[ConnectionEntity]:
        return list(self._connections.values())

    def tasks(self) -> list[TaskEntity]:
        """Tasks whose owning person is present"""
        return [t for t in self._tasks.values() if t.person_id in self._people]

    # ============ Derived views ============

    def active_people(self) -> list[PersonEntity]:
        return [p for p in self._people.values() if not p.archived]

    def archived_people(self) -> list[PersonEntity]:
        return [p for p in self._people.values() if p.archived]

    def active_connections(self) -> list[ConnectionEntity]:
        """Connections whose endpoints both exist and are not archived"""
        active_ids = {p.id for p in self._people.values() if not p.archived}
        return [
            c for c in self._connections.values()
            if c.from_person_id in active_ids and c.to_person_id in active_ids
        ]

    def connections_of(self, person_id: UUID) -> list[ConnectionEntity]:
        """Active connections touching a person (either direction)"""
        return [c for c in self.active_connections() if c.touches(person_id)]

    def tasks_by_person(self, person_id: UUID) -> list[TaskEntity]:
        if person_id not in self._people:
            return []
        return [t for t in self._tasks.values() if t.person_id == person_id]

    def tasks_by_day(self, day: date) -> list[TaskEntity]:
        return [t for t in self.tasks() if t.deadline == day]

    def tasks_grouped_by_day(self) -> dict[date, list[TaskEntity]]:
        """Calendar view: deadline date -> tasks. Tasks without deadline are left out."""
        grouped: dict[date, list[TaskEntity]] = defaultdict(list)
        for task in self.tasks():
            if task.deadline is not None:
                grouped[task.deadline].append(task)
        return dict(grouped)

    def tasks_by_status(self, status: TaskStatus) -> list[TaskEntity]:
        status = TaskStatus(status)
        return [t for t in self.tasks() if effective_status(t) is status]

    def tasks_grouped_by_status(self) -> dict[TaskStatus, list[TaskEntity]]:
        """Kanban view; every column is present even when empty"""
        grouped: dict[TaskStatus, list[TaskEntity]] = {s: [] for s in TaskStatus}
        for task in self.tasks():
            grouped[effective_status(task)].append(task)
        return grouped

    # ============ Core node ============

    def core_node(self) -> Optional[PersonEntity]:
        """First person carrying the reserved core name, if any"""
        for person in self._people.values():
            if is_core_node(person, self._core_name):
                return person
        return None

    def default_connect_targets(self) -> list[UUID]:
        core = self.core_node()
        return [core.id] if core is not None else []

    # ============ Labels ============

    def person_name(self, person_id: UUID) -> str:
        person = self._people.get(person_id)
        return person.name if person is not None else "—"

    def connection_label(self, connection_id: Optional[UUID]) -> Optional[str]:
        """Label "From — To" for a task connection, None when unresolvable"""
        if connection_id is None:
            return None
        conn = self._connections.get(connection_id)
        if conn is None:
            return None
        src = self._people.get(conn.from_person_id)
        dst = self._people.get(conn.to_person_id)
        if src is None or dst is None:
            return None
        return f"{src.name} — {dst.name}"

    # ============ Task comments ============

    def comments_for(self, task_id: UUID) -> list[TaskCommentEntity]:
        comments = [c for c in self._comments.values() if c.task_id == task_id]
        return sorted(comments, key=lambda c: c.created_at)

    def set_comments(self, task_id: UUID, comments: list[TaskCommentEntity]) -> None:
        """Replace the cached comment list of one task"""
        self.drop_comments(task_id)
        for comment in comments:
            self._comments[comment.id] = comment

    def drop_comments(self, task_id: UUID) -> None:
        stale = [cid for cid, c in self._comments.items() if c.task_id == task_id]
        for cid in stale:
            del self._comments[cid]
