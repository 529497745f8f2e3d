"""Domain entities - backend-agnostic data models"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    """Return current UTC time as naive datetime (for DB compatibility)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EntityKind(str, Enum):
    """Entity collections; values double as remote table names"""
    PEOPLE = "people"
    CONNECTIONS = "connections"
    TASKS = "tasks"
    TASK_COMMENTS = "task_comments"


# Kinds mirrored live through the change feed
SYNCED_KINDS: tuple[EntityKind, ...] = (
    EntityKind.PEOPLE,
    EntityKind.CONNECTIONS,
    EntityKind.TASKS,
)


class ConnectionType(str, Enum):
    PHILOSOPHICAL = "philosophical"
    BUSINESS = "business"
    PSYCHOLOGICAL = "psychological"
    PRACTICAL = "practical"
    SYNTHESIS = "synthesis"


class TaskStatus(str, Enum):
    """Kanban columns, in display order"""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass(frozen=True)
class PersonEntity:
    """A node of the relationship graph"""
    id: UUID = field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    name: str = ""
    bio: Optional[str] = None
    connection_type: ConnectionType = ConnectionType.PRACTICAL
    archived: bool = False
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.pos_x, self.pos_y, self.pos_z)


@dataclass(frozen=True)
class ConnectionEntity:
    """Edge between two people; direction is kept but ignored for display"""
    id: UUID = field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    from_person_id: Optional[UUID] = None
    to_person_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=_utcnow)

    def touches(self, person_id: UUID) -> bool:
        return person_id in (self.from_person_id, self.to_person_id)


@dataclass(frozen=True)
class TaskEntity:
    """Per-person task. `status` may be missing on legacy rows."""
    id: UUID = field(default_factory=uuid4)
    user_id: Optional[UUID] = None
    person_id: Optional[UUID] = None
    title: str = ""
    completed: bool = False
    deadline: Optional[date] = None
    status: Optional[TaskStatus] = None
    connection_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class TaskCommentEntity:
    """Append-only comment on a task"""
    id: UUID = field(default_factory=uuid4)
    task_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    body: str = ""
    created_at: datetime = field(default_factory=_utcnow)


Entity = Union[PersonEntity, ConnectionEntity, TaskEntity, TaskCommentEntity]

ENTITY_TYPES: dict[EntityKind, type] = {
    EntityKind.PEOPLE: PersonEntity,
    EntityKind.CONNECTIONS: ConnectionEntity,
    EntityKind.TASKS: TaskEntity,
    EntityKind.TASK_COMMENTS: TaskCommentEntity,
}


@dataclass(frozen=True)
class Session:
    """Authenticated session handed out by the remote store"""
    user_id: UUID
    email: str = ""
    access_token: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str


# ============ Derived attributes ============


def effective_status(task: TaskEntity) -> TaskStatus:
    """Kanban status: explicit status wins, else derived from `completed`."""
    if task.status is not None:
        return TaskStatus(task.status)
    return TaskStatus.DONE if task.completed else TaskStatus.TODO


def is_overdue(task: TaskEntity, today: date) -> bool:
    if task.deadline is None:
        return False
    return effective_status(task) is not TaskStatus.DONE and task.deadline < today


def is_core_node(person: PersonEntity, core_name: Optional[str] = None) -> bool:
    """Whether `person` is the reserved core node (matched by display name)."""
    if core_name is None:
        from .config import settings
        core_name = settings.core_node_name
    return person.name == core_name


def display_position(
    person: PersonEntity, core_name: Optional[str] = None
) -> tuple[float, float, float]:
    """Render position: the core node is pinned to the origin."""
    if is_core_node(person, core_name):
        return (0.0, 0.0, 0.0)
    return person.position
