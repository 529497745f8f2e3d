"""Boundary schemas - validate every payload entering or leaving the gateway"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from .db.entities import (
    ConnectionEntity,
    ConnectionType,
    Entity,
    EntityKind,
    PersonEntity,
    TaskCommentEntity,
    TaskEntity,
    TaskStatus,
)
from .errors import NotificationDecodeError


def _coerce_date(value: Any) -> Any:
    """Accept ISO dates and datetimes; keep only the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


Deadline = Annotated[date, BeforeValidator(_coerce_date)]


# ============ Records (remote rows) ============


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PersonRecord(_Record):
    id: UUID
    user_id: Optional[UUID] = None
    name: str
    bio: Optional[str] = None
    connection_type: ConnectionType
    archived: bool = False
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    created_at: datetime

    def to_entity(self) -> PersonEntity:
        return PersonEntity(**self.model_dump())


class ConnectionRecord(_Record):
    id: UUID
    user_id: Optional[UUID] = None
    from_person_id: UUID
    to_person_id: UUID
    created_at: datetime

    def to_entity(self) -> ConnectionEntity:
        return ConnectionEntity(**self.model_dump())


class TaskRecord(_Record):
    id: UUID
    user_id: Optional[UUID] = None
    person_id: UUID
    title: str
    completed: bool = False
    deadline: Optional[Deadline] = None
    status: Optional[TaskStatus] = None
    connection_id: Optional[UUID] = None
    created_at: datetime

    def to_entity(self) -> TaskEntity:
        return TaskEntity(**self.model_dump())


class TaskCommentRecord(_Record):
    id: UUID
    task_id: UUID
    user_id: Optional[UUID] = None
    body: str
    created_at: datetime

    def to_entity(self) -> TaskCommentEntity:
        return TaskCommentEntity(**self.model_dump())


RECORD_SCHEMAS: dict[EntityKind, type[_Record]] = {
    EntityKind.PEOPLE: PersonRecord,
    EntityKind.CONNECTIONS: ConnectionRecord,
    EntityKind.TASKS: TaskRecord,
    EntityKind.TASK_COMMENTS: TaskCommentRecord,
}


def parse_record(kind: EntityKind, data: dict):
    """Validate a raw row of `kind` and return the domain entity."""
    return RECORD_SCHEMAS[kind].model_validate(data).to_entity()


# ============ Intents (inputs) ============


class PersonCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    bio: Optional[str] = None
    connection_type: ConnectionType = ConnectionType.PRACTICAL
    archived: bool = False
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("bio")
    @classmethod
    def _blank_bio_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ConnectionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    from_person_id: UUID
    to_person_id: UUID


class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    person_id: UUID
    title: str = Field(min_length=1)
    deadline: Optional[Deadline] = None
    connection_id: Optional[UUID] = None
    completed: bool = False
    status: TaskStatus = TaskStatus.TODO


class TaskPatch(BaseModel):
    """Partial task update. Only explicitly provided fields are applied."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    completed: Optional[bool] = None
    deadline: Optional[Deadline] = None
    status: Optional[TaskStatus] = None
    connection_id: Optional[UUID] = None

    @field_validator("title", "completed", mode="before")
    @classmethod
    def _not_null(cls, v: Any, info) -> Any:
        # Columns are NOT NULL; omit the key to leave them unchanged
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    def changes(self) -> dict[str, Any]:
        """Fields to write, with `completed` derived from an explicit status."""
        updates = self.model_dump(exclude_unset=True)
        if updates.get("status") is not None:
            updates["completed"] = updates["status"] is TaskStatus.DONE
        return updates


class TaskCommentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    task_id: UUID
    body: str = Field(min_length=1)


# ============ Change notifications ============


class ChangeNotification(BaseModel):
    """Tagged change event: {op, kind, payload}"""
    model_config = ConfigDict(extra="ignore")

    op: Literal["insert", "update", "delete"]
    kind: EntityKind
    payload: dict


@dataclass(frozen=True)
class DecodedChange:
    """A validated notification ready for the entity store"""
    op: str
    kind: EntityKind
    entity_id: UUID
    entity: Optional[Entity] = None


def decode_notification(raw: dict) -> DecodedChange:
    """
    Decode a loosely-typed change event into a validated change.

    Args:
        raw: {"op": insert|update|delete, "kind": <table>, "payload": <row>}

    Returns:
        DecodedChange; `entity` is None for deletes

    Raises:
        NotificationDecodeError: unknown op/kind or invalid payload
    """
    try:
        envelope = ChangeNotification.model_validate(raw)
    except ValidationError as e:
        raise NotificationDecodeError(f"Malformed notification envelope: {e}") from e

    if envelope.op == "delete":
        try:
            entity_id = UUID(str(envelope.payload["id"]))
        except (KeyError, ValueError) as e:
            raise NotificationDecodeError(
                f"Delete notification for {envelope.kind.value} without valid id"
            ) from e
        return DecodedChange(op="delete", kind=envelope.kind, entity_id=entity_id)

    try:
        entity = parse_record(envelope.kind, envelope.payload)
    except ValidationError as e:
        raise NotificationDecodeError(
            f"Invalid {envelope.kind.value} payload: {e}"
        ) from e
    return DecodedChange(
        op=envelope.op, kind=envelope.kind, entity_id=entity.id, entity=entity
    )


def entity_to_row(entity: Entity) -> dict[str, Any]:
    """Serialize an entity the way the remote store ships rows (JSON types)."""
    row: dict[str, Any] = {}
    for key, value in asdict(entity).items():
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        row[key] = value
    return row
