"""Tests for boundary validation and notification decoding"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from relgraph.db.entities import (
    ConnectionType,
    EntityKind,
    PersonEntity,
    TaskEntity,
    TaskStatus,
)
from relgraph.errors import NotificationDecodeError
from relgraph.schemas import (
    PersonCreate,
    TaskCreate,
    TaskPatch,
    decode_notification,
    entity_to_row,
    parse_record,
)


def person_row(**overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "user_id": str(uuid4()),
        "name": "Alice",
        "bio": None,
        "connection_type": "business",
        "archived": False,
        "pos_x": 1.5,
        "pos_y": -2.0,
        "pos_z": 0.25,
        "created_at": "2024-05-01T12:00:00",
    }
    row.update(overrides)
    return row


class TestRecords:
    """Remote rows -> entities"""

    def test_parse_person(self):
        row = person_row()
        person = parse_record(EntityKind.PEOPLE, row)

        assert isinstance(person, PersonEntity)
        assert person.id == UUID(row["id"])
        assert person.connection_type is ConnectionType.BUSINESS
        assert person.created_at == datetime(2024, 5, 1, 12, 0, 0)

    def test_unknown_columns_are_ignored(self):
        person = parse_record(EntityKind.PEOPLE, person_row(avatar_url="x.png"))
        assert person.name == "Alice"

    def test_unknown_connection_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_record(EntityKind.PEOPLE, person_row(connection_type="romantic"))

    def test_task_deadline_accepts_datetime_strings(self):
        task = parse_record(
            EntityKind.TASKS,
            {
                "id": str(uuid4()),
                "person_id": str(uuid4()),
                "title": "Call",
                "deadline": "2024-05-03T00:00:00+00:00",
                "status": None,
                "created_at": "2024-05-01T12:00:00Z",
            },
        )
        assert isinstance(task, TaskEntity)
        assert task.deadline == date(2024, 5, 3)
        assert task.status is None
        assert task.completed is False

    def test_entity_to_row_round_trips_through_parse(self):
        task = TaskEntity(
            person_id=uuid4(),
            title="Call",
            deadline=date(2024, 5, 3),
            status=TaskStatus.DONE,
            completed=True,
        )
        row = entity_to_row(task)

        assert row["status"] == "done"
        assert row["deadline"] == "2024-05-03"
        assert isinstance(row["id"], str)
        assert parse_record(EntityKind.TASKS, row) == task


class TestInputs:
    """Intent payload validation"""

    def test_person_name_is_stripped_and_required(self):
        assert PersonCreate(name="  Alice ").name == "Alice"
        with pytest.raises(ValidationError):
            PersonCreate(name="   ")

    def test_blank_bio_becomes_none(self):
        assert PersonCreate(name="Alice", bio="  ").bio is None

    def test_person_defaults(self):
        fields = PersonCreate(name="Alice")
        assert fields.connection_type is ConnectionType.PRACTICAL
        assert fields.archived is False

    def test_task_create_defaults_to_todo(self):
        fields = TaskCreate(person_id=uuid4(), title="Call")
        assert fields.status is TaskStatus.TODO
        assert fields.completed is False

    def test_patch_status_derives_completed(self):
        assert TaskPatch(status="done").changes() == {
            "status": TaskStatus.DONE,
            "completed": True,
        }
        assert TaskPatch(status="in_progress").changes() == {
            "status": TaskStatus.IN_PROGRESS,
            "completed": False,
        }

    def test_patch_only_carries_given_fields(self):
        assert TaskPatch(title="New").changes() == {"title": "New"}
        assert TaskPatch(completed=True).changes() == {"completed": True}
        assert TaskPatch(connection_id=None).changes() == {"connection_id": None}

    def test_patch_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            TaskPatch(person_id=uuid4())

    @pytest.mark.parametrize(
        "patch",
        [
            {"title": None},
            {"title": ""},
            {"title": "   "},
            {"completed": None},
        ],
    )
    def test_patch_rejects_null_or_blank_required_columns(self, patch):
        """title and completed can be changed but never cleared"""
        with pytest.raises(ValidationError):
            TaskPatch.model_validate(patch)

    def test_patch_title_is_stripped(self):
        assert TaskPatch(title="  Call back ").changes() == {"title": "Call back"}


class TestDecodeNotification:
    """Tagged-variant decoding of change events"""

    def test_insert(self):
        row = person_row()
        change = decode_notification({"op": "insert", "kind": "people", "payload": row})

        assert change.op == "insert"
        assert change.kind is EntityKind.PEOPLE
        assert change.entity_id == UUID(row["id"])
        assert change.entity.name == "Alice"

    def test_delete_needs_only_id(self):
        pid = uuid4()
        change = decode_notification({"op": "delete", "kind": "people", "payload": {"id": str(pid)}})

        assert change.entity_id == pid
        assert change.entity is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"op": "upsert", "kind": "people", "payload": {}},
            {"op": "insert", "kind": "friends", "payload": {}},
            {"op": "insert", "kind": "people"},
            {"op": "insert", "kind": "people", "payload": {"id": "not-a-uuid"}},
            {"op": "delete", "kind": "tasks", "payload": {}},
            {"op": "delete", "kind": "tasks", "payload": {"id": "nope"}},
        ],
    )
    def test_malformed_notifications_rejected(self, raw):
        with pytest.raises(NotificationDecodeError):
            decode_notification(raw)

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_notification({})
