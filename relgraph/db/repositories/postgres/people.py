"""PostgreSQL implementation of PersonRepository"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from ....schemas import PersonCreate
from ...entities import ConnectionType, EntityKind, PersonEntity, Session
from ...models import Person
from ..base import PersonRepository, require_session
from .base import PostgresTable


class PostgresPersonRepository(PostgresTable, PersonRepository):
    """PostgreSQL implementation using SQLAlchemy"""

    kind = EntityKind.PEOPLE
    model = Person

    def _to_entity(self, model: Person) -> PersonEntity:
        """Convert SQLAlchemy model to domain entity"""
        return PersonEntity(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            bio=model.bio,
            connection_type=ConnectionType(model.connection_type),
            archived=model.archived,
            pos_x=model.pos_x,
            pos_y=model.pos_y,
            pos_z=model.pos_z,
            created_at=model.created_at,
        )

    async def list(self) -> list[PersonEntity]:
        """List all people, oldest first"""
        async with self._transaction("list") as db:
            result = await db.execute(select(Person).order_by(Person.created_at.asc()))
            return [self._to_entity(m) for m in result.scalars().all()]

    async def create(self, session: Optional[Session], fields: PersonCreate) -> PersonEntity:
        """Create a person owned by the session user"""
        session = require_session(session)
        data = fields.model_dump()
        data["connection_type"] = fields.connection_type.value
        model = Person(user_id=session.user_id, **data)
        async with self._transaction("create") as db:
            db.add(model)
            await db.flush()
            await db.refresh(model)
            return self._to_entity(model)
