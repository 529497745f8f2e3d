"""SQLAlchemy models for the relationship graph"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


class Person(Base):
    """Graph node"""
    __tablename__ = "people"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    connection_type: Mapped[str] = mapped_column(String(20), nullable=False, default="practical")
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pos_x: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pos_y: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pos_z: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "connection_type IN ('philosophical', 'business', 'psychological', 'practical', 'synthesis')",
            name="check_person_connection_type",
        ),
        Index("idx_people_created_at", created_at),
        Index("idx_people_name", name),
    )


class Connection(Base):
    """Edge between two people"""
    __tablename__ = "connections"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), nullable=False)
    from_person_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False
    )
    to_person_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_connections_created_at", created_at),
        Index("idx_connections_from", from_person_id),
        Index("idx_connections_to", to_person_id),
    )


class Task(Base):
    """Per-person task; status is nullable for legacy rows"""
    __tablename__ = "tasks"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), nullable=False)
    person_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    connection_id: Mapped[Optional[UUID]] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("connections.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IS NULL OR status IN ('todo', 'in_progress', 'done')",
            name="check_task_status",
        ),
        Index("idx_tasks_created_at", created_at),
        Index("idx_tasks_person_id", person_id),
        Index("idx_tasks_deadline", deadline),
    )


class TaskComment(Base):
    """Append-only task comment"""
    __tablename__ = "task_comments"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    task_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_task_comments_task_created", task_id, created_at),
    )
