"""Abstract remote gateway interfaces - backend agnostic"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Sequence
from uuid import UUID

from ...errors import NotAuthenticatedError
from ..entities import (
    ConnectionEntity,
    Credentials,
    EntityKind,
    PersonEntity,
    Session,
    TaskCommentEntity,
    TaskEntity,
)
from ...schemas import (
    ConnectionCreate,
    PersonCreate,
    TaskCommentCreate,
    TaskCreate,
)

# Raw change event: {"op": insert|update|delete, "kind": <table>, "payload": <row>}
ChangeCallback = Callable[[dict], None]
Unsubscribe = Callable[[], Awaitable[None]]
SessionCallback = Callable[[Optional[Session]], None]


def require_session(session: Optional[Session]) -> Session:
    """Guard for mutating calls"""
    if session is None:
        raise NotAuthenticatedError()
    return session


class PersonRepository(ABC):
    """Remote people table"""

    @abstractmethod
    async def list(self) -> list[PersonEntity]:
        """List all people, oldest first"""
        ...

    @abstractmethod
    async def create(self, session: Optional[Session], fields: PersonCreate) -> PersonEntity:
        """Create a person; the store assigns id, owner and timestamp"""
        ...

    @abstractmethod
    async def update(
        self, session: Optional[Session], person_id: UUID, fields: dict[str, Any]
    ) -> None:
        """Apply a partial update"""
        ...

    @abstractmethod
    async def delete(self, session: Optional[Session], person_id: UUID) -> None:
        """Hard-delete a person"""
        ...


class ConnectionRepository(ABC):
    """Remote connections table"""

    @abstractmethod
    async def list(self) -> list[ConnectionEntity]:
        """List all connections, oldest first"""
        ...

    @abstractmethod
    async def create(
        self, session: Optional[Session], fields: ConnectionCreate
    ) -> ConnectionEntity:
        """Create a single connection"""
        ...

    @abstractmethod
    async def create_many(
        self, session: Optional[Session], fields: Sequence[ConnectionCreate]
    ) -> list[ConnectionEntity]:
        """Create several connections in one call"""
        ...

    @abstractmethod
    async def update(
        self, session: Optional[Session], connection_id: UUID, fields: dict[str, Any]
    ) -> None:
        ...

    @abstractmethod
    async def delete(self, session: Optional[Session], connection_id: UUID) -> None:
        ...


class TaskRepository(ABC):
    """Remote tasks table"""

    @abstractmethod
    async def list(self) -> list[TaskEntity]:
        """List all tasks, oldest first"""
        ...

    @abstractmethod
    async def create(self, session: Optional[Session], fields: TaskCreate) -> TaskEntity:
        ...

    @abstractmethod
    async def update(
        self, session: Optional[Session], task_id: UUID, fields: dict[str, Any]
    ) -> None:
        ...

    @abstractmethod
    async def delete(self, session: Optional[Session], task_id: UUID) -> None:
        ...


class TaskCommentRepository(ABC):
    """Remote task_comments table (not live-synced)"""

    @abstractmethod
    async def list(self) -> list[TaskCommentEntity]:
        ...

    @abstractmethod
    async def list_for_task(self, task_id: UUID) -> list[TaskCommentEntity]:
        """Comments of one task, oldest first"""
        ...

    @abstractmethod
    async def create(
        self, session: Optional[Session], fields: TaskCommentCreate
    ) -> TaskCommentEntity:
        ...

    @abstractmethod
    async def update(
        self, session: Optional[Session], comment_id: UUID, fields: dict[str, Any]
    ) -> None:
        ...

    @abstractmethod
    async def delete(self, session: Optional[Session], comment_id: UUID) -> None:
        ...


class ChangeFeed(ABC):
    """Push channel of row changes per entity kind"""

    @abstractmethod
    async def subscribe(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        """
        Register `callback` for changes of `kind`.

        Delivery is at-least-once and includes changes made by this session.
        Callbacks run on the event loop and must not block.

        Returns:
            Coroutine function that cancels the subscription
        """
        ...


class SessionProvider(ABC):
    """Authentication against the remote store"""

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        ...

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register a listener; returns a function removing it"""
        ...

    @abstractmethod
    async def sign_in(self, credentials: Credentials) -> Session:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class RemoteGateway(ABC):
    """Everything the sync controller needs from the remote store"""

    people: PersonRepository
    connections: ConnectionRepository
    tasks: TaskRepository
    comments: TaskCommentRepository
    feed: ChangeFeed
    auth: SessionProvider

    @abstractmethod
    async def connect(self) -> None:
        """Open connections (idempotent)"""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections and cancel feed subscriptions"""
        ...

    async def __aenter__(self) -> "RemoteGateway":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
