"""Repository pattern for the remote store"""

from .base import (
    PersonRepository,
    ConnectionRepository,
    TaskRepository,
    TaskCommentRepository,
    ChangeFeed,
    SessionProvider,
    RemoteGateway,
    require_session,
)

__all__ = [
    "PersonRepository",
    "ConnectionRepository",
    "TaskRepository",
    "TaskCommentRepository",
    "ChangeFeed",
    "SessionProvider",
    "RemoteGateway",
    "require_session",
]
