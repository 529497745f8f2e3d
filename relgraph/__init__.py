"""relgraph - live-synchronized relationship graph client core"""

from .db.entities import (
    ConnectionEntity,
    ConnectionType,
    Credentials,
    EntityKind,
    PersonEntity,
    Session,
    TaskCommentEntity,
    TaskEntity,
    TaskStatus,
    effective_status,
    is_core_node,
)
from .errors import (
    LoadError,
    NotAuthenticatedError,
    NotificationDecodeError,
    PartialFailureError,
    RelGraphError,
    RemoteRejectionError,
)
from .interaction import InteractionState, NavSection
from .session import SessionState
from .store import EntityStore
from .sync import LoadState, SyncController

__version__ = "0.1.0"

__all__ = [
    "ConnectionEntity",
    "ConnectionType",
    "Credentials",
    "EntityKind",
    "PersonEntity",
    "Session",
    "TaskCommentEntity",
    "TaskEntity",
    "TaskStatus",
    "effective_status",
    "is_core_node",
    "LoadError",
    "NotAuthenticatedError",
    "NotificationDecodeError",
    "PartialFailureError",
    "RelGraphError",
    "RemoteRejectionError",
    "InteractionState",
    "NavSection",
    "SessionState",
    "EntityStore",
    "LoadState",
    "SyncController",
]
