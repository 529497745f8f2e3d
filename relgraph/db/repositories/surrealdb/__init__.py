"""SurrealDB repository implementations"""

from __future__ import annotations

from .people import SurrealPersonRepository
from .connections import SurrealConnectionRepository
from .tasks import SurrealTaskRepository
from .comments import SurrealTaskCommentRepository
from .feed import SurrealChangeFeed
from .gateway import SurrealGateway, SurrealSessionProvider

__all__ = [
    "SurrealPersonRepository",
    "SurrealConnectionRepository",
    "SurrealTaskRepository",
    "SurrealTaskCommentRepository",
    "SurrealChangeFeed",
    "SurrealGateway",
    "SurrealSessionProvider",
]
