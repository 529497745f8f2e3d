"""In-process repository implementations"""

from .gateway import (
    MemoryChangeFeed,
    MemoryDatabase,
    MemoryGateway,
    MemoryPersonRepository,
    MemoryConnectionRepository,
    MemoryTaskRepository,
    MemoryTaskCommentRepository,
)

__all__ = [
    "MemoryChangeFeed",
    "MemoryDatabase",
    "MemoryGateway",
    "MemoryPersonRepository",
    "MemoryConnectionRepository",
    "MemoryTaskRepository",
    "MemoryTaskCommentRepository",
]
