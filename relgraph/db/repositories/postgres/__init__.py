"""PostgreSQL repository implementations"""

from .people import PostgresPersonRepository
from .connections import PostgresConnectionRepository
from .tasks import PostgresTaskRepository
from .comments import PostgresTaskCommentRepository
from .feed import PostgresChangeFeed
from .gateway import PostgresGateway

__all__ = [
    "PostgresPersonRepository",
    "PostgresConnectionRepository",
    "PostgresTaskRepository",
    "PostgresTaskCommentRepository",
    "PostgresChangeFeed",
    "PostgresGateway",
]
