"""PostgreSQL gateway: repositories, change feed and session provider"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine

from ....observability import logger
from ...config import settings
from ...database import asyncpg_dsn, create_engine, create_session_factory
from ...entities import EntityKind
from ..auth import LocalSessionProvider
from ..base import RemoteGateway, SessionProvider
from .base import PostgresTable
from .comments import PostgresTaskCommentRepository
from .connections import PostgresConnectionRepository
from .feed import PostgresChangeFeed
from .people import PostgresPersonRepository
from .tasks import PostgresTaskRepository


class PostgresGateway(RemoteGateway):
    """PostgreSQL implementation of the remote gateway"""

    def __init__(
        self,
        database_url: Optional[str] = None,
        channel: Optional[str] = None,
        auth: Optional[SessionProvider] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self.database_url = database_url or settings.database_url
        self._owns_engine = engine is None
        self._engine = engine or create_engine(self.database_url)
        session_factory = create_session_factory(self._engine)

        self.people = PostgresPersonRepository(session_factory)
        self.connections = PostgresConnectionRepository(session_factory)
        self.tasks = PostgresTaskRepository(session_factory)
        self.comments = PostgresTaskCommentRepository(session_factory)
        self._tables: dict[EntityKind, PostgresTable] = {
            EntityKind.PEOPLE: self.people,
            EntityKind.CONNECTIONS: self.connections,
            EntityKind.TASKS: self.tasks,
        }
        self.feed = PostgresChangeFeed(
            asyncpg_dsn(self.database_url),
            channel or settings.notify_channel,
            fetch_row=self._read_row,
        )
        self.auth = auth or LocalSessionProvider()

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def _read_row(self, kind: EntityKind, entity_id: UUID) -> Optional[dict[str, Any]]:
        return await self._tables[kind].get_row(entity_id)

    async def connect(self) -> None:
        await self.feed.connect()

    async def close(self) -> None:
        await self.feed.close()
        if self._owns_engine:
            await self._engine.dispose()
        logger.debug("Postgres gateway closed")
