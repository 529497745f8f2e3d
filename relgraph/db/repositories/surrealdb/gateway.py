"""SurrealDB gateway: repositories, live feed and database sign-in"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from ....errors import NotAuthenticatedError
from ....observability import logger
from ...entities import Credentials, Session
from ...surrealdb import SurrealConnection
from ..auth import user_id_for
from ..base import RemoteGateway, SessionCallback, SessionProvider
from .comments import SurrealTaskCommentRepository
from .connections import SurrealConnectionRepository
from .feed import SurrealChangeFeed
from .people import SurrealPersonRepository
from .tasks import SurrealTaskRepository

if TYPE_CHECKING:
    from surrealdb import AsyncSurreal


class SurrealSessionProvider(SessionProvider):
    """Sessions backed by SurrealDB system users"""

    def __init__(self, client: "AsyncSurreal"):
        self._client = client
        self._session: Optional[Session] = None
        self._listeners: list[SessionCallback] = []

    async def get_session(self) -> Optional[Session]:
        return self._session

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def sign_in(self, credentials: Credentials) -> Session:
        try:
            token = await self._client.signin(
                {"username": credentials.email, "password": credentials.password}
            )
        except Exception as e:
            logger.warning(f"Rejected sign-in for {credentials.email!r}: {e}")
            raise NotAuthenticatedError("Invalid credentials") from e

        session = Session(
            user_id=user_id_for(credentials.email),
            email=credentials.email.strip().lower(),
            access_token=token if isinstance(token, str) else None,
        )
        self._set(session)
        return session

    async def sign_out(self) -> None:
        await self._client.invalidate()
        self._set(None)

    def _set(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)


class SurrealGateway(RemoteGateway):
    """
    SurrealDB implementation of the remote gateway.

    Note: repositories are bound to the client at construction, so the
    gateway connects eagerly in `open()` rather than in `__init__`.
    """

    def __init__(self, connection: SurrealConnection, client: "AsyncSurreal"):
        self._connection = connection
        self._client = client
        self.people = SurrealPersonRepository(client)
        self.connections = SurrealConnectionRepository(client)
        self.tasks = SurrealTaskRepository(client)
        self.comments = SurrealTaskCommentRepository(client)
        self.feed = SurrealChangeFeed(client)
        self.auth = SurrealSessionProvider(client)

    @classmethod
    async def open(
        cls,
        connection: Optional[SurrealConnection] = None,
        init_schema: bool = True,
    ) -> "SurrealGateway":
        """Connect, optionally apply the schema, and build the gateway"""
        connection = connection or SurrealConnection()
        client = await connection.connect()
        if init_schema:
            await connection.init_schema()
        if not connection.supports_live:
            logger.warning(
                f"{connection.url} does not support live queries; change feed disabled"
            )
        return cls(connection, client)

    async def connect(self) -> None:
        await self._connection.connect()

    async def close(self) -> None:
        await self.feed.close()
        await self._connection.disconnect()
