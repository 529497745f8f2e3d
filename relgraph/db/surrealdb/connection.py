"""SurrealDB client setup for one gateway"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from surrealdb import AsyncSurreal

SCHEMA_PATH = Path(__file__).parent / "schema.surql"


def _data_dir(url: str) -> Optional[Path]:
    """Directory backing an embedded file:// database, None for remote URLs"""
    if not url.startswith("file://"):
        return None
    path = url[len("file://"):]
    if path.startswith("./"):
        return Path.cwd() / path[2:]
    return Path(path)


class SurrealConnection:
    """
    Where and how a gateway reaches SurrealDB.

    The change feed runs on live queries, which need a websocket endpoint
    (ws://host:port/rpc). Embedded file:// databases serve CRUD only.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        namespace: Optional[str] = None,
        database: Optional[str] = None,
    ):
        from ..config import settings

        self.url = url or settings.surreal_url
        self.namespace = namespace or settings.surreal_namespace
        self.database = database or settings.surreal_database
        self._client: Optional["AsyncSurreal"] = None
        self._schema_applied = False

        data_dir = _data_dir(self.url)
        if data_dir is not None:
            data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def supports_live(self) -> bool:
        return self.url.startswith(("ws://", "wss://"))

    async def connect(self) -> "AsyncSurreal":
        """Open the client once and select the namespace and database"""
        if self._client is None:
            from surrealdb import AsyncSurreal

            client = AsyncSurreal(self.url)
            await client.connect()
            await client.use(self.namespace, self.database)
            self._client = client
        return self._client

    async def init_schema(self) -> None:
        """Apply schema.surql; its DEFINE ... IF NOT EXISTS statements are idempotent"""
        if self._schema_applied:
            return
        client = await self.connect()
        await client.query(SCHEMA_PATH.read_text())
        self._schema_applied = True

    async def disconnect(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        self._schema_applied = False
        await client.close()
