"""PostgreSQL change feed over LISTEN/NOTIFY"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional
from uuid import UUID

from ....errors import RemoteRejectionError
from ....observability import logger
from ...entities import EntityKind
from ..base import ChangeCallback, ChangeFeed, Unsubscribe

if TYPE_CHECKING:
    import asyncpg

RowFetcher = Callable[[EntityKind, UUID], Awaitable[Optional[dict[str, Any]]]]


class PostgresChangeFeed(ChangeFeed):
    """
    One dedicated asyncpg connection LISTENs on the notify channel and fans
    events out per table.

    Row triggers installed by `init_db()` publish {"op", "kind", "payload":
    {"id"}} documents. For inserts and updates the row is read back through
    `fetch_row` before subscribers see it. Events are handled one at a time,
    in the order they were received.
    """

    def __init__(self, dsn: str, channel: str, fetch_row: Optional[RowFetcher] = None):
        self._dsn = dsn
        self._channel = channel
        self._fetch_row = fetch_row
        self._conn: Optional["asyncpg.Connection"] = None
        self._subscribers: dict[EntityKind, list[ChangeCallback]] = defaultdict(list)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._pump: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        if self._conn is not None:
            return

        import asyncpg

        self._conn = await asyncpg.connect(self._dsn)
        await self._conn.add_listener(self._channel, self._on_notify)
        logger.info(f"Listening for changes on channel {self._channel!r}")

    async def close(self) -> None:
        if self._pump is not None:
            self._pump.cancel()
            await asyncio.gather(self._pump, return_exceptions=True)
            self._pump = None
        if self._conn is None:
            return
        try:
            await self._conn.remove_listener(self._channel, self._on_notify)
        finally:
            await self._conn.close()
            self._conn = None
            self._subscribers.clear()

    async def subscribe(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        await self.connect()
        kind = EntityKind(kind)
        self._subscribers[kind].append(callback)

        async def unsubscribe() -> None:
            if callback in self._subscribers[kind]:
                self._subscribers[kind].remove(callback)

        return unsubscribe

    def _on_notify(self, connection, pid: int, channel: str, payload: str) -> None:
        try:
            event = json.loads(payload)
            EntityKind(event.get("kind"))
        except (ValueError, TypeError, AttributeError):
            logger.warning(f"Dropping unreadable notification on {channel!r}")
            return

        self._queue.put_nowait(event)
        if self._pump is None or self._pump.done():
            self._pump = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            kind = EntityKind(event["kind"])
            try:
                event = await self._resolve(kind, event)
            except (RemoteRejectionError, ValueError, TypeError, KeyError) as e:
                logger.warning(f"Dropping {kind.value} notification: {e}")
                continue
            if event is None:
                continue
            for callback in list(self._subscribers[kind]):
                callback(event)

    async def _resolve(self, kind: EntityKind, event: dict) -> Optional[dict]:
        if event.get("op") == "delete" or self._fetch_row is None:
            return dict(event)

        entity_id = UUID(str(event["payload"]["id"]))
        row = await self._fetch_row(kind, entity_id)
        if row is None:
            # Deleted before it could be read; the delete event follows
            logger.debug(f"{kind.value} {entity_id} gone before read-back")
            return None
        return {**event, "payload": row}
