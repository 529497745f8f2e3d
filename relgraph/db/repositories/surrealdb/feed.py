"""SurrealDB change feed over LIVE SELECT queries"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING

from ....observability import logger
from ...entities import EntityKind
from ..base import ChangeCallback, ChangeFeed, Unsubscribe
from .base import parse_record_id, record_to_row

if TYPE_CHECKING:
    from surrealdb import AsyncSurreal


_ACTIONS = {"CREATE": "insert", "UPDATE": "update", "DELETE": "delete"}


def to_change_event(kind: EntityKind, message: dict) -> dict:
    """Live query notification -> {"op", "kind", "payload"}"""
    action = str(message.get("action", "")).upper()
    if action not in _ACTIONS:
        raise ValueError(f"Unknown live action {action!r}")
    record = message.get("result") or {}
    op = _ACTIONS[action]
    if op == "delete":
        payload = {"id": str(parse_record_id(record.get("id", "")))}
    else:
        payload = record_to_row(record)
        payload["id"] = str(payload["id"])
    return {"op": op, "kind": kind.value, "payload": payload}


class SurrealChangeFeed(ChangeFeed):
    """One live query per subscription; a pump task forwards notifications"""

    def __init__(self, client: "AsyncSurreal"):
        self._client = client
        self._pumps: set[asyncio.Task] = set()

    async def subscribe(self, kind: EntityKind, callback: ChangeCallback) -> Unsubscribe:
        kind = EntityKind(kind)
        live_id = await self._client.live(kind.value)
        stream = self._client.subscribe_live(live_id)
        if inspect.isawaitable(stream):
            stream = await stream

        pump = asyncio.create_task(self._pump(kind, stream, callback))
        self._pumps.add(pump)
        pump.add_done_callback(self._pumps.discard)

        async def unsubscribe() -> None:
            pump.cancel()
            try:
                await self._client.kill(live_id)
            except Exception as e:
                logger.warning(f"Failed to kill live query on {kind.value}: {e}")

        return unsubscribe

    async def _pump(self, kind: EntityKind, stream, callback: ChangeCallback) -> None:
        async for message in stream:
            try:
                event = to_change_event(kind, message)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Dropping unreadable live notification on {kind.value}: {e}")
                continue
            callback(event)

    async def close(self) -> None:
        for pump in list(self._pumps):
            pump.cancel()
        if self._pumps:
            await asyncio.gather(*self._pumps, return_exceptions=True)
