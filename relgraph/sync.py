"""Synchronization controller - keeps the entity store in step with the remote store"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Sequence, Union
from uuid import UUID

from pydantic import TypeAdapter

from .db.config import settings
from .db.entities import (
    ConnectionType,
    EntityKind,
    PersonEntity,
    Session,
    SYNCED_KINDS,
    TaskCommentEntity,
    TaskEntity,
)
from .db.repositories.base import RemoteGateway, Unsubscribe, require_session
from .errors import LoadError, NotificationDecodeError, PartialFailureError, RemoteRejectionError
from .observability import log_with_context, logger, metrics, track_errors, track_latency
from .placement import sample_shell_position
from .schemas import (
    ConnectionCreate,
    PersonCreate,
    TaskCommentCreate,
    TaskCreate,
    TaskPatch,
    decode_notification,
)
from .session import SessionState
from .store import EntityStore

_TARGET_IDS = TypeAdapter(list[UUID])


class LoadState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class SyncController:
    """
    Owns the entity store and is its only writer.

    Every store mutation happens synchronously on the event loop, so two
    mutations never interleave. The awaits on gateway calls are the only
    suspension points.

    Usage:
        controller = SyncController(gateway)
        await (await controller.start())   # subscribe, then wait for the load
        person = await controller.add_person({"name": "Alice"}, [core.id])
        await controller.close()
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        store: Optional[EntityStore] = None,
        session_state: Optional[SessionState] = None,
        core_name: Optional[str] = None,
    ):
        self.gateway = gateway
        self.core_name = core_name or settings.core_node_name
        self.store = store or EntityStore(core_name=self.core_name)
        self.session_state = session_state or SessionState()

        self._states: dict[EntityKind, LoadState] = {k: LoadState.UNINITIALIZED for k in SYNCED_KINDS}
        self._errors: dict[EntityKind, Optional[str]] = {k: None for k in SYNCED_KINDS}
        self._load_generation = 0
        self._load_task: Optional[asyncio.Task] = None

        self._unsubscribers: dict[EntityKind, Unsubscribe] = {}
        self._listener_removers: list[Callable[[], None]] = []
        self._started = False
        self._closed = False

        self._bootstrap_attempted = False
        self._background: set[asyncio.Task] = set()

        self._open_comments: set[UUID] = set()
        self._comment_fetches: dict[UUID, asyncio.Task] = {}

    # ============ State ============

    def state(self, kind: EntityKind) -> LoadState:
        return self._states[EntityKind(kind)]

    def error(self, kind: EntityKind) -> Optional[str]:
        """Failure reason of the last load, None unless the kind is in ERROR"""
        return self._errors[EntityKind(kind)]

    @property
    def is_ready(self) -> bool:
        return all(s is LoadState.READY for s in self._states.values())

    @property
    def is_subscribed(self) -> bool:
        return len(self._unsubscribers) == len(SYNCED_KINDS)

    @property
    def session(self) -> Optional[Session]:
        return self.session_state.current

    def _set_states(self, state: LoadState, reason: Optional[str] = None) -> None:
        for kind in SYNCED_KINDS:
            self._states[kind] = state
            self._errors[kind] = reason

    # ============ Lifecycle ============

    async def start(self) -> asyncio.Task:
        """
        Attach to the session provider, subscribe to the change feed of each
        synced kind, then start the initial load.

        Calling start() again while running does not subscribe twice.

        Returns:
            The running load task
        """
        if self._started:
            return self._load_task

        self._started = True
        self._closed = False

        self.session_state.set(await self.gateway.auth.get_session())
        self._listener_removers.append(
            self.gateway.auth.on_session_change(self.session_state.set)
        )
        self._listener_removers.append(
            self.session_state.subscribe(self._on_session_change)
        )

        await self._subscribe_feeds()

        self._load_task = asyncio.create_task(self.load())
        self._load_task.add_done_callback(self._consume_load_result)
        logger.info("Sync controller started")
        return self._load_task

    async def close(self) -> None:
        """Tear down subscriptions and discard in-flight work. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._started = False
        self._load_generation += 1

        pending = []
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
            pending.append(self._load_task)
        for task in list(self._comment_fetches.values()) + list(self._background):
            task.cancel()
            pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._comment_fetches.clear()
        self._open_comments.clear()

        for kind, unsubscribe in list(self._unsubscribers.items()):
            try:
                await unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to unsubscribe from {kind.value}: {e}")
        self._unsubscribers.clear()

        for remove in self._listener_removers:
            remove()
        self._listener_removers.clear()
        logger.info("Sync controller closed")

    async def __aenter__(self) -> "SyncController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _subscribe_feeds(self) -> None:
        for kind in SYNCED_KINDS:
            if kind in self._unsubscribers:
                continue
            self._unsubscribers[kind] = await self.gateway.feed.subscribe(
                kind, partial(self._on_change, kind)
            )

    def _consume_load_result(self, task: asyncio.Task) -> None:
        # Failures are already logged and reflected in state(kind)
        if not task.cancelled():
            task.exception()

    # ============ Initial load ============

    @track_latency("load")
    async def load(self) -> None:
        """
        Fetch people, connections and tasks in parallel and swap them into
        the store in one step.

        A newer load() or close() supersedes this one; a superseded or
        cancelled load leaves the store untouched.

        Raises:
            LoadError: a fetch failed; every synced kind is now in ERROR
        """
        self._load_generation += 1
        generation = self._load_generation
        previous = dict(self._states)
        self._set_states(LoadState.LOADING)

        try:
            people, connections, tasks = await asyncio.gather(
                self.gateway.people.list(),
                self.gateway.connections.list(),
                self.gateway.tasks.list(),
            )
        except asyncio.CancelledError:
            if generation == self._load_generation or self._closed:
                for kind, state in previous.items():
                    self._states[kind] = state
            raise
        except Exception as e:
            if generation != self._load_generation:
                return
            reason = str(e) or type(e).__name__
            self._set_states(LoadState.ERROR, reason)
            metrics.increment("error_count")
            logger.error(f"Initial load failed: {reason}")
            raise LoadError(reason) from e

        if generation != self._load_generation:
            logger.debug("Discarding superseded load result")
            return

        self.store.replace_all(people, connections, tasks)
        self._set_states(LoadState.READY)
        log_with_context(
            people=len(people), connections=len(connections), tasks=len(tasks)
        ).info("Initial load complete")
        self.maybe_bootstrap_core_node()

    # ============ Core node bootstrap ============

    def maybe_bootstrap_core_node(self) -> Optional[asyncio.Task]:
        """
        Create the core node if the graph is loaded, empty and editable.

        Runs at most once per session; a failed attempt clears the guard so
        the next qualifying change can try again.

        Returns:
            The bootstrap task when one was started
        """
        if self._closed or self.state(EntityKind.PEOPLE) is not LoadState.READY:
            return None
        if self.store.count(EntityKind.PEOPLE) > 0:
            return None
        session = self.session
        if session is None or self._bootstrap_attempted:
            return None

        # Set before the first await so re-entrant checks see it
        self._bootstrap_attempted = True
        metrics.increment("bootstrap_count")
        task = asyncio.create_task(self._bootstrap(session))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _bootstrap(self, session: Session) -> None:
        fields = PersonCreate(
            name=self.core_name,
            connection_type=ConnectionType.SYNTHESIS,
            pos_x=0.0,
            pos_y=0.0,
            pos_z=0.0,
        )
        try:
            person = await self.gateway.people.create(session, fields)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._bootstrap_attempted = False
            metrics.increment("error_count")
            logger.error(f"Core node bootstrap failed: {e}")
            return
        if not self._closed:
            self.store.upsert(EntityKind.PEOPLE, person)
            logger.info(f"Bootstrapped core node {person.id}")

    def _on_session_change(self, previous: Optional[Session], current: Optional[Session]) -> None:
        if previous is not None and (current is None or current.user_id != previous.user_id):
            self._bootstrap_attempted = False
        logger.info(f"Session changed: {'signed in' if current else 'signed out'}")
        self.maybe_bootstrap_core_node()

    # ============ Notifications ============

    def _on_change(self, kind: EntityKind, raw: dict) -> None:
        """Apply one change event from the feed of `kind`"""
        if self._closed:
            return
        metrics.increment("notification_count")
        try:
            change = decode_notification(raw)
        except NotificationDecodeError as e:
            metrics.increment("notification_rejected_count")
            logger.warning(f"Rejected {kind.value} notification: {e}")
            return
        if change.kind is not kind:
            metrics.increment("notification_rejected_count")
            logger.warning(
                f"Rejected {change.kind.value} notification on the {kind.value} feed"
            )
            return

        if change.op == "delete":
            self.store.remove(kind, change.entity_id)
            if kind is EntityKind.PEOPLE:
                self.maybe_bootstrap_core_node()
        else:
            self.store.upsert(kind, change.entity)

    # ============ Person intents ============

    def _require_session(self) -> Session:
        return require_session(self.session)

    @track_errors
    @track_latency("mutation")
    async def add_person(
        self,
        fields: Union[PersonCreate, dict[str, Any]],
        connect_to: Optional[Sequence[UUID]] = None,
    ) -> PersonEntity:
        """
        Create a person on a random point of the spawn shell, then connect it.

        Args:
            fields: Person fields; a position is sampled unless one is given
            connect_to: People to connect the new person to (new -> target)

        Returns:
            The created person as returned by the remote store

        Raises:
            NotAuthenticatedError: no session
            RemoteRejectionError: the person could not be created
            ValidationError: invalid fields or connect_to ids; nothing is created
            PartialFailureError: the person exists but the connections failed
        """
        session = self._require_session()
        if not isinstance(fields, PersonCreate):
            fields = PersonCreate.model_validate(fields)
        if not {"pos_x", "pos_y", "pos_z"} & fields.model_fields_set:
            x, y, z = sample_shell_position()
            fields = fields.model_copy(update={"pos_x": x, "pos_y": y, "pos_z": z})
        # Targets are validated before anything is committed
        targets = list(dict.fromkeys(_TARGET_IDS.validate_python(list(connect_to or []))))

        person = await self.gateway.people.create(session, fields)
        self.store.upsert(EntityKind.PEOPLE, person)

        targets = [t for t in targets if t != person.id]
        if not targets:
            return person

        try:
            created = await self.gateway.connections.create_many(
                session,
                [ConnectionCreate(from_person_id=person.id, to_person_id=t) for t in targets],
            )
        except RemoteRejectionError as e:
            raise PartialFailureError(person, e) from e
        for conn in created:
            self.store.upsert(EntityKind.CONNECTIONS, conn)
        return person

    async def archive_person(self, person_id: UUID) -> None:
        await self._set_archived(person_id, True)

    async def unarchive_person(self, person_id: UUID) -> None:
        await self._set_archived(person_id, False)

    @track_latency("mutation")
    async def _set_archived(self, person_id: UUID, archived: bool) -> None:
        session = self._require_session()
        await self._optimistic(
            EntityKind.PEOPLE,
            person_id,
            {"archived": archived},
            partial(self.gateway.people.update, session, person_id, {"archived": archived}),
        )

    @track_latency("mutation")
    async def update_position(self, person_id: UUID, x: float, y: float, z: float) -> None:
        """Persist a drag end; the node stays where it was dropped"""
        session = self._require_session()
        changes = {"pos_x": float(x), "pos_y": float(y), "pos_z": float(z)}
        await self._optimistic(
            EntityKind.PEOPLE,
            person_id,
            changes,
            partial(self.gateway.people.update, session, person_id, changes),
        )

    async def _optimistic(
        self,
        kind: EntityKind,
        entity_id: UUID,
        changes: dict[str, Any],
        remote: Callable[[], Awaitable[None]],
    ) -> None:
        """
        Merge `changes` into the local entity, then run the remote call.

        There is no compensating rollback: when the remote call fails the
        local change stays until a reload or notification overwrites it.
        Unknown ids skip the local step but still reach the remote store.
        """
        current = self.store.get(kind, entity_id)
        if current is not None:
            self.store.upsert(kind, replace(current, **changes))
        try:
            await remote()
        except RemoteRejectionError as e:
            metrics.increment("error_count")
            log_with_context(kind=kind.value, entity_id=str(entity_id)).warning(
                f"Optimistic update not confirmed: {e}"
            )
            raise

    # ============ Task intents ============

    @track_errors
    @track_latency("mutation")
    async def add_task(
        self,
        person_id: UUID,
        title: str,
        deadline: Optional[date] = None,
        connection_id: Optional[UUID] = None,
    ) -> TaskEntity:
        """Create a task; the store is updated once the remote store confirms"""
        session = self._require_session()
        fields = TaskCreate(
            person_id=person_id,
            title=title,
            deadline=deadline,
            connection_id=connection_id,
        )
        task = await self.gateway.tasks.create(session, fields)
        self.store.upsert(EntityKind.TASKS, task)
        return task

    @track_latency("mutation")
    async def update_task(self, task_id: UUID, patch: Union[TaskPatch, dict[str, Any]]) -> None:
        """
        Merge a partial update into the task and send it.

        Setting `status` also sets `completed` (True only for done).
        """
        session = self._require_session()
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.model_validate(patch)
        changes = patch.changes()
        if not changes:
            return
        await self._optimistic(
            EntityKind.TASKS,
            task_id,
            changes,
            partial(self.gateway.tasks.update, session, task_id, changes),
        )

    @track_errors
    @track_latency("mutation")
    async def delete_task(self, task_id: UUID) -> None:
        session = self._require_session()
        await self.gateway.tasks.delete(session, task_id)
        self.store.remove(EntityKind.TASKS, task_id)
        self.close_comments(task_id)

    # ============ Task comments ============

    def open_comments(self, task_id: UUID) -> asyncio.Task:
        """
        Start fetching the comments of a task for its detail view.

        Reopening restarts the fetch; the result is dropped if the view was
        closed in the meantime.
        """
        self._open_comments.add(task_id)
        previous = self._comment_fetches.pop(task_id, None)
        if previous is not None:
            previous.cancel()

        fetch = asyncio.create_task(self._fetch_comments(task_id))
        self._comment_fetches[task_id] = fetch

        def _done(t: asyncio.Task) -> None:
            if self._comment_fetches.get(task_id) is t:
                del self._comment_fetches[task_id]
            if not t.cancelled():
                t.exception()

        fetch.add_done_callback(_done)
        return fetch

    async def _fetch_comments(self, task_id: UUID) -> list[TaskCommentEntity]:
        try:
            comments = await self.gateway.comments.list_for_task(task_id)
        except RemoteRejectionError as e:
            logger.warning(f"Failed to fetch comments for task {task_id}: {e}")
            raise
        if task_id in self._open_comments and not self._closed:
            self.store.set_comments(task_id, comments)
        return comments

    def close_comments(self, task_id: UUID) -> None:
        """Close the detail view: cancel the fetch and forget cached comments"""
        self._open_comments.discard(task_id)
        fetch = self._comment_fetches.pop(task_id, None)
        if fetch is not None:
            fetch.cancel()
        self.store.drop_comments(task_id)

    @track_errors
    @track_latency("mutation")
    async def add_comment(self, task_id: UUID, body: str) -> TaskCommentEntity:
        session = self._require_session()
        comment = await self.gateway.comments.create(
            session, TaskCommentCreate(task_id=task_id, body=body)
        )
        if task_id in self._open_comments:
            self.store.upsert(EntityKind.TASK_COMMENTS, comment)
        return comment

    @track_errors
    @track_latency("mutation")
    async def delete_comment(self, comment_id: UUID) -> None:
        session = self._require_session()
        await self.gateway.comments.delete(session, comment_id)
        self.store.remove(EntityKind.TASK_COMMENTS, comment_id)

