"""Shared fixtures: in-memory gateway, signed-in session, sync controller"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio

from relgraph.db.entities import (
    ConnectionEntity,
    ConnectionType,
    Credentials,
    PersonEntity,
    TaskEntity,
    TaskStatus,
)
from relgraph.db.repositories.auth import LocalSessionProvider, hash_password
from relgraph.db.repositories.memory import MemoryDatabase, MemoryGateway
from relgraph.observability import metrics
from relgraph.sync import SyncController

CORE_NAME = "Абай"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct horse battery staple"
# Minimum cost keeps sign-in fast in tests
ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD, rounds=4)


async def _settle(rounds: int = 5) -> None:
    """Let scheduled callbacks (feed echoes, background tasks) run"""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    return _settle


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(email=ADMIN_EMAIL, password=ADMIN_PASSWORD)


@pytest.fixture
def database() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def auth() -> LocalSessionProvider:
    return LocalSessionProvider(admin_email=ADMIN_EMAIL, admin_password_hash=ADMIN_PASSWORD_HASH)


@pytest.fixture
def gateway(database, auth) -> MemoryGateway:
    return MemoryGateway(database=database, auth=auth)


@pytest_asyncio.fixture
async def session(gateway, credentials):
    """Sign the gateway in as the admin"""
    return await gateway.auth.sign_in(credentials)


@pytest_asyncio.fixture
async def controller(gateway) -> AsyncGenerator[SyncController, None]:
    """Controller that has not been started yet"""
    ctrl = SyncController(gateway, core_name=CORE_NAME)
    yield ctrl
    await ctrl.close()


@pytest_asyncio.fixture
async def ready_controller(controller, session) -> SyncController:
    """Signed-in controller after a completed load (core node bootstrapped)"""
    await (await controller.start())
    await _settle()
    return controller


# Test data fixtures
@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def core_person(base_time) -> PersonEntity:
    return PersonEntity(
        id=uuid4(),
        name=CORE_NAME,
        connection_type=ConnectionType.SYNTHESIS,
        pos_x=3.0,
        pos_y=-1.0,
        pos_z=2.0,
        created_at=base_time,
    )


@pytest.fixture
def alice(base_time) -> PersonEntity:
    return PersonEntity(
        id=uuid4(),
        name="Alice",
        connection_type=ConnectionType.BUSINESS,
        pos_x=8.0,
        created_at=base_time + timedelta(minutes=1),
    )


@pytest.fixture
def bob(base_time) -> PersonEntity:
    return PersonEntity(
        id=uuid4(),
        name="Bob",
        archived=True,
        pos_y=9.0,
        created_at=base_time + timedelta(minutes=2),
    )


@pytest.fixture
def alice_core(alice, core_person, base_time) -> ConnectionEntity:
    return ConnectionEntity(
        id=uuid4(),
        from_person_id=alice.id,
        to_person_id=core_person.id,
        created_at=base_time + timedelta(minutes=3),
    )


@pytest.fixture
def sample_tasks(alice, bob, base_time) -> list[TaskEntity]:
    """Three tasks covering explicit status, legacy rows and missing deadlines"""
    return [
        TaskEntity(
            id=uuid4(),
            person_id=alice.id,
            title="Call about the contract",
            deadline=date(2024, 5, 3),
            status=None,
            completed=True,
            created_at=base_time,
        ),
        TaskEntity(
            id=uuid4(),
            person_id=alice.id,
            title="Send notes",
            deadline=date(2024, 5, 3),
            status=TaskStatus.IN_PROGRESS,
            completed=False,
            created_at=base_time + timedelta(minutes=1),
        ),
        TaskEntity(
            id=uuid4(),
            person_id=bob.id,
            title="Read the book",
            deadline=None,
            created_at=base_time + timedelta(minutes=2),
        ),
    ]
