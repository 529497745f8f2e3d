"""Integration test fixtures for multi-backend testing"""

from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio

from relgraph.db.entities import Session


@pytest.fixture(params=["memory", "postgres", "surrealdb"])
def backend(request):
    """Parameterized fixture for testing every backend"""
    return request.param


@pytest.fixture
def remote_session() -> Session:
    return Session(user_id=uuid4(), email="admin@example.com")


@pytest_asyncio.fixture
async def remote(backend) -> AsyncGenerator:
    """A connected gateway for the specified backend"""
    if backend == "memory":
        from relgraph.db.repositories.memory import MemoryGateway

        async with MemoryGateway() as gateway:
            yield gateway

    elif backend == "surrealdb":
        # Skip if surrealdb not installed
        pytest.importorskip("surrealdb")

        from relgraph.db.repositories.surrealdb import SurrealGateway
        from relgraph.db.surrealdb import SurrealConnection

        # Use temporary directory (each test gets clean slate)
        with tempfile.TemporaryDirectory() as tmpdir:
            connection = SurrealConnection(
                url=f"file://{tmpdir}/test", namespace="test", database="test"
            )
            gateway = await SurrealGateway.open(connection)
            yield gateway
            await gateway.close()

    elif backend == "postgres":
        # Skip if no database URL configured
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            pytest.skip("DATABASE_URL not configured")

        from relgraph.db.database import init_db
        from relgraph.db.models import Base
        from relgraph.db.repositories.postgres import PostgresGateway

        gateway = PostgresGateway(database_url=db_url)
        async with gateway.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await init_db(gateway.engine)

        async with gateway:
            yield gateway
