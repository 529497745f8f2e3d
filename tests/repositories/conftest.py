"""Test fixtures for repository tests"""

from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio

from relgraph.db.entities import Session


@pytest.fixture
def admin_session() -> Session:
    """A session handed to repositories directly, bypassing sign-in"""
    return Session(user_id=uuid4(), email="admin@example.com")


# SurrealDB fixtures
@pytest_asyncio.fixture
async def surreal_gateway() -> AsyncGenerator:
    """SurrealDB gateway on a temporary embedded database"""
    # Skip if surrealdb not installed
    pytest.importorskip("surrealdb")

    from relgraph.db.repositories.surrealdb import SurrealGateway
    from relgraph.db.surrealdb import SurrealConnection

    # Use temporary directory for test database
    with tempfile.TemporaryDirectory() as tmpdir:
        connection = SurrealConnection(url=f"file://{tmpdir}/test", namespace="test", database="test")
        gateway = await SurrealGateway.open(connection)

        yield gateway

        await gateway.close()


# PostgreSQL fixtures
@pytest_asyncio.fixture
async def postgres_gateway() -> AsyncGenerator:
    """PostgreSQL gateway on a fresh schema; needs DATABASE_URL"""
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
    await gateway.connect()

    yield gateway

    await gateway.close()
