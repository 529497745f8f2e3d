"""Gateway factory for backend selection"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from ..config import settings
from .base import RemoteGateway


async def create_gateway(backend: Optional[str] = None) -> RemoteGateway:
    """
    Build and connect a gateway for the configured backend.

    Backends: "memory" (default), "postgres", "surrealdb".
    """
    backend = backend or getattr(settings, "backend", "memory")

    if backend == "surrealdb":
        from .surrealdb import SurrealGateway

        return await SurrealGateway.open()
    elif backend == "postgres":
        from .postgres import PostgresGateway

        gateway = PostgresGateway()
    elif backend == "memory":
        from .memory import MemoryGateway

        gateway = MemoryGateway()
    else:
        raise ValueError(f"Unknown backend: {backend!r}")

    await gateway.connect()
    return gateway


@asynccontextmanager
async def get_gateway(backend: Optional[str] = None) -> AsyncGenerator[RemoteGateway, None]:
    """
    Get a connected gateway based on configured backend.

    Usage:
        async with get_gateway() as gateway:
            people = await gateway.people.list()
    """
    gateway = await create_gateway(backend)
    try:
        yield gateway
    finally:
        await gateway.close()
