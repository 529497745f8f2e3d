"""PostgreSQL engine, session management and change triggers"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings
from .models import Base


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Async engine for one gateway; disposed by its owner"""
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_session(factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """One transaction: commit on success, roll back on any error"""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

# Tables whose row changes are pushed to clients
NOTIFY_TABLES = ("people", "connections", "tasks")

# pg_notify payloads are capped at 8000 bytes, so only the row id is sent;
# PostgresChangeFeed reads the row back before dispatching
NOTIFY_FUNCTION = """
CREATE OR REPLACE FUNCTION relgraph_notify_change() RETURNS trigger AS $$
DECLARE
    row_id uuid;
BEGIN
    IF TG_OP = 'DELETE' THEN
        row_id := OLD.id;
    ELSE
        row_id := NEW.id;
    END IF;
    PERFORM pg_notify(
        TG_ARGV[0],
        json_build_object(
            'op', lower(TG_OP),
            'kind', TG_TABLE_NAME,
            'payload', json_build_object('id', row_id)
        )::text
    );
    RETURN NULL;
END;
$$ LANGUAGE plpgsql
"""


def asyncpg_dsn(url: Optional[str] = None) -> str:
    """SQLAlchemy URL -> plain DSN accepted by asyncpg.connect()"""
    url = url or settings.database_url
    return url.replace("postgresql+asyncpg://", "postgresql://", 1)


async def install_notify_triggers(bind: AsyncEngine, channel: Optional[str] = None) -> None:
    """Create (or refresh) the row triggers feeding LISTEN/NOTIFY"""
    channel = channel or settings.notify_channel
    if not channel.isidentifier():
        raise ValueError(f"Invalid notify channel name: {channel!r}")
    async with bind.begin() as conn:
        await conn.exec_driver_sql(NOTIFY_FUNCTION)
        for table in NOTIFY_TABLES:
            trigger = f"{table}_notify_change"
            await conn.exec_driver_sql(f"DROP TRIGGER IF EXISTS {trigger} ON {table}")
            await conn.exec_driver_sql(
                f"CREATE TRIGGER {trigger} AFTER INSERT OR UPDATE OR DELETE ON {table} "
                f"FOR EACH ROW EXECUTE FUNCTION relgraph_notify_change('{channel}')"
            )


async def init_db(bind: AsyncEngine) -> None:
    """Initialize database tables and change triggers"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await install_notify_triggers(bind)
