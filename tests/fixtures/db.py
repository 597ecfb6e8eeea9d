# tests/fixtures/db.py
"""
DB fixtures for tests (async, in-memory SQLite):
- One shared in-memory database per run (StaticPool keeps the single
  connection alive across sessions)
- Tables built once from `Base.metadata`
- Function-scoped sessions; every table is emptied after each test
"""

from typing import AsyncGenerator

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db import base

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    future=True,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine.sync_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionFactory = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


@pytest.fixture(scope="session", autouse=True)
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session", autouse=True)
async def prepare_database():
    """Create every CMS table once for the whole session."""
    async with engine.begin() as conn:
        await conn.run_sync(base.Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(base.Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh session per test; all rows are deleted afterwards."""
    async with SessionFactory() as session:
        yield session
        await session.rollback()

    # Children first so foreign keys never block the cleanup
    async with engine.begin() as conn:
        for table in reversed(base.Base.metadata.sorted_tables):
            await conn.execute(table.delete())


def get_override_get_db(session: AsyncSession):
    """FastAPI dependency override using the provided session."""
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        yield session
    return _override
