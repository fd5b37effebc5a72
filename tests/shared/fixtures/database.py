"""
SQLite-file database fixtures.

Each test gets its own database file under ``tmp_path``. Engines use
NullPool, so every session opens its own connection; two sessions used
concurrently behave like two clients of the same database.

Usage:
    async def test_something(db_session):
        repo = SomeRepository(db_session)
        await repo.add(entity)
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from jelly.infrastructure.persistence.sqlalchemy.init_db import create_tables


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'jelly-test.db'}"


@pytest_asyncio.fixture
async def async_engine(database_url):
    """Async engine with every table created."""
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    """
    Provide a database session for one test.

    Uncommitted changes are rolled back afterwards.
    """
    async with session_maker() as session:
        yield session
        await session.rollback()
