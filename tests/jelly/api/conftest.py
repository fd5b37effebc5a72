"""Fixtures for API tests.

The app runs against a SQLite file created by its own lifespan. Tests that
need to seed or inspect data do it through ``run_db``, which runs in a fresh
event loop so it never touches the TestClient's loop.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from jelly.infrastructure.persistence.sqlalchemy.repositories import SessionScope
from jelly.presentation.api.app import create_app
from jelly.presentation.api.config import API_V1_PREFIX
from jelly_config.settings import Settings
from tests.shared.fixtures.settings import build_settings

DbCallback = Callable[[SessionScope], Awaitable[Any]]


@pytest.fixture
def api_v1_prefix() -> str:
    return API_V1_PREFIX


@pytest.fixture
def api_settings(database_url) -> Settings:
    return build_settings(database_url_override=database_url)


@pytest.fixture
def app(api_settings):
    return create_app(settings=api_settings)


@pytest.fixture
def test_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def run_db(database_url, test_client) -> Callable[[DbCallback], Any]:
    """Run ``callback(repos)`` in one committed transaction and return its result."""

    def _run(callback: DbCallback) -> Any:
        async def _main() -> Any:
            engine = create_async_engine(database_url, poolclass=NullPool)
            try:
                session_maker = async_sessionmaker(
                    engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                async with SessionScope(session_maker) as repos:
                    result = await callback(repos)
                    await repos.commit()
                return result
            finally:
                await engine.dispose()

        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(_main())
        finally:
            loop.close()

    return _run
