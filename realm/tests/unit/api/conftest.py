"""
Fixtures for the HTTP API tests.

Requests run against the real application with the session dependency
pointed at the per-test database.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from realm.app.factory import create_app
from realm.database import get_async_session


@pytest_asyncio.fixture
async def app(session_maker):
    application = create_app()

    async def _session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_async_session] = _session
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture
async def player(db_session, user):
    """The test player, committed so request sessions can see it."""
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def auth_headers(player):
    return {"X-Player-Id": str(player.id)}
