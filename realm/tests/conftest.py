"""
Test configuration and fixtures for the realm test suite.

Every test gets its own in-memory SQLite database with the full schema,
a deterministic random generator and small factories for the rows most
tests need.
"""

import os

# Environment must be in place before realm.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")
os.environ.setdefault("GAME_WORLD_TICK_ENABLED", "false")
os.environ.setdefault("GAME_ACTION_QUEUE_ENABLED", "false")

import random  # noqa: E402
from collections.abc import AsyncGenerator, Generator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from realm import models  # noqa: E402,F401
from realm.config import reset_config  # noqa: E402
from realm.models.base import Base  # noqa: E402
from realm.models.item import Item  # noqa: E402
from realm.models.user import User  # noqa: E402
from realm.models.world import Barony, Kingdom, Town, Village, WorldState  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def rng() -> random.Random:
    """Deterministic random source for services that roll dice."""
    return random.Random(42)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def world(db_session: AsyncSession) -> dict[str, Any]:
    """A kingdom with one barony, one town and one village, plus the calendar row."""
    state = await WorldState.current(db_session)
    kingdom = Kingdom(name="Valoria")
    db_session.add(kingdom)
    await db_session.flush()
    barony = Barony(name="Ashford", kingdom_id=kingdom.id)
    db_session.add(barony)
    await db_session.flush()
    town = Town(name="Ravenhold", barony_id=barony.id, population=100)
    village = Village(name="Millbrook", barony_id=barony.id, population=20)
    db_session.add_all([town, village])
    await db_session.flush()
    return {"state": state, "kingdom": kingdom, "barony": barony, "town": town, "village": village}


@pytest.fixture
def make_item(db_session: AsyncSession):
    """Factory creating catalogue items; keyword arguments override the defaults."""

    async def _make(name: str, **attrs: Any) -> Item:
        values: dict[str, Any] = {"type": "resource", "base_value": 10}
        values.update(attrs)
        item = Item(name=name, **values)
        db_session.add(item)
        await db_session.flush()
        return item

    return _make


@pytest.fixture
def make_user(db_session: AsyncSession, world):
    """Factory creating players standing in the test village."""
    counter = {"n": 0}

    async def _make(**attrs: Any) -> User:
        counter["n"] += 1
        village = world["village"]
        values: dict[str, Any] = {
            "username": f"player{counter['n']}",
            "home_village_id": village.id,
            "current_location_type": "village",
            "current_location_id": village.id,
            "gold": 1000,
        }
        values.update(attrs)
        user = User(**values)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user) -> User:
    return await make_user()
