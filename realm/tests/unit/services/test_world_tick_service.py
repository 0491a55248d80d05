"""
Unit tests for the world tick background service.
"""

import random
from datetime import timedelta

import pytest

from realm.game.action_queue_service import ActionQueueService
from realm.models.base import utcnow
from realm.models.user import User
from realm.models.world import WorldState
from realm.services.world_tick_service import WorldTickService


def test_poll_interval_must_be_positive(session_maker):
    """Test a non-positive poll interval is rejected."""
    with pytest.raises(ValueError, match="Poll interval must be positive"):
        WorldTickService(session_maker, poll_interval=0)
    service = WorldTickService(session_maker)
    with pytest.raises(ValueError):
        service.set_poll_interval(-1)
    service.set_poll_interval(5)
    assert service.get_poll_interval() == 5


@pytest.mark.asyncio
async def test_forced_tick_advances_week_and_regenerates(db_session, session_maker, user):
    """Test a forced pass advances the calendar and tops up energy in one commit."""
    user.energy = 50
    await db_session.commit()
    service = WorldTickService(session_maker, tick_interval_seconds=3600, rng=random.Random(7))

    result = await service.run_once(force_tick=True, regenerate=True)

    assert result["tick"]["week_advanced"]
    assert result["energy_regenerated"] == 1
    assert result["servant_tasks_completed"] == 0
    assert result["constructions_completed"] == 0
    assert service.get_tick_count() == 1
    async with session_maker() as session:
        assert (await WorldState.current(session)).current_week == 2
        assert (await session.get(User, user.id)).energy < 100


@pytest.mark.asyncio
async def test_pass_without_due_tick(db_session, session_maker, world):
    """Test an unforced pass inside the interval leaves the calendar alone."""
    world["state"].last_tick_at = utcnow()
    await db_session.commit()
    service = WorldTickService(session_maker, tick_interval_seconds=3600)

    result = await service.run_once()

    assert result["tick"] is None
    assert result["energy_regenerated"] == 0
    service.reset_tick_count()
    assert service.get_tick_count() == 0


@pytest.mark.asyncio
async def test_pass_fails_stale_queues(db_session, session_maker, user, world):
    """Test queues with no recent progress are failed by the tick."""
    world["state"].last_tick_at = utcnow()
    queue = (await ActionQueueService(db_session).start_queue(user, "train", {"exercise": "attack"}))["queue"]
    await db_session.flush()
    queue.updated_at = utcnow() - timedelta(hours=1)
    await db_session.commit()

    result = await WorldTickService(session_maker, tick_interval_seconds=3600).run_once(regenerate=False)
    assert result["stale_queues_failed"] == 1


@pytest.mark.asyncio
async def test_start_and_stop(session_maker, world, db_session):
    """Test the loop can be started and stopped cleanly."""
    await db_session.commit()
    service = WorldTickService(session_maker, poll_interval=3600, tick_interval_seconds=3600)
    assert await service.start()
    assert service.is_service_running()
    assert await service.stop()
    assert not service.is_service_running()


@pytest.mark.asyncio
async def test_taxes_collected_once_per_day(db_session, session_maker, user, world):
    """Test the first pass of a day collects taxes and later passes skip them."""
    world["state"].last_tick_at = utcnow()
    await db_session.commit()
    service = WorldTickService(session_maker, tick_interval_seconds=3600)

    first = await service.run_once(regenerate=False)
    second = await service.run_once(regenerate=False)

    assert first["taxes"]["players_taxed"] == 1
    assert first["taxes"]["player_tax_total"] == 100
    assert second["taxes"]["already_collected"] is True
    async with session_maker() as session:
        assert (await session.get(User, user.id)).gold == 900
