"""
Unit tests for player action queues.
"""

from datetime import timedelta

import pytest

from realm.game.action_queue_service import MAX_QUEUE_TOTAL, ActionQueueService, queue_to_dict
from realm.models.action_queue import ActionQueue
from realm.models.base import utcnow


@pytest.mark.asyncio
async def test_start_queue_validation(db_session, user):
    """Test unknown types, missing parameters and totals out of range are refused."""
    service = ActionQueueService(db_session)
    assert (await service.start_queue(user, "dance", {}))["message"] == "Unknown action type."
    assert (await service.start_queue(user, "cook", {}))["message"] == "Missing action parameter: recipe."
    result = await service.start_queue(user, "train", {"exercise": "attack"}, total=MAX_QUEUE_TOTAL + 1)
    assert result["message"] == f"Total must be between 0 and {MAX_QUEUE_TOTAL}."


@pytest.mark.asyncio
async def test_only_one_active_queue(db_session, user):
    """Test a second queue cannot start while one is active."""
    service = ActionQueueService(db_session)
    first = await service.start_queue(user, "train", {"exercise": "attack"}, total=3)
    assert first["success"]
    second = await service.start_queue(user, "train", {"exercise": "strength"})
    assert second["message"] == "You already have an active queue running."


@pytest.mark.asyncio
async def test_process_runs_until_total(db_session, user):
    """Test each iteration accumulates progress and the queue completes at its total."""
    service = ActionQueueService(db_session)
    queue = (await service.start_queue(user, "train", {"exercise": "attack"}, total=2))["queue"]

    assert await service.process_action_queue(queue.id) is True
    assert await service.process_action_queue(queue.id) is False

    assert queue.status == ActionQueue.STATUS_COMPLETED
    assert queue.completed == 2
    assert queue.total_xp == 50
    assert user.energy == 80
    assert await service.process_action_queue(queue.id) is False


@pytest.mark.asyncio
async def test_process_fails_when_action_is_refused(db_session, user):
    """Test a refused iteration stops the queue with the service's message."""
    user.energy = 5
    service = ActionQueueService(db_session)
    queue = (await service.start_queue(user, "train", {"exercise": "attack"}))["queue"]

    assert await service.process_action_queue(queue.id) is False
    assert queue.status == ActionQueue.STATUS_FAILED
    assert queue.stop_reason == "Not enough energy. Need 10 energy."
    assert queue.completed == 0


@pytest.mark.asyncio
async def test_process_cancels_for_infirmary(db_session, user):
    """Test a player in the infirmary has their queue cancelled."""
    service = ActionQueueService(db_session)
    queue = (await service.start_queue(user, "train", {"exercise": "attack"}))["queue"]
    user.is_in_infirmary = True
    user.infirmary_heals_at = utcnow() + timedelta(minutes=5)

    assert await service.process_action_queue(queue.id) is False
    assert queue.status == ActionQueue.STATUS_CANCELLED
    assert queue.stop_reason == "You were sent to the infirmary."


@pytest.mark.asyncio
async def test_cancel_and_dismiss(db_session, user):
    """Test an active queue must be cancelled before it can be dismissed."""
    service = ActionQueueService(db_session)
    queue = (await service.start_queue(user, "train", {"exercise": "attack"}))["queue"]

    assert (await service.dismiss_queue(user, queue.id))["message"] == "Cancel the queue before dismissing it."
    assert (await service.cancel_queue(user))["success"]
    assert (await service.cancel_queue(user))["message"] == "You have no active queue."
    assert (await service.dismiss_queue(user, queue.id))["success"]
    assert await service.get_latest_queue(user) is None
    assert queue_to_dict(queue)["dismissed_at"] is not None


@pytest.mark.asyncio
async def test_cleanup_stale_queues(db_session, user):
    """Test queues idle past the cutoff are failed."""
    service = ActionQueueService(db_session)
    queue = (await service.start_queue(user, "train", {"exercise": "attack"}))["queue"]
    queue.updated_at = utcnow() - timedelta(minutes=10)
    await db_session.flush()

    assert await service.cleanup_stale_queues() == 1
    assert queue.status == ActionQueue.STATUS_FAILED
    assert await service.list_active_queue_ids() == []
