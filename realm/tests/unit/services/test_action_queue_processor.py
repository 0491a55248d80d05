"""
Unit tests for the background action queue processor.
"""

import pytest

from realm.game.action_queue_service import ActionQueueService
from realm.models.action_queue import ActionQueue
from realm.services.action_queue_processor import ActionQueueProcessor


@pytest.fixture
def committed_queue(db_session, user):
    """A committed training queue for the test player."""

    async def _make(total=2):
        queue = (await ActionQueueService(db_session).start_queue(user, "train", {"exercise": "attack"}, total=total))[
            "queue"
        ]
        await db_session.commit()
        return queue.id

    return _make


async def _load_queue(session_maker, queue_id):
    async with session_maker() as session:
        return await session.get(ActionQueue, queue_id)


@pytest.mark.asyncio
async def test_run_iteration_commits_progress(session_maker, committed_queue):
    """Test each iteration commits in its own session."""
    queue_id = await committed_queue()
    processor = ActionQueueProcessor(session_maker, delay_seconds=0)

    assert await processor.run_iteration(queue_id) is True
    queue = await _load_queue(session_maker, queue_id)
    assert queue.completed == 1

    assert await processor.run_iteration(queue_id) is False
    queue = await _load_queue(session_maker, queue_id)
    assert queue.status == ActionQueue.STATUS_COMPLETED
    assert processor.iterations_processed == 2


@pytest.mark.asyncio
async def test_process_due_reschedules_until_done(session_maker, committed_queue):
    """Test a due queue keeps being rescheduled until it stops."""
    queue_id = await committed_queue(total=3)
    processor = ActionQueueProcessor(session_maker, delay_seconds=0)
    processor.schedule(queue_id, delay=0)

    assert await processor.process_due() == 3
    assert processor.pending_count() == 0
    assert (await _load_queue(session_maker, queue_id)).completed == 3


@pytest.mark.asyncio
async def test_future_iterations_wait(session_maker, committed_queue):
    """Test iterations scheduled in the future are not run early."""
    queue_id = await committed_queue()
    processor = ActionQueueProcessor(session_maker, delay_seconds=60)
    processor.schedule(queue_id)

    assert await processor.process_due() == 0
    assert processor.pending_count() == 1


@pytest.mark.asyncio
async def test_crashing_iteration_fails_the_queue(session_maker, committed_queue, mocker):
    """Test an exception inside an iteration fails that queue and keeps the worker alive."""
    queue_id = await committed_queue()
    mocker.patch.object(ActionQueueService, "process_action_queue", side_effect=RuntimeError("boom"))
    processor = ActionQueueProcessor(session_maker, delay_seconds=0)

    assert await processor.run_iteration(queue_id) is False
    queue = await _load_queue(session_maker, queue_id)
    assert queue.status == ActionQueue.STATUS_FAILED
    assert queue.stop_reason == "An unexpected error occurred."


@pytest.mark.asyncio
async def test_start_recovers_active_queues(session_maker, committed_queue):
    """Test start re-schedules queues left active and stop shuts the loop down."""
    await committed_queue()
    processor = ActionQueueProcessor(session_maker, delay_seconds=60)

    assert await processor.recover_active_queues() == 1
    assert processor.pending_count() == 1

    assert await processor.start()
    assert processor.is_running
    assert await processor.stop()
    assert not processor.is_running
