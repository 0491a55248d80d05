"""
ActionQueueProcessor for the realm server.

Runs action queue iterations in the background. Each pending iteration is a
``(due_time, queue_id)`` entry on a heap; every iteration gets its own
session and commit so one failing queue never rolls back another.
"""

import asyncio
import heapq
import random

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..game.action_queue_service import ActionQueueService
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_DELAY_SECONDS = 3.0


class ActionQueueProcessor:
    """
    Background worker for action queues.

    Iterations run one at a time in due order; a successful iteration
    schedules the next one ``delay_seconds`` later.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        rng: random.Random | None = None,
    ):
        self.session_maker = session_maker
        self.delay_seconds = delay_seconds
        self.is_running = False
        self.iterations_processed = 0
        self._rng = rng or random.Random()
        self._pending: list[tuple[float, int]] = []
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    def schedule(self, queue_id: int, delay: float | None = None) -> None:
        """Queue an iteration; ``delay`` defaults to the configured pause, 0 runs it next."""
        due = self._now() + (self.delay_seconds if delay is None else delay)
        heapq.heappush(self._pending, (due, queue_id))
        self._wakeup.set()

    def pending_count(self) -> int:
        return len(self._pending)

    async def run_iteration(self, queue_id: int) -> bool:
        """Run one iteration in its own unit of work; True when it should continue."""
        async with self.session_maker() as session:
            try:
                should_continue = await ActionQueueService(session, rng=self._rng).process_action_queue(queue_id)
                await session.commit()
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a broken iteration must fail its queue, not the worker
                await session.rollback()
                logger.error(
                    "Action queue iteration failed",
                    queue_id=queue_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                should_continue = False
                await self._fail_queue(queue_id)
        self.iterations_processed += 1
        return should_continue

    async def _fail_queue(self, queue_id: int) -> None:
        async with self.session_maker() as session:
            await ActionQueueService(session).mark_unexpected_failure(queue_id)
            await session.commit()

    async def process_due(self) -> int:
        """Run every iteration that is due now; returns how many ran."""
        ran = 0
        while self._pending and self._pending[0][0] <= self._now():
            _, queue_id = heapq.heappop(self._pending)
            if await self.run_iteration(queue_id):
                self.schedule(queue_id)
            ran += 1
        return ran

    async def recover_active_queues(self) -> int:
        """Re-schedule queues left active by a previous process after failing stale ones."""
        async with self.session_maker() as session:
            service = ActionQueueService(session)
            await service.cleanup_stale_queues()
            queue_ids = await service.list_active_queue_ids()
            await session.commit()
        for queue_id in queue_ids:
            self.schedule(queue_id, delay=0)
        return len(queue_ids)

    async def start(self) -> bool:
        if self.is_running:
            logger.warning("ActionQueueProcessor is already running")
            return True

        recovered = await self.recover_active_queues()
        self.is_running = True
        self._task = asyncio.create_task(self._loop(), name="action_queue_processor")
        logger.info("ActionQueueProcessor started", delay_seconds=self.delay_seconds, recovered_queues=recovered)
        return True

    async def stop(self) -> bool:
        if not self.is_running:
            logger.warning("ActionQueueProcessor is not running")
            return True

        self.is_running = False
        self._wakeup.set()
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("ActionQueueProcessor stopped", iterations_processed=self.iterations_processed)
        return True

    async def _loop(self) -> None:
        logger.info("Action queue loop started")
        while self.is_running:
            try:
                await self.process_due()

                self._wakeup.clear()
                timeout = None
                if self._pending:
                    timeout = max(0.0, self._pending[0][0] - self._now())
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
                except TimeoutError:
                    pass
            except asyncio.CancelledError:
                logger.info("Action queue loop cancelled")
                break
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: keep the worker alive; the error is logged
                logger.error("Error in action queue loop", error=str(e), exc_info=True)
                await asyncio.sleep(self.delay_seconds)
        logger.info("Action queue loop ended")
