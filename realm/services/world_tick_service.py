"""
WorldTickService for the realm server.

Polls the world on a fixed cadence. Each pass runs in its own session: the
calendar advances when its interval has elapsed, energy regenerates on its
own slower cadence, stale action queues are failed and finished timers
(servant tasks, headquarters construction) are settled. Daily taxes are
collected on the first pass of each day.
"""

import asyncio
import random
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..game.action_queue_service import ActionQueueService
from ..game.calendar_service import TICK_INTERVAL_SECONDS, CalendarService
from ..game.energy_service import REGEN_MINUTES, EnergyService
from ..game.religion_headquarters_service import ReligionHeadquartersService
from ..game.servant_service import ServantService
from ..game.tax_service import TaxService
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class WorldTickService:
    """
    Background loop driving the calendar and energy regeneration.

    The poll interval only controls how often the world is checked; the
    calendar decides for itself whether a week is due.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        poll_interval: float = 60.0,
        tick_interval_seconds: int = TICK_INTERVAL_SECONDS,
        energy_regen_minutes: int = REGEN_MINUTES,
        rng: random.Random | None = None,
    ):
        if poll_interval <= 0:
            raise ValueError("Poll interval must be positive")
        self.session_maker = session_maker
        self.poll_interval = poll_interval
        self.tick_interval_seconds = tick_interval_seconds
        self.energy_regen_seconds = energy_regen_minutes * 60
        self.is_running = False
        self.tick_count = 0
        self._rng = rng or random.Random()
        self._tick_task: asyncio.Task | None = None
        self._last_regen: float | None = None

    async def start(self) -> bool:
        if self.is_running:
            logger.warning("WorldTickService is already running")
            return True

        self.is_running = True
        self._tick_task = asyncio.create_task(self._tick_loop(), name="world_tick")
        logger.info(
            "WorldTickService started",
            poll_interval=self.poll_interval,
            tick_interval_seconds=self.tick_interval_seconds,
        )
        return True

    async def stop(self) -> bool:
        if not self.is_running:
            logger.warning("WorldTickService is not running")
            return True

        self.is_running = False
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        logger.info("WorldTickService stopped", tick_count=self.tick_count)
        return True

    def _regen_due(self) -> bool:
        now = asyncio.get_running_loop().time()
        if self._last_regen is None:
            self._last_regen = now
            return False
        if now - self._last_regen >= self.energy_regen_seconds:
            self._last_regen = now
            return True
        return False

    async def run_once(self, force_tick: bool = False, regenerate: bool | None = None) -> dict[str, Any]:
        """
        Run one pass in a single unit of work.

        Args:
            force_tick: Advance the calendar even if the interval has not elapsed
            regenerate: Override the energy cadence check

        Returns:
            Summary of what the pass did
        """
        if regenerate is None:
            regenerate = self._regen_due()

        async with self.session_maker() as session:
            try:
                calendar = CalendarService(
                    session, rng=self._rng, tick_interval_seconds=self.tick_interval_seconds
                )
                tick = await calendar.process_tick(force=force_tick)
                energy = await EnergyService(session).regenerate_all_players() if regenerate else 0
                stale = await ActionQueueService(session).cleanup_stale_queues()
                servant_tasks = await ServantService(session).process_due_tasks()
                constructions = await ReligionHeadquartersService(session).complete_due_constructions()
                taxes = await TaxService(session).collect_daily_taxes()
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        self.tick_count += 1
        if tick is not None:
            logger.info("World week advanced", date=tick["date"], tick_count=self.tick_count)
        return {
            "tick": tick,
            "energy_regenerated": energy,
            "stale_queues_failed": stale,
            "servant_tasks_completed": servant_tasks,
            "constructions_completed": constructions,
            "taxes": taxes,
        }

    async def _tick_loop(self) -> None:
        logger.info("World tick loop started")
        while self.is_running:
            try:
                await self.run_once()
                await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                logger.info("World tick loop cancelled")
                break
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: keep the loop alive; the failed pass is logged and retried
                logger.error("Error in world tick loop", error=str(e), tick_count=self.tick_count, exc_info=True)
                await asyncio.sleep(self.poll_interval)
        logger.info("World tick loop ended")

    def get_tick_count(self) -> int:
        return self.tick_count

    def reset_tick_count(self) -> None:
        self.tick_count = 0
        logger.info("World tick count reset")

    def get_poll_interval(self) -> float:
        return self.poll_interval

    def set_poll_interval(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        old = self.poll_interval
        self.poll_interval = interval
        logger.info("World poll interval changed", old_interval=old, new_interval=interval)

    def is_service_running(self) -> bool:
        return self.is_running
