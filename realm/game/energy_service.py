"""
Player energy: spending, restoring and the slow regeneration tick.
"""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# One point of energy every REGEN_MINUTES minutes
REGEN_MINUTES = 5
DEATH_ENERGY_FRACTION = 0.25


class EnergyService:
    def __init__(self, session: AsyncSession, regen_minutes: int = REGEN_MINUTES):
        self._session = session
        self._regen_minutes = regen_minutes

    @staticmethod
    def has_energy(user: User, amount: int) -> bool:
        return amount <= 0 or user.energy >= amount

    async def consume_energy(self, user: User, amount: int) -> bool:
        if not self.has_energy(user, amount):
            return False
        user.energy -= max(0, amount)
        await self._session.flush()
        return True

    async def add_energy(self, user: User, amount: int) -> int:
        """Restore up to ``amount`` energy without passing max; returns what was gained."""
        gained = max(0, min(amount, user.max_energy - user.energy))
        if gained:
            user.energy += gained
            await self._session.flush()
        return gained

    async def set_energy(self, user: User, amount: int) -> None:
        user.energy = max(0, min(amount, user.max_energy))
        await self._session.flush()

    async def set_energy_on_death(self, user: User) -> None:
        user.energy = int(user.energy * DEATH_ENERGY_FRACTION)
        await self._session.flush()

    async def regenerate_energy(self, user: User) -> int:
        if user.energy >= user.max_energy:
            return 0
        user.energy += 1
        user.last_energy_regen_at = utcnow()
        await self._session.flush()
        return 1

    async def regenerate_all_players(self) -> int:
        """Give every player below max one point; returns how many were topped up."""
        stmt = (
            update(User)
            .where(User.energy < User.max_energy)
            .values(energy=User.energy + 1, last_energy_regen_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        result = await self._session.execute(stmt)
        affected = result.rowcount or 0
        logger.info("Energy regenerated", players_affected=affected)
        return affected

    def get_regen_info(self, user: User, now: datetime | None = None) -> dict:
        at_max = user.energy >= user.max_energy
        seconds_until_next = None
        if not at_max:
            interval = self._regen_minutes * 60
            if user.last_energy_regen_at is None:
                seconds_until_next = interval
            else:
                elapsed = ((now or utcnow()) - user.last_energy_regen_at).total_seconds()
                seconds_until_next = int(max(0, interval - elapsed))
        return {
            "current": user.energy,
            "max": user.max_energy,
            "at_max": at_max,
            "regen_rate": self._regen_minutes,
            "seconds_until_next": seconds_until_next,
        }
