"""
In-game calendar.

Seven days make a week, twelve weeks a season, four seasons a year. One
world tick advances one week. Weekly rollovers feed the population and rot
the stockpiles, wear down unpaid houses, pay servants and office holders,
expire old petitions and re-price the markets; yearly rollovers
age and breed the NPCs.
"""

import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.world import SEASONS, WorldState
from ..structured_logging.enhanced_logging_config import get_logger
from .food_consumption_service import FoodConsumptionService
from .house_service import HouseService
from .market_service import MarketService
from .npc_lifecycle_service import NpcLifecycleService
from .npc_reproduction_service import NpcReproductionService
from .resource_decay_service import ResourceDecayService
from .role_petition_service import RolePetitionService
from .role_service import RoleService
from .servant_service import ServantService

logger = get_logger(__name__)

DAYS_PER_WEEK = 7
WEEKS_PER_SEASON = 12
TICK_INTERVAL_SECONDS = 82800

TRAVEL_MODIFIERS = {"spring": 1.2, "summer": 0.9, "autumn": 1.0, "winter": 1.3}
GATHERING_MODIFIERS = {"spring": 0.8, "summer": 1.0, "autumn": 1.3, "winter": 0.5}
SEASON_DESCRIPTIONS = {
    "spring": "Planting season. Muddy roads slow travel and the fields give little yet.",
    "summer": "Growing season. Roads are dry and fast, and food spoils quickly in the heat.",
    "autumn": "Harvest season. Fields and forests yield their best before the cold.",
    "winter": "Famine risk. Snow slows every journey and little can be gathered.",
}


def format_date(state: WorldState) -> str:
    return f"Week {state.current_week} of {state.current_season.capitalize()}, Year {state.current_year}"


class CalendarService:
    """
    Advances WorldState and runs the weekly and yearly world simulation.

    With ``run_simulation`` off only the date moves; the CLI and the tests of
    the calendar arithmetic use that to keep the simulation out of the way.
    """

    def __init__(
        self,
        session: AsyncSession,
        rng: random.Random | None = None,
        tick_interval_seconds: int = TICK_INTERVAL_SECONDS,
        run_simulation: bool = True,
    ):
        self._session = session
        self._rng = rng or random.Random()
        self._tick_interval = tick_interval_seconds
        self._run_simulation = run_simulation

    async def get_current_state(self) -> WorldState:
        return await WorldState.current(self._session)

    async def advance_day(self) -> dict[str, Any]:
        """Move one day forward; day 8 rolls over into the next week."""
        state = await self.get_current_state()
        state.current_day += 1
        if state.current_day > DAYS_PER_WEEK:
            return await self.advance_week()
        state.last_tick_at = utcnow()
        await self._session.flush()
        return {"date": format_date(state), "week_advanced": False, "year_advanced": False}

    async def advance_week(self) -> dict[str, Any]:
        """Move to day 1 of the next week and run whatever the rollover triggers."""
        state = await self.get_current_state()
        old_date = format_date(state)
        year_advanced = False

        state.current_day = 1
        state.current_week += 1
        if state.current_week > WEEKS_PER_SEASON:
            state.current_week = 1
            next_index = (state.season_index() + 1) % len(SEASONS)
            if next_index == 0:
                state.current_year += 1
                year_advanced = True
                logger.info("New year has begun", year=state.current_year)
            state.current_season = SEASONS[next_index]
            logger.info("Season changed", season=state.current_season)

        state.last_tick_at = utcnow()
        await self._session.flush()
        logger.info("World time advanced", old_date=old_date, new_date=format_date(state))

        summary: dict[str, Any] = {"date": format_date(state), "week_advanced": True, "year_advanced": year_advanced}
        if self._run_simulation:
            summary.update(await self._run_weekly_events())
            if year_advanced:
                summary.update(await self._run_yearly_events())
        return summary

    async def _run_weekly_events(self) -> dict[str, Any]:
        food = await FoodConsumptionService(self._session, rng=self._rng).process_weekly_consumption()
        decay = await ResourceDecayService(self._session).process_weekly_decay()
        upkeep = await HouseService(self._session).process_upkeep_degradation()
        wages = await ServantService(self._session).process_weekly_wages()
        salaries = await RoleService(self._session).pay_salaries()
        expired = await RolePetitionService(self._session).expire_stale_petitions()
        prices = await MarketService(self._session).refresh_all_prices()
        return {
            "food_consumption": food,
            "resource_decay": decay,
            "house_upkeep": upkeep,
            "servant_wages": wages,
            "salaries_paid": len(salaries),
            "petitions_expired": expired,
            "market_prices_refreshed": prices,
        }

    async def _run_yearly_events(self) -> dict[str, Any]:
        aging = await NpcLifecycleService(self._session, rng=self._rng).process_yearly_aging()
        reproduction = await NpcReproductionService(self._session, rng=self._rng).process_yearly_reproduction()
        return {"npc_aging": aging, "npc_reproduction": reproduction}

    async def should_tick(self, now: datetime | None = None) -> bool:
        state = await self.get_current_state()
        if state.last_tick_at is None:
            return True
        return (now or utcnow()) - state.last_tick_at >= timedelta(seconds=self._tick_interval)

    async def process_tick(self, force: bool = False) -> dict[str, Any] | None:
        """Advance one week when the interval has elapsed (or when forced); None when skipped."""
        if not force and not await self.should_tick():
            return None
        return await self.advance_week()

    async def set_date(self, year: int, season: str, week: int, day: int = 1) -> WorldState:
        """
        Jump straight to a date.

        Raises:
            ValueError: If any component is out of range
        """
        if year < 1:
            raise ValueError("Year must be at least 1.")
        if season not in SEASONS:
            raise ValueError(f"Invalid season. Must be: {', '.join(SEASONS)}")
        if not 1 <= week <= WEEKS_PER_SEASON:
            raise ValueError(f"Week must be between 1 and {WEEKS_PER_SEASON}")
        if not 1 <= day <= DAYS_PER_WEEK:
            raise ValueError(f"Day must be between 1 and {DAYS_PER_WEEK}")

        state = await self.get_current_state()
        state.current_year = year
        state.current_season = season
        state.current_week = week
        state.current_day = day
        state.last_tick_at = utcnow()
        await self._session.flush()
        logger.info("World time set", date=format_date(state))
        return state

    async def get_travel_modifier(self) -> float:
        return TRAVEL_MODIFIERS[(await self.get_current_state()).current_season]

    async def get_gathering_modifier(self) -> float:
        return GATHERING_MODIFIERS[(await self.get_current_state()).current_season]

    async def get_calendar_data(self) -> dict[str, Any]:
        state = await self.get_current_state()
        return {
            "year": state.current_year,
            "season": state.current_season,
            "week": state.current_week,
            "week_of_year": state.week_of_year(),
            "day": state.current_day,
            "formatted_date": format_date(state),
            "season_description": SEASON_DESCRIPTIONS[state.current_season],
            "travel_modifier": TRAVEL_MODIFIERS[state.current_season],
            "gathering_modifier": GATHERING_MODIFIERS[state.current_season],
            "last_tick_at": state.last_tick_at.isoformat() if state.last_tick_at else None,
        }
