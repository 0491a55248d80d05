"""
Weekly food consumption for villages and towns.

Every settlement eats from its own food stockpiles once per game week. One
unit of a food item feeds ``food_value`` people, cheapest food first. When
the stockpiles run short every resident NPC and player goes hungry: NPCs may
emigrate to a settlement with food or starve to death, players lose energy.
"""

import math
import random
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.item import Item, LocationStockpile
from ..models.npc import LocationNpc
from ..models.user import User
from ..models.world import Town, Village, WorldState
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

FOOD_ITEM_NAME = "Grain"
FOOD_SUBTYPES = ("food", "crop", "grain")
PEOPLE_FED_PER_FOOD = 4
MAX_WEEKS_WITHOUT_FOOD = 4
WEEKS_BEFORE_EMIGRATION = 2
EMIGRATION_CHANCE_PER_WEEK = 10
EMIGRATION_MIN_WEEKS_OF_FOOD = 10
DEFAULT_GRANARY_CAPACITY = {"village": 500, "town": 1000}

_RESULT_KEYS = (
    "food_consumed",
    "npcs_starving",
    "npcs_died",
    "npcs_emigrated",
    "players_starving",
    "players_penalized",
)


def calculate_starvation_penalty(weeks_without_food: int) -> int:
    """Energy lost by a hungry player: 10 per week, at most 50."""
    if weeks_without_food < 1:
        return 0
    return min(weeks_without_food * 10, 50)


class FoodConsumptionService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()

    async def process_weekly_consumption(self) -> dict[str, int]:
        state = await WorldState.current(self._session)
        results = {"villages_processed": 0, "towns_processed": 0}
        results.update({key: 0 for key in _RESULT_KEYS})

        villages = list((await self._session.execute(select(Village).order_by(Village.id))).scalars())
        for village in villages:
            location_results = await self._process_location("village", village, state.current_year)
            results["villages_processed"] += 1
            for key in _RESULT_KEYS:
                results[key] += location_results[key]

        towns = list((await self._session.execute(select(Town).order_by(Town.id))).scalars())
        for town in towns:
            location_results = await self._process_location("town", town, state.current_year)
            results["towns_processed"] += 1
            for key in _RESULT_KEYS:
                results[key] += location_results[key]

        logger.info(
            "Weekly food consumption processed",
            year=state.current_year,
            week=state.week_of_year(),
            **results,
        )
        return results

    # Population

    def _resident_player_clause(self, location_type: str, location_id: int):
        """Villagers live where their home village is; town residents are present with no home village."""
        if location_type == "village":
            return (User.home_village_id == location_id,)
        return (
            User.current_location_type == "town",
            User.current_location_id == location_id,
            User.home_village_id.is_(None),
        )

    async def _count_npcs(self, location_type: str, location_id: int, starving_only: bool = False) -> int:
        stmt = select(func.count(LocationNpc.id)).where(
            LocationNpc.alive_clause(),
            LocationNpc.location_type == location_type,
            LocationNpc.location_id == location_id,
        )
        if starving_only:
            stmt = stmt.where(LocationNpc.weeks_without_food > 0)
        return (await self._session.execute(stmt)).scalar_one()

    async def _count_players(self, location_type: str, location_id: int, starving_only: bool = False) -> int:
        stmt = select(func.count(User.id)).where(*self._resident_player_clause(location_type, location_id))
        if starving_only:
            stmt = stmt.where(User.weeks_without_food > 0)
        return (await self._session.execute(stmt)).scalar_one()

    # Consumption

    async def _process_location(self, location_type: str, location, current_year: int) -> dict[str, int]:
        results = {key: 0 for key in _RESULT_KEYS}

        population = await self._count_npcs(location_type, location.id) + await self._count_players(
            location_type, location.id
        )
        if population == 0:
            return results

        consumption = await self._consume_food(location_type, location.id, population)
        results["food_consumed"] = consumption["food_consumed"]

        if consumption["people_unfed"] > 0:
            npc_results = await self._apply_npc_starvation(location_type, location, current_year)
            results["npcs_starving"] = npc_results["starving"]
            results["npcs_died"] = npc_results["died"]
            results["npcs_emigrated"] = npc_results["emigrated"]

            player_results = await self._apply_player_starvation(location_type, location.id)
            results["players_starving"] = player_results["starving"]
            results["players_penalized"] = player_results["penalized"]
        else:
            await self._reset_starvation(location_type, location.id)

        await self._session.flush()
        return results

    async def get_food_stockpiles(self, location_type: str, location_id: int) -> list[LocationStockpile]:
        """Non-empty food stockpiles at a location, lowest food value first."""
        stmt = (
            select(LocationStockpile)
            .join(Item, LocationStockpile.item_id == Item.id)
            .where(
                LocationStockpile.location_type == location_type,
                LocationStockpile.location_id == location_id,
                LocationStockpile.quantity > 0,
                Item.subtype.in_(FOOD_SUBTYPES),
                Item.food_value > 0,
            )
            .order_by(Item.food_value, LocationStockpile.id)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def _consume_food(self, location_type: str, location_id: int, population: int) -> dict[str, int]:
        result = {"food_consumed": 0, "people_fed": 0, "people_unfed": population}

        for stockpile in await self.get_food_stockpiles(location_type, location_id):
            if result["people_unfed"] <= 0:
                break

            food_value = stockpile.item.food_value
            units = min(math.ceil(result["people_unfed"] / food_value), stockpile.quantity)
            if units <= 0:
                continue

            stockpile.quantity -= units
            result["food_consumed"] += units
            fed = min(units * food_value, result["people_unfed"])
            result["people_fed"] += fed
            result["people_unfed"] -= fed

        return result

    # Starvation

    async def _apply_npc_starvation(self, location_type: str, location, current_year: int) -> dict[str, int]:
        results = {"starving": 0, "died": 0, "emigrated": 0}
        stmt = (
            select(LocationNpc)
            .where(
                LocationNpc.alive_clause(),
                LocationNpc.location_type == location_type,
                LocationNpc.location_id == location.id,
            )
            .order_by(LocationNpc.id)
        )
        for npc in list((await self._session.execute(stmt)).scalars()):
            npc.weeks_without_food += 1
            results["starving"] += 1

            if (
                npc.weeks_without_food >= WEEKS_BEFORE_EMIGRATION
                and self._rng.randint(1, 100) <= EMIGRATION_CHANCE_PER_WEEK
                and await self._emigrate(npc, location_type, location)
            ):
                results["emigrated"] += 1
                continue

            if npc.weeks_without_food >= MAX_WEEKS_WITHOUT_FOOD:
                npc.die(current_year)
                results["died"] += 1
                logger.info(
                    "NPC died from starvation",
                    npc_id=npc.id,
                    npc_name=npc.npc_name,
                    location_type=npc.location_type,
                    location_id=npc.location_id,
                    weeks_without_food=npc.weeks_without_food,
                )
        return results

    async def _emigrate(self, npc: LocationNpc, from_type: str, from_location) -> bool:
        destination = await self.find_emigration_destination(from_type, from_location)
        if destination is None:
            return False

        to_type, to_location = destination
        npc.location_type = to_type
        npc.location_id = to_location.id
        npc.weeks_without_food = 0
        await self._session.flush()
        logger.info(
            "NPC emigrated due to starvation",
            npc_id=npc.id,
            npc_name=npc.npc_name,
            from_type=from_type,
            from_id=from_location.id,
            from_name=from_location.name,
            to_type=to_type,
            to_id=to_location.id,
            to_name=to_location.name,
        )
        return True

    async def calculate_weeks_of_food(self, location_type: str, location_id: int) -> int:
        """Food points per living NPC (at least one) at the location."""
        stockpiles = await self.get_food_stockpiles(location_type, location_id)
        food_points = sum(s.quantity * s.item.food_value for s in stockpiles)
        population = max(1, await self._count_npcs(location_type, location_id))
        return food_points // population

    async def find_emigration_destination(self, from_type: str, from_location) -> tuple[str, Any] | None:
        """
        Pick where a starving NPC moves to.

        Searches villages in the same barony, then towns in the same barony,
        then villages in other baronies. Candidates need at least ten weeks
        of food; the nearest by coordinates wins.
        """
        barony_id = from_location.barony_id
        exclude_village = from_location.id if from_type == "village" else 0
        exclude_town = from_location.id if from_type == "town" else 0

        searches = []
        stmt = select(Village).where(Village.id != exclude_village).order_by(Village.id)
        if barony_id:
            stmt = stmt.where(Village.barony_id == barony_id)
        searches.append(("village", stmt))

        stmt = select(Town).where(Town.id != exclude_town).order_by(Town.id)
        if barony_id:
            stmt = stmt.where(Town.barony_id == barony_id)
        searches.append(("town", stmt))

        stmt = select(Village).where(Village.id != exclude_village).order_by(Village.id)
        if barony_id:
            stmt = stmt.where(Village.barony_id != barony_id)
        searches.append(("village", stmt))

        for location_type, stmt in searches:
            candidates = [
                candidate
                for candidate in (await self._session.execute(stmt)).scalars()
                if await self.calculate_weeks_of_food(location_type, candidate.id) >= EMIGRATION_MIN_WEEKS_OF_FOOD
            ]
            if candidates:
                return location_type, self._closest(candidates, from_location)
        return None

    @staticmethod
    def _closest(candidates: list, origin):
        if origin.coordinates_x is None or origin.coordinates_y is None:
            return candidates[0]

        def distance(location) -> float:
            if location.coordinates_x is None or location.coordinates_y is None:
                return math.inf
            return (location.coordinates_x - origin.coordinates_x) ** 2 + (
                location.coordinates_y - origin.coordinates_y
            ) ** 2

        return min(candidates, key=distance)

    async def _apply_player_starvation(self, location_type: str, location_id: int) -> dict[str, int]:
        results = {"starving": 0, "penalized": 0}
        stmt = select(User).where(*self._resident_player_clause(location_type, location_id)).order_by(User.id)
        for player in list((await self._session.execute(stmt)).scalars()):
            player.weeks_without_food += 1
            results["starving"] += 1

            penalty = calculate_starvation_penalty(player.weeks_without_food)
            if penalty > 0:
                player.energy = max(0, player.energy - penalty)
                results["penalized"] += 1
                logger.info(
                    "Player received starvation penalty",
                    player_id=player.id,
                    weeks_without_food=player.weeks_without_food,
                    energy_lost=penalty,
                )
        return results

    async def _reset_starvation(self, location_type: str, location_id: int) -> None:
        await self._session.execute(
            update(LocationNpc)
            .where(
                LocationNpc.alive_clause(),
                LocationNpc.location_type == location_type,
                LocationNpc.location_id == location_id,
                LocationNpc.weeks_without_food > 0,
            )
            .values(weeks_without_food=0)
            .execution_options(synchronize_session="evaluate")
        )
        await self._session.execute(
            update(User)
            .where(*self._resident_player_clause(location_type, location_id), User.weeks_without_food > 0)
            .values(weeks_without_food=0)
            .execution_options(synchronize_session="evaluate")
        )

    # Reporting and supply

    async def get_food_stats(self, location_type: str, location) -> dict[str, Any]:
        """Granary overview for a village or town."""
        npc_count = await self._count_npcs(location_type, location.id)
        if npc_count == 0 and location.population > 0:
            npc_count = location.population
        player_count = await self._count_players(location_type, location.id)
        population = npc_count + player_count

        stockpiles = await self.get_food_stockpiles(location_type, location.id)
        food_points = sum(s.quantity * s.item.food_value for s in stockpiles)
        food_units = sum(s.quantity for s in stockpiles)
        avg_food_value = food_points / food_units if food_units > 0 else PEOPLE_FED_PER_FOOD

        breakdown = sorted(
            (
                {
                    "name": s.item.name,
                    "quantity": s.quantity,
                    "food_value": s.item.food_value,
                    "total_points": s.quantity * s.item.food_value,
                }
                for s in stockpiles
            ),
            key=lambda row: row["total_points"],
            reverse=True,
        )

        return {
            "food_available": food_units,
            "food_points": food_points,
            "food_needed_per_week": math.ceil(population / avg_food_value) if population > 0 else 0,
            "weeks_of_food": food_points // population if population > 0 else 0,
            "granary_capacity": location.granary_capacity or DEFAULT_GRANARY_CAPACITY[location_type],
            "population": population,
            "npc_count": npc_count,
            "player_count": player_count,
            "starving_npcs": await self._count_npcs(location_type, location.id, starving_only=True),
            "starving_players": await self._count_players(location_type, location.id, starving_only=True),
            "food_breakdown": breakdown,
        }

    async def get_village_food_stats(self, village: Village) -> dict[str, Any]:
        return await self.get_food_stats("village", village)

    async def get_town_food_stats(self, town: Town) -> dict[str, Any]:
        return await self.get_food_stats("town", town)

    async def _grain_stockpile(self, location_type: str, location_id: int) -> LocationStockpile | None:
        grain = (await self._session.execute(select(Item).where(Item.name == FOOD_ITEM_NAME))).scalar_one_or_none()
        if grain is None:
            return None
        stmt = select(LocationStockpile).where(
            LocationStockpile.location_type == location_type,
            LocationStockpile.location_id == location_id,
            LocationStockpile.item_id == grain.id,
        )
        stockpile = (await self._session.execute(stmt)).scalar_one_or_none()
        if stockpile is None:
            stockpile = LocationStockpile(
                location_type=location_type,
                location_id=location_id,
                item_id=grain.id,
                item=grain,
                quantity=0,
                weeks_stored=0,
            )
            self._session.add(stockpile)
            await self._session.flush()
        return stockpile

    async def add_food_to_location(self, location_type: str, location_id: int, amount: int) -> int:
        """Add grain up to the granary capacity; returns what was actually stored."""
        model = {"village": Village, "town": Town}.get(location_type)
        if model is None:
            return 0
        location = await self._session.get(model, location_id)
        if location is None:
            return 0

        stockpile = await self._grain_stockpile(location_type, location_id)
        if stockpile is None:
            return 0

        capacity = location.granary_capacity or DEFAULT_GRANARY_CAPACITY[location_type]
        added = min(amount, max(0, capacity - stockpile.quantity))
        if added > 0:
            stockpile.quantity += added
            await self._session.flush()
        return added

    async def initialize_village_food_supplies(self, weeks_of_food: int = 12) -> int:
        """Stock every empty village granary with enough grain for ``weeks_of_food`` weeks."""
        grain = (await self._session.execute(select(Item).where(Item.name == FOOD_ITEM_NAME))).scalar_one_or_none()
        if grain is None:
            logger.warning("Cannot initialize food supplies: grain item not found", item_name=FOOD_ITEM_NAME)
            return 0

        initialized = 0
        villages = list((await self._session.execute(select(Village).order_by(Village.id))).scalars())
        for village in villages:
            population = max(
                1, await self._count_npcs("village", village.id) + await self._count_players("village", village.id)
            )
            amount = math.ceil(population / PEOPLE_FED_PER_FOOD) * weeks_of_food

            stockpile = await self._grain_stockpile("village", village.id)
            if stockpile is not None and stockpile.quantity == 0:
                stockpile.quantity = min(amount, village.granary_capacity or DEFAULT_GRANARY_CAPACITY["village"])
                initialized += 1

        await self._session.flush()
        logger.info("Initialized village food supplies", villages_initialized=initialized, weeks_of_food=weeks_of_food)
        return initialized
