"""
Weekly decay of perishable goods.

Each week a perishable stockpile or inventory slot ages by one week. Once it
reaches the item's spoil age it turns into the item named by ``decays_into``
(or vanishes); otherwise it loses ``floor(rate * seasonal modifier)`` units.
"""

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.item import Item, LocationStockpile, PlayerInventory
from ..models.world import WorldState
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SUMMER_DECAY_MODIFIER = 1.5
WINTER_DECAY_MODIFIER = 0.5


def seasonal_decay_modifier(season: str) -> float:
    if season == "summer":
        return SUMMER_DECAY_MODIFIER
    if season == "winter":
        return WINTER_DECAY_MODIFIER
    return 1.0


def calculate_decay_amount(quantity: int, rate_per_week: int, modifier: float) -> int:
    return min(int(rate_per_week * modifier), quantity)


def _perishable_clause():
    return or_(Item.decay_rate_per_week > 0, Item.spoil_after_weeks.is_not(None))


def _empty_counts() -> dict[str, int]:
    return {"processed": 0, "decayed": 0, "spoiled": 0, "destroyed": 0}


class ResourceDecayService:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def process_weekly_decay(self) -> dict[str, int]:
        state = await WorldState.current(self._session)
        modifier = seasonal_decay_modifier(state.current_season)

        stockpiles = await self._process_stockpiles(modifier)
        inventory = await self._process_inventory(modifier)

        results = {
            "stockpiles_processed": stockpiles["processed"],
            "inventory_processed": inventory["processed"],
            "items_decayed": stockpiles["decayed"] + inventory["decayed"],
            "items_spoiled": stockpiles["spoiled"] + inventory["spoiled"],
            "items_destroyed": stockpiles["destroyed"] + inventory["destroyed"],
        }
        logger.info(
            "Weekly resource decay processed",
            year=state.current_year,
            week=state.week_of_year(),
            season=state.current_season,
            decay_modifier=modifier,
            **results,
        )
        return results

    async def _spoiled_item(self, item: Item) -> Item | None:
        if not item.decays_into:
            return None
        stmt = select(Item).where(Item.name == item.decays_into)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _process_stockpiles(self, modifier: float) -> dict[str, int]:
        counts = _empty_counts()
        stmt = (
            select(LocationStockpile)
            .join(Item, LocationStockpile.item_id == Item.id)
            .where(LocationStockpile.quantity > 0, _perishable_clause())
            .order_by(LocationStockpile.id)
        )
        for stockpile in list((await self._session.execute(stmt)).scalars()):
            counts["processed"] += 1
            item = stockpile.item
            stockpile.weeks_stored += 1
            stockpile.last_decay_at = utcnow()

            if item.spoils_after_time() and stockpile.weeks_stored >= item.spoil_after_weeks:
                counts["spoiled"] += stockpile.quantity
                await self._spoil_stockpile(stockpile, item)
                continue

            if item.decays_over_time():
                amount = calculate_decay_amount(stockpile.quantity, item.decay_rate_per_week, modifier)
                if amount > 0:
                    stockpile.quantity -= amount
                    counts["decayed"] += amount
                    if stockpile.quantity <= 0:
                        await self._session.delete(stockpile)
                        counts["destroyed"] += 1
                    logger.debug(
                        "Stockpile item decayed",
                        location_type=stockpile.location_type,
                        location_id=stockpile.location_id,
                        item=item.name,
                        decay_amount=amount,
                        remaining=stockpile.quantity,
                    )
        await self._session.flush()
        return counts

    async def _spoil_stockpile(self, stockpile: LocationStockpile, item: Item) -> None:
        spoiled = await self._spoiled_item(item)
        if spoiled is not None:
            stmt = select(LocationStockpile).where(
                LocationStockpile.location_type == stockpile.location_type,
                LocationStockpile.location_id == stockpile.location_id,
                LocationStockpile.item_id == spoiled.id,
            )
            target = (await self._session.execute(stmt)).scalar_one_or_none()
            if target is None:
                target = LocationStockpile(
                    location_type=stockpile.location_type,
                    location_id=stockpile.location_id,
                    item_id=spoiled.id,
                    item=spoiled,
                    quantity=0,
                    weeks_stored=0,
                )
                self._session.add(target)
            target.quantity += stockpile.quantity
            logger.info(
                "Stockpile item spoiled and transformed",
                location_type=stockpile.location_type,
                location_id=stockpile.location_id,
                original_item=item.name,
                spoiled_item=spoiled.name,
                quantity=stockpile.quantity,
            )
        else:
            logger.info(
                "Stockpile item spoiled and destroyed",
                location_type=stockpile.location_type,
                location_id=stockpile.location_id,
                item=item.name,
                quantity=stockpile.quantity,
            )
        await self._session.delete(stockpile)
        await self._session.flush()

    async def _process_inventory(self, modifier: float) -> dict[str, int]:
        counts = _empty_counts()
        stmt = (
            select(PlayerInventory)
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(PlayerInventory.quantity > 0, _perishable_clause())
            .order_by(PlayerInventory.id)
        )
        for slot in list((await self._session.execute(stmt)).scalars()):
            counts["processed"] += 1
            item = slot.item
            slot.weeks_stored += 1
            slot.last_decay_at = utcnow()

            if item.spoils_after_time() and slot.weeks_stored >= item.spoil_after_weeks:
                counts["spoiled"] += slot.quantity
                spoiled = await self._spoiled_item(item)
                if spoiled is not None:
                    slot.item_id = spoiled.id
                    slot.item = spoiled
                    slot.weeks_stored = 0
                    logger.info(
                        "Player inventory item spoiled and transformed",
                        player_id=slot.player_id,
                        original_item=item.name,
                        spoiled_item=spoiled.name,
                        quantity=slot.quantity,
                    )
                else:
                    logger.info(
                        "Player inventory item spoiled and destroyed",
                        player_id=slot.player_id,
                        item=item.name,
                        quantity=slot.quantity,
                    )
                    await self._session.delete(slot)
                continue

            if item.decays_over_time():
                amount = calculate_decay_amount(slot.quantity, item.decay_rate_per_week, modifier)
                if amount > 0:
                    slot.quantity -= amount
                    counts["decayed"] += amount
                    if slot.quantity <= 0:
                        await self._session.delete(slot)
                        counts["destroyed"] += 1
        await self._session.flush()
        return counts

    @staticmethod
    def _decay_row(item: Item, quantity: int, weeks_stored: int) -> dict[str, Any]:
        weeks_until_spoil = None
        if item.spoil_after_weeks is not None:
            weeks_until_spoil = max(0, item.spoil_after_weeks - weeks_stored)
        return {
            "item_name": item.name,
            "quantity": quantity,
            "weeks_stored": weeks_stored,
            "decay_rate_per_week": item.decay_rate_per_week,
            "spoil_after_weeks": item.spoil_after_weeks,
            "weeks_until_spoil": weeks_until_spoil,
            "decays_into": item.decays_into,
        }

    async def get_location_decay_stats(self, location_type: str, location_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(LocationStockpile)
            .join(Item, LocationStockpile.item_id == Item.id)
            .where(
                LocationStockpile.location_type == location_type,
                LocationStockpile.location_id == location_id,
                LocationStockpile.quantity > 0,
                _perishable_clause(),
            )
        )
        return [
            self._decay_row(s.item, s.quantity, s.weeks_stored) for s in (await self._session.execute(stmt)).scalars()
        ]

    async def get_player_decay_stats(self, player_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(PlayerInventory)
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(PlayerInventory.player_id == player_id, PlayerInventory.quantity > 0, _perishable_clause())
            .order_by(PlayerInventory.slot_number)
        )
        stats = []
        for slot in (await self._session.execute(stmt)).scalars():
            row = self._decay_row(slot.item, slot.quantity, slot.weeks_stored)
            row["slot_number"] = slot.slot_number
            stats.append(row)
        return stats
