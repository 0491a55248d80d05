"""
Settlement markets.

Prices follow the item's base value, scaled by a seasonal modifier for the
item type and a supply modifier from the local stockpile. Buying draws from
the stockpile and selling feeds it; sales are priced as if the sold goods
were already in stock so that a buy/sell loop cannot turn a profit.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.item import Item, LocationStockpile, PlayerInventory
from ..models.market import SELL_RATIO, MarketPrice, MarketTransaction
from ..models.user import User
from ..models.world import WorldState, resolve_location
from ..structured_logging.enhanced_logging_config import get_logger
from .inventory_service import InventoryService

logger = get_logger(__name__)

MARKET_LOCATIONS = ("village", "barony", "town", "kingdom")
TRADEABLE_TYPES = ("resource", "consumable", "tool", "misc", "weapon", "armor")

# season -> item type -> price multiplier; unlisted types trade at 1.0
SEASON_PRICE_MODIFIERS = {
    "spring": {"resource": 1.1, "consumable": 1.15, "tool": 1.05},
    "summer": {"resource": 0.95, "consumable": 0.9, "tool": 0.95},
    "autumn": {"resource": 0.85, "consumable": 0.8},
    "winter": {"resource": 1.2, "consumable": 1.3, "weapon": 1.05, "armor": 1.05},
}

SUPPLY_LOW = 10
SUPPLY_MEDIUM = 50
SUPPLY_HIGH = 100

DEMAND_STEP = 5
DEMAND_MAX = 100


def seasonal_modifier(season: str, item_type: str | None) -> float:
    return SEASON_PRICE_MODIFIERS.get(season, {}).get(item_type or "misc", 1.0)


def supply_modifier(supply: int) -> float:
    """1.3 when scarce, sliding to 1.0 at medium supply and 0.8 at high, 0.7 beyond."""
    if supply <= SUPPLY_LOW:
        return 1.3
    if supply <= SUPPLY_MEDIUM:
        return 1.0 + 0.3 * (SUPPLY_MEDIUM - supply) / (SUPPLY_MEDIUM - SUPPLY_LOW)
    if supply <= SUPPLY_HIGH:
        return 1.0 - 0.2 * (supply - SUPPLY_MEDIUM) / (SUPPLY_HIGH - SUPPLY_MEDIUM)
    return 0.7


def price_for(base_price: int, seasonal: float, supply: float) -> int:
    return max(1, round(base_price * seasonal * supply))


class MarketService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._inventory = InventoryService(session)

    def can_access_market(self, user: User) -> bool:
        if user.is_traveling_now() or user.is_in_infirmary_now():
            return False
        return user.current_location_type in MARKET_LOCATIONS and user.current_location_id is not None

    async def get_stockpile(
        self, location_type: str, location_id: int, item: Item, create: bool = False
    ) -> LocationStockpile | None:
        stmt = select(LocationStockpile).where(
            LocationStockpile.location_type == location_type,
            LocationStockpile.location_id == location_id,
            LocationStockpile.item_id == item.id,
        )
        stockpile = (await self._session.execute(stmt)).scalar_one_or_none()
        if stockpile is None and create:
            stockpile = LocationStockpile(
                location_type=location_type, location_id=location_id, item_id=item.id, item=item, quantity=0
            )
            self._session.add(stockpile)
            await self._session.flush()
        return stockpile

    async def get_or_create_price(self, location_type: str, location_id: int, item: Item) -> MarketPrice:
        stmt = select(MarketPrice).where(
            MarketPrice.location_type == location_type,
            MarketPrice.location_id == location_id,
            MarketPrice.item_id == item.id,
        )
        price = (await self._session.execute(stmt)).scalar_one_or_none()
        if price is None:
            base = max(1, item.base_value)
            price = MarketPrice(
                location_type=location_type,
                location_id=location_id,
                item_id=item.id,
                item=item,
                base_price=base,
                current_price=base,
                seasonal_modifier=1.0,
                supply_modifier=1.0,
                demand_level=50,
            )
            self._session.add(price)
            await self._session.flush()
        return price

    async def _supply(self, location_type: str, location_id: int, item: Item) -> int:
        stockpile = await self.get_stockpile(location_type, location_id, item)
        return stockpile.quantity if stockpile else 0

    async def update_price(self, price: MarketPrice, world: WorldState | None = None) -> MarketPrice:
        """Recompute ``current_price`` from the season and the local stockpile."""
        world = world or await WorldState.current(self._session)
        seasonal = seasonal_modifier(world.current_season, price.item.type)
        supply = supply_modifier(await self._supply(price.location_type, price.location_id, price.item))
        price.seasonal_modifier = seasonal
        price.supply_modifier = supply
        price.current_price = price_for(price.base_price, seasonal, supply)
        price.last_updated_at = utcnow()
        await self._session.flush()
        return price

    async def sell_price_after_sale(self, price: MarketPrice, quantity: int) -> int:
        """Per-unit sell price with ``quantity`` already added to the local supply."""
        world = await WorldState.current(self._session)
        projected_supply = await self._supply(price.location_type, price.location_id, price.item) + quantity
        projected = price_for(
            price.base_price,
            seasonal_modifier(world.current_season, price.item.type),
            supply_modifier(projected_supply),
        )
        return max(1, int(projected * SELL_RATIO))

    async def get_market_info(self, user: User) -> dict[str, Any] | None:
        if not self.can_access_market(user):
            return None
        location = await resolve_location(self._session, user.current_location_type, user.current_location_id)
        return {
            "location_type": user.current_location_type,
            "location_id": user.current_location_id,
            "location_name": location.name if location else "Unknown",
            "gold_on_hand": user.gold,
        }

    async def get_market_prices(self, location_type: str, location_id: int) -> list[dict[str, Any]]:
        """Prices for everything in stock at the location."""
        world = await WorldState.current(self._session)
        stmt = (
            select(LocationStockpile)
            .join(Item, LocationStockpile.item_id == Item.id)
            .where(
                LocationStockpile.location_type == location_type,
                LocationStockpile.location_id == location_id,
                LocationStockpile.quantity > 0,
                Item.type.in_(TRADEABLE_TYPES),
            )
            .order_by(Item.name)
        )
        prices = []
        for stockpile in (await self._session.execute(stmt)).scalars():
            item = stockpile.item
            price = await self.update_price(await self.get_or_create_price(location_type, location_id, item), world)
            prices.append(
                {
                    "item_id": item.id,
                    "item_name": item.name,
                    "item_type": item.type,
                    "item_description": item.description,
                    "base_price": price.base_price,
                    "buy_price": price.buy_price,
                    "sell_price": price.sell_price,
                    "current_price": price.current_price,
                    "supply_quantity": stockpile.quantity,
                    "demand_level": price.demand_level,
                    "seasonal_modifier": price.seasonal_modifier,
                    "supply_modifier": price.supply_modifier,
                }
            )
        return prices

    async def get_sellable_items(self, user: User, location_type: str, location_id: int) -> list[dict[str, Any]]:
        """Unequipped inventory grouped by item, with the local sell price."""
        world = await WorldState.current(self._session)
        stmt = (
            select(PlayerInventory)
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(
                PlayerInventory.player_id == user.id,
                PlayerInventory.is_equipped.is_(False),
                Item.type.in_(TRADEABLE_TYPES),
            )
            .order_by(PlayerInventory.slot_number)
        )
        grouped: dict[int, dict[str, Any]] = {}
        for slot in (await self._session.execute(stmt)).scalars():
            entry = grouped.get(slot.item_id)
            if entry is None:
                price = await self.update_price(
                    await self.get_or_create_price(location_type, location_id, slot.item), world
                )
                entry = grouped[slot.item_id] = {
                    "inventory_ids": [],
                    "item_id": slot.item_id,
                    "item_name": slot.item.name,
                    "item_type": slot.item.type,
                    "quantity": 0,
                    "sell_price": price.sell_price,
                }
            entry["inventory_ids"].append(slot.id)
            entry["quantity"] += slot.quantity
        return list(grouped.values())

    async def get_sell_quote(self, user: User, item_id: int, quantity: int) -> dict[str, Any]:
        if not self.can_access_market(user):
            return {"success": False, "message": "You cannot access a market here."}
        item = await self._session.get(Item, item_id)
        if item is None:
            return {"success": False, "message": "Item not found."}

        price = await self.update_price(
            await self.get_or_create_price(user.current_location_type, user.current_location_id, item)
        )
        per_unit = await self.sell_price_after_sale(price, quantity)
        return {
            "success": True,
            "item_id": item_id,
            "quantity": quantity,
            "price_per_unit": per_unit,
            "total_gold": per_unit * quantity,
            "current_display_price": price.sell_price,
        }

    async def buy_item(self, user: User, item_id: int, quantity: int) -> dict[str, Any]:
        if not self.can_access_market(user):
            return {"success": False, "message": "You cannot access a market here."}
        if quantity <= 0:
            return {"success": False, "message": "Quantity must be greater than zero."}
        item = await self._session.get(Item, item_id)
        if item is None:
            return {"success": False, "message": "Item not found."}

        location_type, location_id = user.current_location_type, user.current_location_id
        stockpile = await self.get_stockpile(location_type, location_id, item)
        if stockpile is None or stockpile.quantity < quantity:
            return {"success": False, "message": "Not enough stock available."}

        price = await self.update_price(await self.get_or_create_price(location_type, location_id, item))
        per_unit = price.buy_price
        total_cost = per_unit * quantity
        if user.gold < total_cost:
            return {"success": False, "message": "You don't have enough gold."}
        if await self._inventory.slots_needed_for_item(user, item, quantity) > await self._inventory.free_slots(user):
            return {"success": False, "message": "You don't have enough inventory space."}

        if not await self._inventory.add_item(user, item, quantity):
            return {"success": False, "message": "You don't have enough inventory space."}
        user.gold -= total_cost
        stockpile.quantity -= quantity
        self._session.add(
            MarketTransaction(
                user_id=user.id,
                location_type=location_type,
                location_id=location_id,
                item_id=item.id,
                item=item,
                type=MarketTransaction.TYPE_BUY,
                quantity=quantity,
                price_per_unit=per_unit,
                total_gold=total_cost,
            )
        )
        price.demand_level = min(DEMAND_MAX, price.demand_level + DEMAND_STEP)
        await self.update_price(price)

        logger.info("Market purchase", user_id=user.id, item=item.name, quantity=quantity, total=total_cost)
        return {
            "success": True,
            "message": f"Bought {quantity}x {item.name} for {total_cost} gold.",
            "gold_remaining": user.gold,
        }

    async def sell_item(self, user: User, item_id: int, quantity: int) -> dict[str, Any]:
        if not self.can_access_market(user):
            return {"success": False, "message": "You cannot access a market here."}
        if quantity <= 0:
            return {"success": False, "message": "Quantity must be greater than zero."}
        item = await self._session.get(Item, item_id)
        if item is None:
            return {"success": False, "message": "Item not found."}
        if not await self._inventory.has_item(user, item, quantity, exclude_equipped=True):
            return {
                "success": False,
                "message": "You don't have enough of this item (equipped items cannot be sold).",
            }

        location_type, location_id = user.current_location_type, user.current_location_id
        price = await self.update_price(await self.get_or_create_price(location_type, location_id, item))
        per_unit = await self.sell_price_after_sale(price, quantity)
        total_gold = per_unit * quantity

        await self._inventory.remove_item(user, item, quantity)
        user.gold += total_gold
        stockpile = await self.get_stockpile(location_type, location_id, item, create=True)
        stockpile.quantity += quantity
        self._session.add(
            MarketTransaction(
                user_id=user.id,
                location_type=location_type,
                location_id=location_id,
                item_id=item.id,
                item=item,
                type=MarketTransaction.TYPE_SELL,
                quantity=quantity,
                price_per_unit=per_unit,
                total_gold=total_gold,
            )
        )
        price.demand_level = max(0, price.demand_level - DEMAND_STEP)
        await self.update_price(price)

        logger.info("Market sale", user_id=user.id, item=item.name, quantity=quantity, total=total_gold)
        return {
            "success": True,
            "message": f"Sold {quantity}x {item.name} for {total_gold} gold.",
            "gold_on_hand": user.gold,
        }

    async def get_recent_transactions(self, user: User, limit: int = 10) -> list[dict[str, Any]]:
        stmt = (
            select(MarketTransaction)
            .where(MarketTransaction.user_id == user.id)
            .order_by(MarketTransaction.created_at.desc(), MarketTransaction.id.desc())
            .limit(limit)
        )
        return [
            {
                "id": tx.id,
                "type": tx.type,
                "item_name": tx.item.name,
                "quantity": tx.quantity,
                "price_per_unit": tx.price_per_unit,
                "total_gold": tx.total_gold,
                "created_at": tx.created_at.isoformat(),
            }
            for tx in (await self._session.execute(stmt)).scalars()
        ]

    async def refresh_location_prices(self, location_type: str, location_id: int) -> int:
        world = await WorldState.current(self._session)
        stmt = select(MarketPrice).where(
            MarketPrice.location_type == location_type, MarketPrice.location_id == location_id
        )
        prices = list((await self._session.execute(stmt)).scalars())
        for price in prices:
            await self.update_price(price, world)
        return len(prices)

    async def refresh_all_prices(self) -> int:
        """Re-price every market listing for the current season and stock."""
        stmt = select(MarketPrice.location_type, MarketPrice.location_id).distinct()
        locations = (await self._session.execute(stmt)).all()
        refreshed = 0
        for location_type, location_id in locations:
            refreshed += await self.refresh_location_prices(location_type, location_id)
        await self._session.flush()
        logger.info("Market prices refreshed", locations=len(locations), prices=refreshed)
        return refreshed
