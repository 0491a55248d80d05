"""
Unit tests for settlement markets.
"""

from datetime import timedelta

import pytest

from realm.game.inventory_service import InventoryService
from realm.game.market_service import MarketService, price_for, seasonal_modifier, supply_modifier
from realm.models.base import utcnow
from realm.models.item import LocationStockpile


@pytest.fixture
def stocked_wood(db_session, world, make_item):
    """Fifty Wood in the village stockpile."""

    async def _make(quantity=50):
        wood = await make_item("Wood")
        db_session.add(
            LocationStockpile(
                location_type="village", location_id=world["village"].id, item_id=wood.id, item=wood, quantity=quantity
            )
        )
        await db_session.flush()
        return wood

    return _make


def test_price_modifiers():
    """Test season and supply shape the price."""
    assert seasonal_modifier("winter", "consumable") == 1.3
    assert seasonal_modifier("autumn", "weapon") == 1.0
    assert supply_modifier(10) == 1.3
    assert supply_modifier(30) == pytest.approx(1.15)
    assert supply_modifier(75) == pytest.approx(0.9)
    assert supply_modifier(500) == 0.7
    assert price_for(10, 1.1, 1.0) == 11
    assert price_for(1, 0.5, 0.7) == 1


@pytest.mark.asyncio
async def test_buy_then_sell_cannot_profit(db_session, user, stocked_wood):
    """Test a buy followed by selling the same goods back loses gold."""
    wood = await stocked_wood()
    service = MarketService(db_session)

    bought = await service.buy_item(user, wood.id, 5)
    assert bought["message"] == "Bought 5x Wood for 55 gold."
    assert user.gold == 945
    assert await InventoryService(db_session).count_item(user, "Wood") == 5

    quote = await service.get_sell_quote(user, wood.id, 5)
    assert quote["price_per_unit"] == 8

    sold = await service.sell_item(user, wood.id, 5)
    assert sold["message"] == "Sold 5x Wood for 40 gold."
    assert user.gold == 985
    stockpile = await service.get_stockpile("village", user.current_location_id, wood)
    assert stockpile.quantity == 50

    price = await service.get_or_create_price("village", user.current_location_id, wood)
    assert price.demand_level == 50
    assert [tx["type"] for tx in await service.get_recent_transactions(user)] == ["sell", "buy"]


@pytest.mark.asyncio
async def test_trade_refusals(db_session, user, stocked_wood):
    """Test stock, quantity, ownership and access checks."""
    wood = await stocked_wood(quantity=3)
    service = MarketService(db_session)

    assert (await service.buy_item(user, wood.id, 4))["message"] == "Not enough stock available."
    assert (await service.buy_item(user, wood.id, 0))["message"] == "Quantity must be greater than zero."
    assert (await service.buy_item(user, 9999, 1))["message"] == "Item not found."
    assert (await service.sell_item(user, wood.id, 1))["message"] == (
        "You don't have enough of this item (equipped items cannot be sold)."
    )

    user.gold = 5
    assert (await service.buy_item(user, wood.id, 1))["message"] == "You don't have enough gold."

    user.is_traveling = True
    user.travel_arrives_at = utcnow() + timedelta(minutes=5)
    assert (await service.buy_item(user, wood.id, 1))["message"] == "You cannot access a market here."
    assert await service.get_market_info(user) is None


@pytest.mark.asyncio
async def test_market_listing_and_seasonal_refresh(db_session, user, world, stocked_wood, make_item):
    """Test only stocked goods are listed and a refresh applies the new season."""
    wood = await stocked_wood()
    await make_item("Quest Scroll", type="quest")
    service = MarketService(db_session)

    info = await service.get_market_info(user)
    assert info["location_name"] == "Millbrook"

    prices = await service.get_market_prices("village", world["village"].id)
    assert [(p["item_name"], p["buy_price"], p["sell_price"]) for p in prices] == [("Wood", 11, 8)]

    world["state"].current_season = "winter"
    assert await service.refresh_all_prices() == 1
    price = await service.get_or_create_price("village", world["village"].id, wood)
    assert price.current_price == 12

    await InventoryService(db_session).add_item(user, "Wood", 3)
    sellable = await service.get_sellable_items(user, "village", world["village"].id)
    assert sellable[0]["quantity"] == 3
    assert sellable[0]["sell_price"] == 9


@pytest.mark.asyncio
async def test_refused_buy_leaves_no_stockpile_row(db_session, user, make_item):
    """Test buying an item the market never stocked creates nothing."""
    iron = await make_item("Iron Ore")
    service = MarketService(db_session)

    result = await service.buy_item(user, iron.id, 1)

    assert result["message"] == "Not enough stock available."
    assert await service.get_stockpile("village", user.current_location_id, iron) is None
    assert user.gold == 1000
