"""
Unit tests for weekly resource decay and spoilage.
"""

import pytest
from sqlalchemy import select

from realm.game.inventory_service import InventoryService
from realm.game.resource_decay_service import (
    ResourceDecayService,
    calculate_decay_amount,
    seasonal_decay_modifier,
)
from realm.models.item import LocationStockpile


def test_seasonal_modifier_and_amount():
    """Test summer speeds decay, winter slows it, and decay never exceeds the stock."""
    assert seasonal_decay_modifier("summer") == 1.5
    assert seasonal_decay_modifier("winter") == 0.5
    assert seasonal_decay_modifier("autumn") == 1.0
    assert calculate_decay_amount(10, 3, 1.5) == 4
    assert calculate_decay_amount(2, 5, 1.0) == 2


@pytest.mark.asyncio
async def test_stockpile_decays_with_season(db_session, world, make_item):
    """Test a stockpile loses its weekly rate scaled by the season."""
    world["state"].current_season = "summer"
    berries = await make_item("Berries", decay_rate_per_week=4)
    stockpile = LocationStockpile(
        location_type="village", location_id=world["village"].id, item_id=berries.id, item=berries, quantity=10
    )
    db_session.add(stockpile)
    await db_session.flush()

    results = await ResourceDecayService(db_session).process_weekly_decay()

    assert results["items_decayed"] == 6
    assert stockpile.quantity == 4
    assert stockpile.weeks_stored == 1


@pytest.mark.asyncio
async def test_stockpile_spoils_into_other_item(db_session, world, make_item):
    """Test a stockpile at its spoil age turns into the spoiled item."""
    rotten = await make_item("Rotten Meat")
    meat = await make_item("Raw Meat", spoil_after_weeks=2, decays_into="Rotten Meat")
    village_id = world["village"].id
    db_session.add(
        LocationStockpile(
            location_type="village", location_id=village_id, item_id=meat.id, item=meat, quantity=7, weeks_stored=1
        )
    )
    await db_session.flush()

    results = await ResourceDecayService(db_session).process_weekly_decay()

    assert results["items_spoiled"] == 7
    rows = (await db_session.execute(select(LocationStockpile))).scalars().all()
    assert [(row.item_id, row.quantity) for row in rows] == [(rotten.id, 7)]


@pytest.mark.asyncio
async def test_inventory_spoils_and_is_destroyed(db_session, user, make_item):
    """Test inventory food without a spoiled form vanishes at its spoil age."""
    await make_item("Fresh Fish", spoil_after_weeks=1)
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Fresh Fish", 3)

    results = await ResourceDecayService(db_session).process_weekly_decay()

    assert results["inventory_processed"] == 1
    assert results["items_spoiled"] == 3
    assert await inventory.count_item(user, "Fresh Fish") == 0


@pytest.mark.asyncio
async def test_player_decay_stats(db_session, user, make_item):
    """Test the decay overview reports weeks left before spoiling."""
    await make_item("Bread", spoil_after_weeks=4, decays_into="Stale Bread")
    await make_item("Stone")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Bread", 2)
    await inventory.add_item(user, "Stone", 2)

    stats = await ResourceDecayService(db_session).get_player_decay_stats(user.id)

    assert len(stats) == 1
    assert stats[0]["item_name"] == "Bread"
    assert stats[0]["weeks_until_spoil"] == 4
    assert stats[0]["slot_number"] == 0
