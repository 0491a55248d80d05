"""
Unit tests for weekly food consumption and starvation.
"""

import pytest

from realm.game.food_consumption_service import FoodConsumptionService, calculate_starvation_penalty
from realm.models.item import LocationStockpile
from realm.models.npc import LocationNpc
from realm.models.world import Village


@pytest.fixture
def grain(make_item):
    async def _make():
        return await make_item("Grain", subtype="grain", food_value=1)

    return _make


async def _stock(db_session, item, location_type, location_id, quantity):
    stockpile = LocationStockpile(
        location_type=location_type, location_id=location_id, item_id=item.id, item=item, quantity=quantity
    )
    db_session.add(stockpile)
    await db_session.flush()
    return stockpile


async def _npc(db_session, village, **attrs):
    npc = LocationNpc(location_type="village", location_id=village.id, npc_name="Agnes", **attrs)
    db_session.add(npc)
    await db_session.flush()
    return npc


def test_starvation_penalty_caps_at_fifty():
    """Test the energy penalty grows ten per week up to fifty."""
    assert calculate_starvation_penalty(0) == 0
    assert calculate_starvation_penalty(2) == 20
    assert calculate_starvation_penalty(9) == 50


@pytest.mark.asyncio
async def test_fed_village_consumes_and_resets_hunger(db_session, world, user, grain):
    """Test residents eat one grain each and hunger counters reset."""
    village = world["village"]
    stockpile = await _stock(db_session, await grain(), "village", village.id, 10)
    npc = await _npc(db_session, village, weeks_without_food=1)
    user.weeks_without_food = 2
    await db_session.flush()

    results = await FoodConsumptionService(db_session).process_weekly_consumption()

    assert results["villages_processed"] == 1
    assert results["food_consumed"] == 2
    assert stockpile.quantity == 8
    assert npc.weeks_without_food == 0
    assert user.weeks_without_food == 0


@pytest.mark.asyncio
async def test_starving_village_kills_and_penalizes(db_session, world, user, mocker):
    """Test an empty granary starves NPCs to death and drains player energy."""
    rng = mocker.Mock()
    rng.randint.return_value = 100
    npc = await _npc(db_session, world["village"], weeks_without_food=3)

    results = await FoodConsumptionService(db_session, rng=rng).process_weekly_consumption()

    assert results["npcs_died"] == 1
    assert npc.is_dead()
    assert results["players_penalized"] == 1
    assert user.weeks_without_food == 1
    assert user.energy == 90


@pytest.mark.asyncio
async def test_starving_npc_emigrates_to_fed_village(db_session, world, grain, mocker):
    """Test a hungry NPC moves to a village in the barony with ten weeks of food."""
    rng = mocker.Mock()
    rng.randint.return_value = 1
    oakvale = Village(name="Oakvale", barony_id=world["barony"].id)
    db_session.add(oakvale)
    await db_session.flush()
    await _stock(db_session, await grain(), "village", oakvale.id, 100)
    npc = await _npc(db_session, world["village"], weeks_without_food=1)

    results = await FoodConsumptionService(db_session, rng=rng).process_weekly_consumption()

    assert results["npcs_emigrated"] == 1
    assert npc.location_id == oakvale.id
    assert npc.is_alive()


@pytest.mark.asyncio
async def test_add_food_respects_granary_capacity(db_session, world, grain):
    """Test grain deliveries stop at the granary capacity."""
    await grain()
    service = FoodConsumptionService(db_session)
    village = world["village"]

    assert await service.add_food_to_location("village", village.id, 600) == 500
    assert await service.add_food_to_location("village", village.id, 10) == 0
    assert await service.add_food_to_location("kingdom", world["kingdom"].id, 10) == 0

    stats = await service.get_village_food_stats(village)
    assert stats["food_available"] == 500
    assert stats["granary_capacity"] == 500
