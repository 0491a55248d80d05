"""
Unit tests for resource gathering.
"""

import random

import pytest

from realm.game.gathering_service import (
    GatheringService,
    available_resources,
    find_resource,
)
from realm.game.inventory_service import InventoryService


def test_available_resources_filtered_by_level():
    """Test only resources at or below the skill level are offered."""
    names = [r["name"] for r in available_resources("mining", 1)]
    assert "Copper Ore" in names
    assert "Iron Ore" not in names
    assert find_resource("mining", "Iron Ore", 10)["name"] == "Iron Ore"
    assert available_resources("dancing", 99) == []


def test_calculate_yield_bonus_only_in_good_seasons():
    """Test a modifier of 1 or less never doubles the yield."""
    service = GatheringService(None, rng=random.Random(1))
    assert all(service.calculate_yield(0.8) == 1 for _ in range(50))
    assert all(service.calculate_yield(2.0) == 2 for _ in range(50))


@pytest.mark.asyncio
async def test_gather_named_resource(db_session, user, world, make_item, rng):
    """Test gathering a chosen resource adds it and grants XP."""
    await make_item("Copper Ore")
    result = await GatheringService(db_session, rng=rng).gather(user, "mining", "Copper Ore")
    assert result["success"]
    assert result["quantity"] == 1
    assert result["xp_awarded"] == 17
    assert user.energy == 95
    assert await InventoryService(db_session).count_item(user, "Copper Ore") == 1


@pytest.mark.asyncio
async def test_gather_refusals(db_session, user, world, make_item, rng):
    """Test every refusal path leaves energy untouched."""
    service = GatheringService(db_session, rng=rng)
    assert (await service.gather(user, "dancing"))["message"] == "Invalid activity."
    assert (await service.gather(user, "mining", "Iron Ore"))["message"] == "Invalid resource or level too low."
    assert (await service.gather(user, "mining", "Copper Ore"))["message"] == "Resource not found in database."

    user.energy = 2
    assert (await service.gather(user, "mining"))["message"] == "Not enough energy. Need 5 energy."
    assert user.energy == 2


@pytest.mark.asyncio
async def test_activity_info_and_listing(db_session, user, world):
    """Test activity info exposes the next unlock and the season."""
    service = GatheringService(db_session)
    info = await service.get_activity_info(user, "mining")
    assert info["skill_level"] == 1
    assert info["next_unlock"]["name"] == "Iron Ore"
    assert await service.get_activity_info(user, "dancing") is None

    ids = [a["id"] for a in await service.get_available_activities(user)]
    assert ids == ["mining", "fishing", "woodcutting", "herblore"]
