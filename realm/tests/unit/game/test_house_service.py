"""
Unit tests for player housing.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from realm.game.house_service import STORAGE_DISABLED_MESSAGE, HouseService
from realm.game.inventory_service import InventoryService
from realm.models.base import utcnow
from realm.models.house import PlayerHouse


@pytest.fixture
def homeowner(make_user):
    """A freeman with enough gold for a cottage and a few rooms."""

    async def _make(**attrs):
        values = {"title_tier": 2, "gold": 100_000}
        values.update(attrs)
        return await make_user(**values)

    return _make


@pytest.mark.asyncio
async def test_purchase_house(db_session, homeowner):
    """Test a cottage costs 50,000 gold and cannot be bought twice."""
    user = await homeowner()
    service = HouseService(db_session)

    result = await service.purchase_house(user)

    assert result["success"]
    assert result["message"] == "You purchased a cottage for 50,000 gold!"
    assert user.gold == 50_000
    assert (await service.purchase_house(user))["message"] == "You already own a house."

    info = await service.get_house_info(user)
    assert info["tier_name"] == "Cottage"
    assert info["upkeep_cost"] == 100
    assert info["rooms"] == []


@pytest.mark.asyncio
async def test_purchase_requires_title_and_gold(db_session, homeowner):
    """Test peasants and the poor cannot buy a house."""
    service = HouseService(db_session)
    peasant = await homeowner(title_tier=1)
    assert "higher title" in (await service.purchase_house(peasant))["message"]

    poor = await homeowner(gold=10)
    assert (await service.purchase_house(poor))["message"] == "Not enough gold. You need 50,000 gold."


@pytest.mark.asyncio
async def test_rooms_and_furniture(db_session, homeowner, make_item):
    """Test building a room and furniture, then demolishing them for partial refunds."""
    user = await homeowner()
    await make_item("Plank")
    await make_item("Nails")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Plank", 3)
    await inventory.add_item(user, "Nails", 2)
    service = HouseService(db_session)
    await service.purchase_house(user)

    assert (await service.build_room(user, "parlour", 5, 0))["message"] == "Invalid grid position."
    assert "Construction level 10" in (await service.build_room(user, "bedroom", 0, 0))["message"]
    room = (await service.build_room(user, "parlour", 0, 0))["room"]
    assert user.gold == 35_000
    assert (await service.build_room(user, "parlour", 0, 0))["message"] == "A room already exists at this position."

    built = await service.build_furniture(user, room.id, "chair", "crude_chair")
    assert built["message"] == "Built Crude Chair!"
    assert built["xp_awarded"] == 30
    assert await inventory.count_item(user, "Plank") == 0
    assert (await service.build_furniture(user, room.id, "chair", "crude_chair"))["message"] == (
        "Not enough Plank. Need 3, have 0."
    )

    result = await service.demolish_furniture(user, room.id, "chair")
    assert result["message"] == "Furniture demolished. Recovered: 1 Plank, 1 Nails."

    result = await service.demolish_room(user, room.id)
    assert result["message"] == "Room demolished. 7,500 gold returned."
    assert user.gold == 42_500


@pytest.mark.asyncio
async def test_upgrade_requires_construction_level(db_session, homeowner):
    """Test upgrades are gated on construction level and tier order."""
    user = await homeowner()
    service = HouseService(db_session)
    await service.purchase_house(user)

    assert (await service.upgrade_house(user, "manor"))["message"] == "You can only upgrade to the next tier."
    assert (await service.upgrade_house(user, "house"))["message"] == (
        "You need Construction level 20 to upgrade to a House."
    )


@pytest.mark.asyncio
async def test_storage_deposit_and_withdraw(db_session, homeowner, make_item):
    """Test items move between inventory and house storage."""
    user = await homeowner()
    await make_item("Wood")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Wood", 5)
    service = HouseService(db_session)
    await service.purchase_house(user)

    assert (await service.deposit_item(user, "Wood", 5))["message"] == "Stored 5 Wood."
    assert await inventory.count_item(user, "Wood") == 0
    assert (await service.withdraw_item(user, "Wood", 9))["message"] == "Not enough Wood in storage."
    assert (await service.withdraw_item(user, "Wood", 3))["message"] == "Withdrew 3 Wood."
    assert (await service.get_house_info(user))["storage"] == [{"item": "Wood", "quantity": 2, "slot": 0}]

    (await service.get_house(user)).condition = 20
    assert (await service.withdraw_item(user, "Wood", 1))["message"] == STORAGE_DISABLED_MESSAGE


@pytest.mark.asyncio
async def test_upkeep_repair_and_degradation(db_session, homeowner):
    """Test overdue houses decay, repairs restore them, and a ruined house is abandoned."""
    user = await homeowner()
    service = HouseService(db_session)
    house = (await service.purchase_house(user))["house"]

    house.upkeep_due_at = utcnow() - timedelta(days=1)
    await db_session.flush()
    assert await service.process_upkeep_degradation() == {"processed": 1, "degraded": 1, "abandoned": 0}
    assert house.condition == 90

    assert (await service.repair_house(user))["message"] == "House repaired to full condition for 500 gold!"
    assert (await service.pay_upkeep(user))["success"]
    assert house.upkeep_due_at > utcnow()
    assert user.gold == 50_000 - 500 - 100

    house.condition = 10
    house.upkeep_due_at = utcnow() - timedelta(days=1)
    await db_session.flush()
    assert (await service.process_upkeep_degradation())["abandoned"] == 1
    assert (await db_session.execute(select(PlayerHouse))).scalars().all() == []
