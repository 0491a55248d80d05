"""
Unit tests for household servants.
"""

from datetime import timedelta

import pytest

from realm.game.inventory_service import InventoryService
from realm.game.servant_service import ServantService
from realm.game.skill_service import SkillService, xp_for_level
from realm.models.base import utcnow
from realm.models.house import HouseFurniture, HouseRoom, HouseStorage, PlayerHouse


@pytest.fixture
def household(db_session, make_user, make_item):
    """A builder with a cottage, Servant Quarters with a cot, and Wood in storage."""

    async def _make(gold=20_000, with_bed=True):
        user = await make_user(title_tier=2, gold=gold)
        await SkillService(db_session).add_xp(user, "construction", xp_for_level(20))
        house = PlayerHouse(player=user, player_id=user.id, tier="cottage", condition=100)
        db_session.add(house)
        await db_session.flush()
        quarters = HouseRoom(player_house_id=house.id, room_type="servant_quarters", grid_x=0, grid_y=0)
        db_session.add(quarters)
        await db_session.flush()
        if with_bed:
            db_session.add(HouseFurniture(house_room_id=quarters.id, hotspot_slug="bed", furniture_key="servant_cot"))
        wood = await make_item("Wood")
        await make_item("Plank")
        db_session.add(HouseStorage(player_house_id=house.id, item_id=wood.id, item=wood, slot_number=0, quantity=12))
        await db_session.flush()
        return user, house

    return _make


async def _finish_current(db_session, service, user):
    house = await service._get_house(user)  # pylint: disable=protected-access
    task = await service.current_task(await service.get_servant(house))
    task.estimated_completion = utcnow() - timedelta(seconds=1)
    await db_session.flush()
    return await service.process_due_tasks()


@pytest.mark.asyncio
async def test_hire_checks_tier_and_level(db_session, household):
    """Test hiring checks the tier and construction level before taking payment."""
    rich, _ = await household()
    service = ServantService(db_session)

    assert (await service.hire_servant(rich, "footman"))["message"] == "Invalid servant tier."
    assert (await service.hire_servant(rich, "maid"))["message"] == "You need Construction level 30 to hire a Maid."
    result = await service.hire_servant(rich, "handyman")
    assert result["message"] == "Hired a Handyman for 5000g!"
    assert rich.gold == 15_000
    assert (await service.hire_servant(rich, "handyman"))["message"] == "You already have a servant."


@pytest.mark.asyncio
async def test_sawmill_run_turns_logs_into_planks(db_session, household):
    """Test a sawmill run charges the fee up front and converts stored logs when done."""
    user, house = await household()
    service = ServantService(db_session)
    await service.hire_servant(user, "handyman")

    assert (await service.assign_task(user, "sawmill_run", {"plank_name": "Mithril Plank"}))["message"] == (
        "Invalid plank type."
    )
    result = await service.assign_task(user, "sawmill_run", {"plank_name": "Plank", "quantity": 6})
    assert result["message"] == "Queued sawmill run: 6x Plank."
    assert user.gold == 15_000 - 60

    data = await service.get_servant_data(user)
    assert data["current_task"]["task_type"] == "sawmill_run"
    assert 0 < data["current_task"]["seconds_remaining"] <= 60

    assert await _finish_current(db_session, service, user) == 1
    wood = await service._storage_entry(house, "Wood")  # pylint: disable=protected-access
    planks = await service._storage_entry(house, "Plank")  # pylint: disable=protected-access
    assert wood.quantity == 6
    assert planks.quantity == 6
    assert planks.slot_number != wood.slot_number

    data = await service.get_servant_data(user)
    assert data["current_task"] is None
    assert data["recent_completed"][0]["result_message"] == "Converted 6x Wood into 6x Plank."


@pytest.mark.asyncio
async def test_fetch_materials_and_cancel(db_session, household):
    """Test fetched items reach the inventory and only queued tasks can be cancelled."""
    user, _ = await household()
    service = ServantService(db_session)
    await service.hire_servant(user, "handyman")

    first = await service.assign_task(user, "fetch_materials", {"item_name": "Wood", "quantity": 4})
    second = await service.assign_task(user, "sawmill_run", {"plank_name": "Plank", "quantity": 2})
    assert (await service.cancel_task(user, first["task_id"]))["message"] == "Can only cancel queued tasks."
    assert (await service.cancel_task(user, second["task_id"]))["message"] == "Task cancelled."
    assert user.gold == 15_000

    await _finish_current(db_session, service, user)
    assert await InventoryService(db_session).count_item(user, "Wood") == 4


@pytest.mark.asyncio
async def test_unpaid_servant_strikes(db_session, household):
    """Test weekly wages put a broke owner's servant on strike until paid."""
    user, _ = await household(gold=5_050)
    service = ServantService(db_session)
    await service.hire_servant(user, "handyman")

    assert await service.process_weekly_wages() == {"total": 1, "paid": 0, "strikes": 1}
    assert (await service.assign_task(user, "serve_food"))["message"] == (
        "Your servant is on strike! Pay their wages first."
    )
    assert (await service.pay_wages(user))["message"] == "Not enough gold. Wage is 100g."

    user.gold = 500
    assert (await service.pay_wages(user))["message"] == "Handyman is back to work!"
    assert user.gold == 400
    assert (await service.assign_task(user, "serve_food"))["message"] == "No food items in storage."


@pytest.mark.asyncio
async def test_dismiss_servant(db_session, household):
    """Test dismissing removes the servant and its tasks."""
    user, _ = await household()
    service = ServantService(db_session)
    await service.hire_servant(user, "handyman")
    await service.assign_task(user, "fetch_materials", {"item_name": "Wood", "quantity": 1})

    assert (await service.dismiss_servant(user))["message"] == "Handyman has been dismissed."
    assert await service.get_servant_data(user) is None
    assert (await service.dismiss_servant(user))["message"] == "You do not have a servant."


@pytest.mark.asyncio
async def test_hire_requires_a_bed(db_session, household):
    """Test Servant Quarters without a bed cannot house a servant."""
    user, _ = await household(with_bed=False)
    result = await ServantService(db_session).hire_servant(user, "handyman")
    assert result["message"] == "Build a bed in your Servant Quarters first."
    assert user.gold == 20_000
