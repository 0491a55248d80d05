"""
Unit tests for cooking.
"""

import pytest

from realm.game.cooking_service import CookingService
from realm.game.inventory_service import InventoryService


@pytest.mark.asyncio
async def test_cook_flour_from_grain(db_session, user, make_item):
    """Test cooking consumes materials and energy and grants cooking XP."""
    await make_item("Grain")
    await make_item("Flour")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Grain", 5)

    result = await CookingService(db_session).cook(user, "flour")

    assert result["success"]
    assert result["message"] == "Cooked 1x Flour!"
    assert result["xp_awarded"] == 8
    assert result["energy_remaining"] == 98
    assert await inventory.count_item(user, "Grain") == 3
    assert await inventory.count_item(user, "Flour") == 1


@pytest.mark.asyncio
async def test_cook_refusals(db_session, user, make_item):
    """Test unknown recipes, level gates, energy and missing materials."""
    service = CookingService(db_session)
    assert (await service.cook(user, "ambrosia"))["message"] == "Invalid recipe."
    assert (await service.cook(user, "cooked_swordfish"))["message"] == "You need level 40 cooking to make this."
    assert (await service.cook(user, "flour"))["message"] == "You don't have enough Grain."

    user.energy = 1
    assert (await service.cook(user, "flour"))["message"] == "Not enough energy. Need 2 energy."


@pytest.mark.asyncio
async def test_cook_without_output_item(db_session, user, make_item):
    """Test a recipe whose output is missing from the catalogue is refused untouched."""
    await make_item("Grain")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Grain", 2)

    result = await CookingService(db_session).cook(user, "flour")

    assert result["message"] == "Output item not found in database."
    assert await inventory.count_item(user, "Grain") == 2
    assert user.energy == 100


@pytest.mark.asyncio
async def test_cooking_info_marks_locked_recipes(db_session, user, make_item):
    """Test the recipe list flags locked recipes and material counts."""
    await make_item("Grain")
    await InventoryService(db_session).add_item(user, "Grain", 1)

    info = await CookingService(db_session).get_cooking_info(user)
    recipes = {recipe["id"]: recipe for recipe in info["recipes"]}

    assert info["cooking_level"] == 1
    assert recipes["cooked_trout"]["is_locked"]
    assert recipes["flour"]["materials"][0] == {"name": "Grain", "required": 2, "have": 1, "has_enough": False}
    assert recipes["flour"]["can_make"] is False
