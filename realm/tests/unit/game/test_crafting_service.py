"""
Unit tests for crafting and smelting.
"""

import pytest

from realm.game.crafting_service import CraftingService
from realm.game.inventory_service import InventoryService
from realm.game.skill_service import SkillService


@pytest.mark.asyncio
async def test_craft_arrows_yields_full_batch(db_session, user, make_item):
    """Test a recipe with a batch output adds the whole batch."""
    await make_item("Wood")
    await make_item("Wooden Arrow")
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Wood", 2)

    result = await CraftingService(db_session).craft(user, "wooden_arrow")

    assert result["success"]
    assert result["message"] == "Crafted 15x Wooden Arrow!"
    assert result["skill"] == "crafting"
    assert await inventory.count_item(user, "Wooden Arrow") == 15
    assert await inventory.count_item(user, "Wood") == 1


@pytest.mark.asyncio
async def test_smelt_bronze_trains_smithing(db_session, user, make_item):
    """Test smelting uses the smithing skill and the smelting verb."""
    for name in ("Copper Ore", "Tin Ore", "Bronze Bar"):
        await make_item(name)
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Copper Ore", 1)
    await inventory.add_item(user, "Tin Ore", 1)

    result = await CraftingService(db_session).smelt(user, "bronze_bar")

    assert result["success"]
    assert result["message"] == "Smelted 1x Bronze Bar!"
    skill = await SkillService(db_session).find_skill(user, "smithing")
    assert skill.xp == 6


@pytest.mark.asyncio
async def test_smelt_rejects_non_smelting_recipe(db_session, user):
    """Test the forge only accepts smelting recipes."""
    result = await CraftingService(db_session).smelt(user, "rope")
    assert result == {"success": False, "message": "Invalid recipe."}


@pytest.mark.asyncio
async def test_craft_refusals(db_session, user, make_item):
    """Test level gates, missing materials and traveling players."""
    service = CraftingService(db_session)
    assert (await service.craft(user, "mithril_bar"))["message"] == "You need level 50 smithing to craft this."
    assert (await service.craft(user, "thread"))["message"] == "You don't have enough Flax."
    assert await service.can_make_recipe(user, "thread") is False

    user.current_location_type = None
    assert (await service.craft(user, "thread"))["message"] == "You cannot craft here."
    assert await service.get_crafting_info(user) is None


@pytest.mark.asyncio
async def test_get_all_recipes_groups_by_category(db_session, user):
    """Test recipes are grouped by category and can be filtered to unlocked ones."""
    service = CraftingService(db_session)
    grouped = await service.get_all_recipes(user, categories=("smelting",))
    assert list(grouped) == ["smelting"]
    assert len(grouped["smelting"]) == 6

    unlocked = await service.get_all_recipes(user, categories=("smelting",), unlocked_only=True)
    assert [recipe["id"] for recipe in unlocked["smelting"]] == ["bronze_bar"]
