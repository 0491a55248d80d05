"""
Unit tests for the player inventory.
"""

import pytest

from realm.game.inventory_service import InventoryService


@pytest.mark.asyncio
async def test_add_item_tops_up_partial_stacks_first(db_session, user, make_item):
    """Test stackable items fill existing stacks before taking new slots."""
    ore = await make_item("Copper Ore", max_stack=10)
    service = InventoryService(db_session)
    assert await service.add_item(user, ore, 7)
    assert await service.add_item(user, ore, 5)

    slots = await service.get_slots(user)
    assert [(s.slot_number, s.quantity) for s in slots] == [(0, 10), (1, 2)]
    assert await service.count_item(user, ore) == 12


@pytest.mark.asyncio
async def test_add_item_by_name_and_unknown(db_session, user, make_item):
    """Test items can be added by name and unknown names are refused."""
    await make_item("Wood")
    service = InventoryService(db_session)
    assert await service.add_item(user, "Wood", 3)
    assert await service.add_item(user, "Unobtainium", 1) is False
    assert await service.count_item(user, "Wood") == 3


@pytest.mark.asyncio
async def test_add_item_fails_when_full_but_keeps_what_fitted(db_session, user, make_item):
    """Test a full inventory stops adding and reports failure."""
    sword = await make_item("Rusty Sword", stackable=False, type="weapon", equipment_slot="weapon")
    service = InventoryService(db_session, max_slots=2)
    assert await service.add_item(user, sword, 3) is False
    assert await service.count_item(user, sword) == 2
    assert await service.free_slots(user) == 0


@pytest.mark.asyncio
async def test_remove_item_takes_smallest_stacks_first(db_session, user, make_item):
    """Test removal empties the smaller stacks before the larger ones."""
    ore = await make_item("Tin Ore", max_stack=10)
    service = InventoryService(db_session)
    await service.add_item(user, ore, 13)
    assert await service.remove_item(user, ore, 4)
    slots = await service.get_slots(user)
    assert [(s.slot_number, s.quantity) for s in slots] == [(0, 9)]
    assert await service.remove_item(user, ore, 20) is False


@pytest.mark.asyncio
async def test_find_empty_slot_fills_gaps(db_session, user, make_item):
    """Test the lowest free slot number is reused after removal."""
    a = await make_item("Item A", stackable=False)
    b = await make_item("Item B", stackable=False)
    service = InventoryService(db_session)
    await service.add_item(user, a)
    await service.add_item(user, b)
    await service.remove_item(user, a)
    assert await service.find_empty_slot(user) == 0


@pytest.mark.asyncio
async def test_space_and_slots_needed(db_session, user, make_item):
    """Test space calculations account for partial stacks."""
    fish = await make_item("Raw Trout", max_stack=10)
    service = InventoryService(db_session, max_slots=3)
    await service.add_item(user, fish, 4)
    assert await service.slots_needed_for_item(user, fish, 6) == 0
    assert await service.slots_needed_for_item(user, fish, 7) == 1
    assert await service.space_for_item(user, fish) == 6 + 2 * 10


@pytest.mark.asyncio
async def test_equip_replaces_item_in_same_slot(db_session, user, make_item):
    """Test equipping swaps out whatever occupies the same equipment slot."""
    dagger = await make_item("Dagger", type="weapon", stackable=False, equipment_slot="weapon")
    sword = await make_item("Sword", type="weapon", stackable=False, equipment_slot="weapon")
    service = InventoryService(db_session)
    await service.add_item(user, dagger)
    await service.add_item(user, sword)

    assert (await service.equip_item(user, 0))["success"]
    result = await service.equip_item(user, 1)
    assert result["success"]
    assert result["message"] == "Equipped Sword."
    equipped = await service.get_equipped(user)
    assert [slot.item.name for slot in equipped] == ["Sword"]


@pytest.mark.asyncio
async def test_equip_and_unequip_errors(db_session, user, make_item):
    """Test equip and unequip refuse invalid slots."""
    ore = await make_item("Iron Ore")
    service = InventoryService(db_session)
    await service.add_item(user, ore)
    assert (await service.equip_item(user, 5))["message"] == "No item in that slot."
    assert (await service.equip_item(user, 0))["message"] == "That item cannot be equipped."
    assert (await service.unequip_item(user, 0))["message"] == "That item is not equipped."


@pytest.mark.asyncio
async def test_starter_kit_skips_missing_items(db_session, user, make_item):
    """Test the starter kit grants whatever exists in the catalogue."""
    await make_item("Bread", type="consumable")
    await InventoryService(db_session).give_starter_kit(user)
    assert await InventoryService(db_session).count_item(user, "Bread") == 10
    assert await InventoryService(db_session).count_item(user, "Fishing Rod") == 0


@pytest.mark.asyncio
async def test_inventory_summary_groups_resources(db_session, user, make_item):
    """Test the summary totals resources and ignores equipment."""
    ore = await make_item("Coal", max_stack=5)
    helm = await make_item("Helm", type="armor", stackable=False, equipment_slot="head")
    service = InventoryService(db_session)
    await service.add_item(user, ore, 8)
    await service.add_item(user, helm)
    assert await service.get_inventory_summary(user) == [{"name": "Coal", "quantity": 8}]


@pytest.mark.asyncio
async def test_slot_count_comes_from_config(db_session, user, monkeypatch):
    """Test the inventory size follows GAME_INVENTORY_SLOTS."""
    assert await InventoryService(db_session).free_slots(user) == 28
    monkeypatch.setenv("GAME_INVENTORY_SLOTS", "4")
    assert await InventoryService(db_session).free_slots(user) == 4
