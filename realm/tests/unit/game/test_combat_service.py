"""
Unit tests for turn-based combat.
"""

import random

import pytest

from realm.game.combat_service import CombatService
from realm.game.inventory_service import InventoryService
from realm.models.combat import CombatSession, Monster, MonsterLoot


class LowRandom(random.Random):
    """Every roll lands on its lowest value: attacks hit for minimum damage."""

    def randint(self, a, b):
        return a


@pytest.fixture
def make_monster(db_session):
    async def _make(name="Giant Rat", loot=(), **attrs):
        values = {"type": "beast", "max_hp": 1, "attack_level": 1, "strength_level": 2, "defense_level": 1}
        values.update(attrs)
        monster = Monster(name=name, loot=list(loot), **values)
        db_session.add(monster)
        await db_session.flush()
        return monster

    return _make


@pytest.mark.asyncio
async def test_victory_awards_xp_gold_and_loot(db_session, user, make_item, make_monster):
    """Test killing a monster pays gold, drops loot and trains the stance skill."""
    bones = await make_item("Bones")
    monster = await make_monster(
        gold_drop_min=5, gold_drop_max=10, loot=[MonsterLoot(item=bones, item_id=bones.id, drop_chance=100)]
    )
    service = CombatService(db_session, rng=LowRandom())

    started = await service.start_combat(user, monster.id)
    assert started["success"]
    assert user.energy == 99

    result = await service.attack(user)

    assert result["success"]
    assert result["message"] == "Victory! You defeated Giant Rat!"
    rewards = result["data"]["rewards"]
    assert rewards["xp"] == 4
    assert rewards["gold"] == 5
    assert rewards["items"] == [{"name": "Bones", "quantity": 1}]
    assert user.gold == 1005
    assert await InventoryService(db_session).count_item(user, bones) == 1
    assert await service.get_active_combat(user) is None


@pytest.mark.asyncio
async def test_defeat_sends_player_to_infirmary(db_session, user, make_monster):
    """Test losing all HP ends the fight and admits the player to the infirmary."""
    user.hp = 1
    monster = await make_monster(name="Troll", max_hp=50)
    service = CombatService(db_session, rng=LowRandom())
    await service.start_combat(user, monster.id)

    result = await service.attack(user)

    assert result["success"] is False
    assert result["data"]["status"] == "defeat"
    assert result["data"]["infirmary"]["is_in_infirmary"]
    assert user.hp == 0
    assert user.energy == 24
    assert user.is_in_infirmary_now()
    assert (await service.start_combat(user, monster.id))["message"] == (
        "You cannot fight while recovering in the infirmary."
    )


@pytest.mark.asyncio
async def test_round_continues_when_both_survive(db_session, user, make_monster):
    """Test an indecisive round trades blows and advances the round counter."""
    monster = await make_monster(name="Wolf", max_hp=20)
    service = CombatService(db_session, rng=LowRandom())
    await service.start_combat(user, monster.id)

    result = await service.attack(user)

    session = result["data"]["session"]
    assert result["message"] == "Round 1 complete."
    assert session["monster_hp"] == 18
    assert session["player_hp"] == 9
    assert session["round"] == 2
    assert len(result["data"]["logs"]) == 3


@pytest.mark.asyncio
async def test_eat_restores_hp_then_monster_strikes(db_session, user, make_item, make_monster):
    """Test eating heals up to max HP and costs the round."""
    await make_item("Cooked Meat", type="consumable", hp_bonus=5)
    inventory = InventoryService(db_session)
    await inventory.add_item(user, "Cooked Meat", 1)
    slot = (await inventory.get_slots(user))[0]
    user.hp = 5
    monster = await make_monster(name="Boar", max_hp=20)
    service = CombatService(db_session, rng=LowRandom())
    await service.start_combat(user, monster.id)

    result = await service.eat(user, slot.id)

    assert result["message"] == "You ate Cooked Meat and restored 5 HP."
    assert user.hp == 9
    assert await inventory.count_item(user, "Cooked Meat") == 0


@pytest.mark.asyncio
async def test_flee_and_refusals(db_session, user, make_monster):
    """Test fleeing ends the fight and actions outside combat are refused."""
    monster = await make_monster()
    service = CombatService(db_session, rng=LowRandom())
    assert (await service.attack(user))["message"] == "You are not in combat."
    assert (await service.start_combat(user, 999))["message"] == "Monster not found."

    await service.start_combat(user, monster.id)
    assert (await service.start_combat(user, monster.id))["message"] == "You are already in combat."

    result = await service.flee(user)
    assert result["success"]
    assert result["data"]["session"]["status"] == CombatSession.STATUS_FLED


@pytest.mark.asyncio
async def test_available_monsters_filter_by_biome_and_level(db_session, user, make_monster):
    """Test only local or biome-less monsters within the player's level are listed."""
    await make_monster(name="Field Mouse", biome="plains")
    await make_monster(name="Sand Worm", biome="desert")
    await make_monster(name="Dragon", min_player_combat_level=50)
    await make_monster(name="Crow")

    monsters = await CombatService(db_session).get_available_monsters(user)

    assert sorted(m.name for m in monsters) == ["Crow", "Field Mouse"]
