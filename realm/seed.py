"""
Starter world for a fresh realm database.

Seeding is idempotent: every row is looked up by its unique name or slug
first, so running it against a populated database only fills the gaps.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .game.combat_tables import DEFENSE_TYPE_MODIFIERS
from .game.construction_tables import GARDEN_CROPS, PLANK_RECIPES, ROOMS
from .game.cooking_service import RECIPES as COOKING_RECIPES
from .game.crafting_service import RECIPES as CRAFTING_RECIPES
from .game.gathering_service import ACTIVITIES
from .game.inventory_service import InventoryService
from .models.combat import Monster, MonsterLoot
from .models.item import Item, LocationStockpile
from .models.religion import Religion, ReligionMember
from .models.role import Role
from .models.user import User
from .models.world import Barony, Kingdom, Town, Village, WorldState
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Items with combat or food stats; everything else referenced by a recipe,
# gathering table or furniture plan is seeded as a plain resource.
ITEM_CATALOG: dict[str, dict[str, Any]] = {
    "Bronze Dagger": {"type": "weapon", "subtype": "dagger", "equipment_slot": "weapon", "atk_bonus": 4, "str_bonus": 3, "stackable": False, "base_value": 15},
    "Bronze Sword": {"type": "weapon", "subtype": "sword", "equipment_slot": "weapon", "atk_bonus": 6, "str_bonus": 5, "stackable": False, "base_value": 40},
    "Iron Scimitar": {"type": "weapon", "subtype": "scimitar", "equipment_slot": "weapon", "atk_bonus": 12, "str_bonus": 10, "stackable": False, "base_value": 150, "rarity": "uncommon"},
    "Steel Warhammer": {"type": "weapon", "subtype": "warhammer", "equipment_slot": "weapon", "atk_bonus": 20, "str_bonus": 24, "stackable": False, "base_value": 600, "rarity": "rare", "effective_against": ["undead"]},
    "Dragonbane Blade": {"type": "weapon", "subtype": "longsword", "equipment_slot": "weapon", "atk_bonus": 45, "str_bonus": 40, "stackable": False, "base_value": 5000, "rarity": "epic", "effective_against": ["dragon"]},
    "Wooden Shield": {"type": "armor", "equipment_slot": "shield", "def_bonus": 3, "stackable": False, "base_value": 10},
    "Leather Vest": {"type": "armor", "equipment_slot": "body", "def_bonus": 4, "stackable": False, "base_value": 20},
    "Chainmail": {"type": "armor", "equipment_slot": "body", "def_bonus": 14, "stackable": False, "base_value": 400, "rarity": "rare"},
    "Bronze Pickaxe": {"type": "tool", "subtype": "pickaxe", "stackable": False, "base_value": 12},
    "Fishing Rod": {"type": "tool", "subtype": "fishing_rod", "stackable": False, "base_value": 10},
    "Bronze Axe": {"type": "tool", "subtype": "axe", "stackable": False, "base_value": 12},
    "Grain": {"type": "resource", "subtype": "grain", "food_value": 1, "base_value": 2, "decay_rate_per_week": 1},
    "Bread": {"type": "consumable", "subtype": "food", "hp_bonus": 5, "energy_bonus": 5, "food_value": 4, "base_value": 8, "spoil_after_weeks": 4},
    "Cooked Shrimp": {"type": "consumable", "subtype": "food", "hp_bonus": 3, "food_value": 2, "base_value": 5},
    "Cooked Chicken": {"type": "consumable", "subtype": "food", "hp_bonus": 4, "food_value": 3, "base_value": 6},
    "Cooked Sardine": {"type": "consumable", "subtype": "food", "hp_bonus": 4, "food_value": 3, "base_value": 7},
    "Cooked Meat": {"type": "consumable", "subtype": "food", "hp_bonus": 5, "food_value": 4, "base_value": 8},
    "Cooked Trout": {"type": "consumable", "subtype": "food", "hp_bonus": 7, "food_value": 4, "base_value": 12},
    "Meat Pie": {"type": "consumable", "subtype": "food", "hp_bonus": 9, "food_value": 6, "base_value": 18},
    "Cooked Salmon": {"type": "consumable", "subtype": "food", "hp_bonus": 9, "food_value": 5, "base_value": 20},
    "Cooked Lobster": {"type": "consumable", "subtype": "food", "hp_bonus": 12, "food_value": 6, "base_value": 35},
    "Cooked Swordfish": {"type": "consumable", "subtype": "food", "hp_bonus": 14, "food_value": 7, "base_value": 50},
    "Raw Meat": {"type": "resource", "subtype": "meat", "base_value": 3, "spoil_after_weeks": 2, "decays_into": "Rotten Meat"},
    "Rotten Meat": {"type": "misc", "base_value": 1},
    "Bones": {"type": "misc", "base_value": 1},
    "Herb Seeds": {"type": "resource", "subtype": "seed", "base_value": 7},
    "Herbs": {"type": "resource", "subtype": "herb", "base_value": 10},
    "Uncut Diamond": {"type": "resource", "subtype": "gem", "base_value": 900, "rarity": "epic"},
    "Uncut Ruby": {"type": "resource", "subtype": "gem", "base_value": 500, "rarity": "rare"},
}

KINGDOM = {"name": "Valoria", "description": "A kingdom of river valleys and old roads.", "biome": "plains"}
BARONY = {"name": "Ashford", "description": "The barony around Ashford castle.", "biome": "plains", "coordinates_x": 50, "coordinates_y": 50}
TOWN = {"name": "Ravenhold", "description": "The capital, walled and crowded.", "is_capital": True, "population": 240, "wealth": 5000}
VILLAGES = [
    {"name": "Millbrook", "description": "A farming village on the brook.", "population": 40, "wealth": 300, "coordinates_x": 42, "coordinates_y": 55},
    {"name": "Saltmere", "description": "A fishing village by the sea.", "is_port": True, "biome": "coastal", "population": 30, "wealth": 250, "coordinates_x": 60, "coordinates_y": 40},
]

MONSTERS: list[dict[str, Any]] = [
    {"name": "Giant Rat", "type": "beast", "max_hp": 5, "attack_level": 1, "strength_level": 1, "defense_level": 1, "combat_level": 1, "xp_reward": 8, "gold_drop_min": 0, "gold_drop_max": 5, "loot": [("Raw Meat", 50, 1, 1)]},
    {"name": "Goblin", "type": "goblinoid", "max_hp": 12, "attack_level": 5, "strength_level": 5, "defense_level": 4, "combat_level": 5, "xp_reward": 20, "gold_drop_min": 5, "gold_drop_max": 25, "loot": [("Bronze Dagger", 10, 1, 1)]},
    {"name": "Wolf", "type": "beast", "max_hp": 20, "attack_level": 12, "strength_level": 10, "defense_level": 8, "combat_level": 12, "xp_reward": 45, "gold_drop_min": 0, "gold_drop_max": 0, "min_player_combat_level": 5, "loot": [("Raw Meat", 100, 1, 2)]},
    {"name": "Skeleton", "type": "undead", "max_hp": 30, "attack_level": 18, "strength_level": 16, "defense_level": 15, "combat_level": 20, "xp_reward": 80, "gold_drop_min": 10, "gold_drop_max": 60, "min_player_combat_level": 10, "loot": [("Bones", 100, 1, 2), ("Iron Scimitar", 5, 1, 1)]},
    {"name": "Bandit Chief", "type": "humanoid", "max_hp": 60, "attack_level": 30, "strength_level": 28, "defense_level": 25, "combat_level": 32, "xp_reward": 200, "gold_drop_min": 100, "gold_drop_max": 300, "min_player_combat_level": 20, "is_boss": True, "loot": [("Chainmail", 15, 1, 1), ("Uncut Ruby", 5, 1, 1)]},
]

# Authority roles carry the appointment permissions.
ROLES: list[dict[str, Any]] = [
    {"slug": "elder", "name": "Village Elder", "location_type": "village", "tier": 2, "salary": 50, "permissions": ["appoint_roles", "remove_roles"]},
    {"slug": "blacksmith", "name": "Blacksmith", "location_type": "village", "tier": 1, "salary": 15},
    {"slug": "healer", "name": "Healer", "location_type": "village", "tier": 1, "salary": 15},
    {"slug": "mayor", "name": "Mayor", "location_type": "town", "tier": 3, "salary": 100, "permissions": ["appoint_roles", "remove_roles"]},
    {"slug": "guard_captain", "name": "Guard Captain", "location_type": "town", "tier": 2, "salary": 40},
    {"slug": "baron", "name": "Baron", "location_type": "barony", "tier": 4, "salary": 250, "permissions": ["appoint_roles", "remove_roles", "set_taxes"]},
    {"slug": "steward", "name": "Steward", "location_type": "barony", "tier": 3, "salary": 80},
    {"slug": "king", "name": "King", "location_type": "kingdom", "tier": 5, "salary": 500, "permissions": ["appoint_roles", "remove_roles", "set_kingdom_taxes"]},
    {"slug": "chancellor", "name": "Chancellor", "location_type": "kingdom", "tier": 4, "salary": 200},
]

RELIGION = {"name": "Order of the Dawn", "description": "Keepers of the morning light."}
STARTER_USERNAME = "wanderer"


def item_definitions() -> dict[str, dict[str, Any]]:
    """Every item name the game tables refer to, with catalog stats where known."""
    names: set[str] = set(ITEM_CATALOG)
    for activity in ACTIVITIES.values():
        names.update(resource["name"] for resource in activity["resources"])
    for recipe in list(COOKING_RECIPES.values()) + list(CRAFTING_RECIPES.values()):
        names.add(recipe["output"]["name"])
        names.update(material["name"] for material in recipe["materials"])
    for plank, recipe in PLANK_RECIPES.items():
        names.update((plank, recipe["log"]))
    for room in ROOMS.values():
        for options in room.get("hotspots", {}).values():
            for option in options.values():
                names.update(option["materials"])
    for crop in GARDEN_CROPS.values():
        names.update((crop["seed"], crop["harvest"]))

    definitions = {}
    for name in sorted(names):
        definitions[name] = dict(ITEM_CATALOG.get(name, {"type": "resource", "base_value": 5}))
    return definitions


async def _get_by(session: AsyncSession, model, **criteria):
    return (await session.execute(select(model).filter_by(**criteria))).scalar_one_or_none()


async def seed_items(session: AsyncSession) -> int:
    created = 0
    for name, attrs in item_definitions().items():
        if await _get_by(session, Item, name=name) is None:
            session.add(Item(name=name, **attrs))
            created += 1
    await session.flush()
    return created


async def seed_world(session: AsyncSession) -> dict[str, Any]:
    await WorldState.current(session)

    kingdom = await _get_by(session, Kingdom, name=KINGDOM["name"])
    if kingdom is None:
        kingdom = Kingdom(**KINGDOM)
        session.add(kingdom)
        await session.flush()

    barony = await _get_by(session, Barony, name=BARONY["name"])
    if barony is None:
        barony = Barony(kingdom_id=kingdom.id, **BARONY)
        session.add(barony)
        await session.flush()

    town = await _get_by(session, Town, name=TOWN["name"])
    if town is None:
        town = Town(barony_id=barony.id, **TOWN)
        session.add(town)
        await session.flush()
        kingdom.capital_town_id = town.id

    villages = []
    for data in VILLAGES:
        village = await _get_by(session, Village, name=data["name"])
        if village is None:
            village = Village(barony_id=barony.id, **data)
            session.add(village)
            await session.flush()
        villages.append(village)

    grain = await _get_by(session, Item, name="Grain")
    if grain is not None:
        for location_type, location in [("town", town)] + [("village", v) for v in villages]:
            stock = await _get_by(
                session, LocationStockpile, location_type=location_type, location_id=location.id, item_id=grain.id
            )
            if stock is None:
                session.add(
                    LocationStockpile(
                        location_type=location_type,
                        location_id=location.id,
                        item=grain,
                        item_id=grain.id,
                        quantity=200,
                    )
                )
    await session.flush()
    return {"kingdom": kingdom, "barony": barony, "town": town, "villages": villages}


async def seed_monsters(session: AsyncSession) -> int:
    created = 0
    for data in MONSTERS:
        if await _get_by(session, Monster, name=data["name"]) is not None:
            continue
        attrs = {key: value for key, value in data.items() if key != "loot"}
        modifiers = DEFENSE_TYPE_MODIFIERS.get(attrs["type"], {})
        for style, factor in modifiers.items():
            attrs[f"{style}_defense"] = int(attrs["defense_level"] * factor)
        monster = Monster(**attrs)
        for item_name, chance, qty_min, qty_max in data["loot"]:
            item = await _get_by(session, Item, name=item_name)
            if item is not None:
                monster.loot.append(
                    MonsterLoot(item=item, item_id=item.id, drop_chance=chance, quantity_min=qty_min, quantity_max=qty_max)
                )
        session.add(monster)
        created += 1
    await session.flush()
    return created


async def seed_roles(session: AsyncSession) -> int:
    created = 0
    for data in ROLES:
        if await _get_by(session, Role, slug=data["slug"]) is None:
            session.add(Role(**data))
            created += 1
    await session.flush()
    return created


async def seed_starter_user(session: AsyncSession, home: Village) -> User:
    user = await _get_by(session, User, username=STARTER_USERNAME)
    if user is not None:
        return user
    user = User(
        username=STARTER_USERNAME,
        home_village_id=home.id,
        current_location_type="village",
        current_location_id=home.id,
        gold=500,
    )
    session.add(user)
    await session.flush()
    await InventoryService(session).give_starter_kit(user)
    return user


async def seed_religion(session: AsyncSession, founder: User) -> Religion:
    religion = await _get_by(session, Religion, name=RELIGION["name"])
    if religion is None:
        religion = Religion(founder_id=founder.id, **RELIGION)
        session.add(religion)
        await session.flush()
        session.add(
            ReligionMember(user_id=founder.id, religion_id=religion.id, rank=ReligionMember.RANK_PROPHET, devotion=500)
        )
        await session.flush()
    return religion


async def seed_all(session: AsyncSession) -> dict[str, Any]:
    """Seed items, world, monsters, roles, a starter player and a religion. The caller commits."""
    items = await seed_items(session)
    world = await seed_world(session)
    monsters = await seed_monsters(session)
    roles = await seed_roles(session)
    user = await seed_starter_user(session, world["villages"][0])
    religion = await seed_religion(session, user)
    summary = {
        "items_created": items,
        "monsters_created": monsters,
        "roles_created": roles,
        "starter_user_id": user.id,
        "religion_id": religion.id,
    }
    logger.info("Seed complete", **summary)
    return summary
