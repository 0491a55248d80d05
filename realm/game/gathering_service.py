"""
Resource gathering: mining, fishing, woodcutting and herb foraging.

Each activity rolls a resource from a weighted table filtered by the
player's skill level. The season can add a second unit: with a gathering
modifier above 1 the chance of a bonus unit is ``modifier - 1``.
"""

import math
import random
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.item import Item
from ..models.user import User
from ..models.world import WorldState
from ..structured_logging.enhanced_logging_config import get_logger
from .calendar_service import GATHERING_MODIFIERS, SEASON_DESCRIPTIONS
from .energy_service import EnergyService
from .inventory_service import InventoryService
from .skill_service import SkillService, default_level, xp_progress, xp_to_next_level

logger = get_logger(__name__)


def _resource(name: str, weight: int, min_level: int, xp_bonus: int) -> dict[str, Any]:
    return {"name": name, "weight": weight, "min_level": min_level, "xp_bonus": xp_bonus}


ACTIVITIES: dict[str, dict[str, Any]] = {
    "mining": {
        "name": "Mining",
        "skill": "mining",
        "energy_cost": 5,
        "base_xp": 17,
        "location_types": ("village", "town", "barony", "wilderness"),
        "resources": [
            _resource("Copper Ore", 60, 1, 0),
            _resource("Tin Ore", 40, 1, 8),
            _resource("Iron Ore", 30, 10, 23),
            _resource("Coal", 25, 15, 33),
            _resource("Silver Ore", 15, 25, 58),
            _resource("Gold Ore", 10, 40, 108),
            _resource("Mithril Ore", 6, 55, 150),
            _resource("Uncut Opal", 5, 1, 20),
            _resource("Uncut Jade", 4, 15, 35),
            _resource("Uncut Sapphire", 3, 35, 75),
            _resource("Uncut Ruby", 2, 55, 130),
            _resource("Uncut Diamond", 1, 65, 175),
        ],
    },
    "fishing": {
        "name": "Fishing",
        "skill": "fishing",
        "energy_cost": 4,
        "base_xp": 10,
        "location_types": ("village", "town", "wilderness"),
        "resources": [
            _resource("Raw Shrimp", 50, 1, 0),
            _resource("Raw Sardine", 40, 1, 10),
            _resource("Raw Trout", 35, 10, 30),
            _resource("Raw Salmon", 25, 20, 50),
            _resource("Raw Lobster", 15, 35, 70),
            _resource("Raw Swordfish", 10, 50, 100),
        ],
    },
    "woodcutting": {
        "name": "Woodcutting",
        "skill": "woodcutting",
        "energy_cost": 4,
        "base_xp": 25,
        "location_types": ("village", "town", "wilderness"),
        "resources": [
            _resource("Wood", 60, 1, 0),
            _resource("Oak Wood", 35, 10, 35),
            _resource("Willow Wood", 25, 20, 75),
            _resource("Maple Wood", 15, 35, 125),
            _resource("Yew Wood", 10, 50, 225),
        ],
    },
    "herblore": {
        "name": "Herblore",
        "skill": "herblore",
        "energy_cost": 3,
        "base_xp": 15,
        "location_types": ("village", "town", "wilderness"),
        "resources": [
            _resource("Herb", 50, 1, 0),
            _resource("Healing Herb", 45, 5, 5),
            _resource("Sunblossom", 40, 8, 8),
            _resource("Stoneroot", 35, 12, 12),
            _resource("Moonpetal", 30, 15, 15),
            _resource("Nightshade", 28, 18, 18),
            _resource("Bloodroot", 22, 25, 25),
            _resource("Dragonvine", 10, 50, 50),
            _resource("Vial", 12, 1, 2),
        ],
    },
}


def available_resources(activity: str, skill_level: int) -> list[dict[str, Any]]:
    config = ACTIVITIES.get(activity)
    if config is None:
        return []
    return [r for r in config["resources"] if skill_level >= r["min_level"]]


def find_resource(activity: str, name: str, skill_level: int) -> dict[str, Any] | None:
    for resource in available_resources(activity, skill_level):
        if resource["name"] == name:
            return resource
    return None


class GatheringService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()
        self._skills = SkillService(session)
        self._energy = EnergyService(session)
        self._inventory = InventoryService(session)

    @staticmethod
    def can_gather(user: User, activity: str) -> bool:
        config = ACTIVITIES.get(activity)
        if config is None or user.is_traveling_now():
            return False
        return user.current_location_type in config["location_types"]

    def calculate_yield(self, modifier: float) -> int:
        """One unit, plus a second with probability ``modifier - 1`` in good seasons."""
        bonus_chance = modifier - 1.0
        if bonus_chance > 0 and self._rng.randint(1, 100) <= bonus_chance * 100:
            return 2
        return 1

    def select_weighted_resource(self, resources: list[dict[str, Any]]) -> dict[str, Any]:
        roll = self._rng.randint(1, sum(r["weight"] for r in resources))
        cumulative = 0
        for resource in resources:
            cumulative += resource["weight"]
            if roll <= cumulative:
                return resource
        return resources[0]

    async def get_seasonal_modifier(self) -> float:
        state = await WorldState.current(self._session)
        return GATHERING_MODIFIERS[state.current_season]

    async def gather(self, user: User, activity: str, resource_name: str | None = None) -> dict[str, Any]:
        config = ACTIVITIES.get(activity)
        if config is None:
            return {"success": False, "message": "Invalid activity."}

        if not self.can_gather(user, activity):
            return {"success": False, "message": "You cannot do this activity here."}

        if not EnergyService.has_energy(user, config["energy_cost"]):
            return {"success": False, "message": f"Not enough energy. Need {config['energy_cost']} energy."}

        if not await self._inventory.has_empty_slot(user):
            return {"success": False, "message": "Your inventory is full."}

        skill_level = await self._skills.get_level(user, config["skill"])
        resources = available_resources(activity, skill_level)
        if not resources:
            return {"success": False, "message": "No resources available at your skill level."}

        if resource_name:
            resource = find_resource(activity, resource_name, skill_level)
            if resource is None:
                return {"success": False, "message": "Invalid resource or level too low."}
        else:
            resource = self.select_weighted_resource(resources)

        item = (await self._session.execute(select(Item).where(Item.name == resource["name"]))).scalar_one_or_none()
        if item is None:
            return {"success": False, "message": "Resource not found in database."}

        await self._energy.consume_energy(user, config["energy_cost"])
        quantity = self.calculate_yield(await self.get_seasonal_modifier())
        await self._inventory.add_item(user, item, quantity)

        xp_awarded = math.ceil((config["base_xp"] + resource["xp_bonus"]) * quantity)
        skill, levels_gained = await self._skills.add_xp(user, config["skill"], xp_awarded)

        logger.debug(
            "Resource gathered",
            user_id=user.id,
            activity=activity,
            item=item.name,
            quantity=quantity,
            location_type=user.current_location_type,
            location_id=user.current_location_id,
        )

        message = f"You gathered {quantity}x {item.name}!" if quantity > 1 else f"You gathered {item.name}!"
        return {
            "success": True,
            "message": message,
            "resource": {"name": item.name, "description": item.description},
            "item_name": item.name,
            "quantity": quantity,
            "xp_awarded": xp_awarded,
            "skill": config["skill"],
            "leveled_up": levels_gained > 0,
            "new_level": skill.level if levels_gained > 0 else None,
            "energy_remaining": user.energy,
            "seasonal_bonus": quantity > 1,
        }

    async def get_available_activities(self, user: User) -> list[dict[str, Any]]:
        activities = []
        for key, config in ACTIVITIES.items():
            if not self.can_gather(user, key):
                continue
            level = await self._skills.get_level(user, config["skill"])
            resources = available_resources(key, level)
            activities.append(
                {
                    "id": key,
                    "name": config["name"],
                    "skill": config["skill"],
                    "skill_level": level,
                    "energy_cost": config["energy_cost"],
                    "base_xp": config["base_xp"],
                    "available_resources": len(resources),
                    "resources": resources,
                }
            )
        return activities

    async def get_activity_info(self, user: User, activity: str) -> dict[str, Any] | None:
        config = ACTIVITIES.get(activity)
        if config is None:
            return None

        skill = await self._skills.find_skill(user, config["skill"])
        level = skill.level if skill is not None else default_level(config["skill"])
        next_unlock = next((r for r in config["resources"] if r["min_level"] > level), None)
        state = await WorldState.current(self._session)

        return {
            "id": activity,
            "name": config["name"],
            "skill": config["skill"],
            "skill_level": level,
            "skill_xp": skill.xp if skill is not None else 0,
            "skill_xp_progress": round(xp_progress(skill), 2) if skill is not None else 0,
            "skill_xp_to_next": xp_to_next_level(skill) if skill is not None else 60,
            "energy_cost": config["energy_cost"],
            "base_xp": config["base_xp"],
            "player_energy": user.energy,
            "can_gather": self.can_gather(user, activity) and EnergyService.has_energy(user, config["energy_cost"]),
            "resources": available_resources(activity, level),
            "next_unlock": next_unlock,
            "inventory_full": not await self._inventory.has_empty_slot(user),
            "free_slots": await self._inventory.free_slots(user),
            "seasonal_modifier": GATHERING_MODIFIERS[state.current_season],
            "current_season": state.current_season,
        }

    async def get_seasonal_data(self) -> dict[str, Any]:
        state = await WorldState.current(self._session)
        return {
            "season": state.current_season,
            "modifier": GATHERING_MODIFIERS[state.current_season],
            "description": SEASON_DESCRIPTIONS[state.current_season],
        }
