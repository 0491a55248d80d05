"""
Crafting at a workshop and smelting bars at a forge.

Both share one recipe table; smelting recipes are the ``smelting`` category
and train smithing, everything else trains crafting.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .energy_service import EnergyService
from .inventory_service import InventoryService
from .skill_service import SkillService

VALID_LOCATIONS = ("village", "barony", "town", "kingdom")


def _recipe(
    name: str,
    category: str,
    skill: str,
    level: int,
    xp: int,
    energy: int,
    materials: list[tuple[str, int]],
    output_quantity: int = 1,
) -> dict[str, Any]:
    return {
        "name": name,
        "category": category,
        "skill": skill,
        "required_level": level,
        "xp_reward": xp,
        "energy_cost": energy,
        "materials": [{"name": n, "quantity": q} for n, q in materials],
        "output": {"name": name, "quantity": output_quantity},
    }


RECIPES: dict[str, dict[str, Any]] = {
    "thread": _recipe("Thread", "crafting", "crafting", 1, 5, 1, [("Flax", 1)]),
    "wooden_arrow": _recipe("Wooden Arrow", "crafting", "crafting", 1, 5, 1, [("Wood", 1)], 15),
    "torch": _recipe("Torch", "crafting", "crafting", 1, 8, 2, [("Wood", 1), ("Cloth", 1)]),
    "fishing_net": _recipe("Fishing Net", "crafting", "crafting", 5, 15, 4, [("Thread", 5)]),
    "fishing_rod": _recipe("Fishing Rod", "crafting", "crafting", 5, 12, 3, [("Willow Wood", 1), ("Thread", 2)]),
    "rope": _recipe("Rope", "crafting", "crafting", 5, 10, 2, [("Thread", 3)]),
    "oak_plank": _recipe("Oak Plank", "crafting", "crafting", 10, 15, 2, [("Oak Wood", 1)], 2),
    "bronze_bar": _recipe("Bronze Bar", "smelting", "smithing", 1, 6, 2, [("Copper Ore", 1), ("Tin Ore", 1)]),
    "iron_bar": _recipe("Iron Bar", "smelting", "smithing", 15, 13, 3, [("Iron Ore", 1)]),
    "silver_bar": _recipe("Silver Bar", "smelting", "smithing", 20, 14, 3, [("Silver Ore", 1)]),
    "steel_bar": _recipe("Steel Bar", "smelting", "smithing", 30, 18, 4, [("Iron Ore", 1), ("Coal", 2)]),
    "gold_bar": _recipe("Gold Bar", "smelting", "smithing", 40, 23, 4, [("Gold Ore", 1)]),
    "mithril_bar": _recipe("Mithril Bar", "smelting", "smithing", 50, 30, 5, [("Mithril Ore", 1), ("Coal", 4)]),
}


class CraftingService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._skills = SkillService(session)
        self._energy = EnergyService(session)
        self._inventory = InventoryService(session)

    @staticmethod
    def can_craft(user: User) -> bool:
        if user.is_traveling_now():
            return False
        return user.current_location_type in VALID_LOCATIONS

    async def can_make_recipe(self, user: User, recipe_id: str) -> bool:
        recipe = RECIPES.get(recipe_id)
        if recipe is None:
            return False
        if await self._skills.get_level(user, recipe["skill"]) < recipe["required_level"]:
            return False
        if not EnergyService.has_energy(user, recipe["energy_cost"]):
            return False
        for material in recipe["materials"]:
            if not await self._inventory.has_item(user, material["name"], material["quantity"]):
                return False
        return await self._inventory.has_empty_slot(user)

    async def _format_recipe(self, recipe_id: str, recipe: dict[str, Any], user: User) -> dict[str, Any]:
        level = await self._skills.get_level(user, recipe["skill"])
        materials = []
        for material in recipe["materials"]:
            have = await self._inventory.count_item(user, material["name"])
            materials.append(
                {
                    "name": material["name"],
                    "required": material["quantity"],
                    "have": have,
                    "has_enough": have >= material["quantity"],
                }
            )
        return {
            "id": recipe_id,
            "name": recipe["name"],
            "category": recipe["category"],
            "skill": recipe["skill"],
            "required_level": recipe["required_level"],
            "xp_reward": recipe["xp_reward"],
            "energy_cost": recipe["energy_cost"],
            "materials": materials,
            "output": recipe["output"],
            "can_make": await self.can_make_recipe(user, recipe_id),
            "is_locked": level < recipe["required_level"],
            "current_level": level,
        }

    async def get_all_recipes(
        self, user: User, categories: tuple[str, ...] | None = None, unlocked_only: bool = False
    ) -> dict[str, list[dict[str, Any]]]:
        grouped: dict[str, list[dict[str, Any]]] = {}
        for recipe_id, recipe in RECIPES.items():
            if categories is not None and recipe["category"] not in categories:
                continue
            formatted = await self._format_recipe(recipe_id, recipe, user)
            if unlocked_only and formatted["is_locked"]:
                continue
            grouped.setdefault(recipe["category"], []).append(formatted)
        return grouped

    async def get_crafting_info(self, user: User) -> dict[str, Any] | None:
        if not self.can_craft(user):
            return None
        return {
            "can_craft": True,
            "recipes": await self.get_all_recipes(user, unlocked_only=True),
            "all_recipes": await self.get_all_recipes(user),
            "player_energy": user.energy,
            "max_energy": user.max_energy,
            "free_slots": await self._inventory.free_slots(user),
        }

    async def craft(self, user: User, recipe_id: str) -> dict[str, Any]:
        recipe = RECIPES.get(recipe_id)
        if recipe is None:
            return {"success": False, "message": "Invalid recipe."}

        if not self.can_craft(user):
            return {"success": False, "message": "You cannot craft here."}

        if await self._skills.get_level(user, recipe["skill"]) < recipe["required_level"]:
            return {
                "success": False,
                "message": f"You need level {recipe['required_level']} {recipe['skill']} to craft this.",
            }

        if not EnergyService.has_energy(user, recipe["energy_cost"]):
            return {"success": False, "message": f"Not enough energy. Need {recipe['energy_cost']} energy."}

        for material in recipe["materials"]:
            if not await self._inventory.has_item(user, material["name"], material["quantity"]):
                return {"success": False, "message": f"You don't have enough {material['name']}."}

        output = await self._inventory.resolve_item(recipe["output"]["name"])
        if output is None:
            return {"success": False, "message": "Output item not found in database."}

        if not await self._inventory.has_empty_slot(user):
            return {"success": False, "message": "Your inventory is full."}

        await self._energy.consume_energy(user, recipe["energy_cost"])
        for material in recipe["materials"]:
            await self._inventory.remove_item(user, material["name"], material["quantity"])

        base_quantity = recipe["output"]["quantity"]
        await self._inventory.add_item(user, output, base_quantity)

        xp_awarded = recipe["xp_reward"]
        skill, levels_gained = await self._skills.add_xp(user, recipe["skill"], xp_awarded)

        verb = "Smelted" if recipe["category"] == "smelting" else "Crafted"
        return {
            "success": True,
            "message": f"{verb} {base_quantity}x {output.name}!",
            "item": {"name": output.name, "quantity": base_quantity},
            "xp_awarded": xp_awarded,
            "skill": recipe["skill"],
            "leveled_up": levels_gained > 0,
            "new_level": skill.level if levels_gained > 0 else None,
            "energy_remaining": user.energy,
        }

    async def smelt(self, user: User, recipe_id: str) -> dict[str, Any]:
        """Forge entry point; only smelting recipes are accepted."""
        recipe = RECIPES.get(recipe_id)
        if recipe is None or recipe["category"] != "smelting":
            return {"success": False, "message": "Invalid recipe."}
        return await self.craft(user, recipe_id)
