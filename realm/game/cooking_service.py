"""
Cooking at the tavern hearth.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .energy_service import EnergyService
from .inventory_service import InventoryService
from .skill_service import SkillService


def _recipe(name: str, level: int, xp: int, energy: int, materials: list[tuple[str, int]], output: str):
    return {
        "name": name,
        "required_level": level,
        "xp_reward": xp,
        "energy_cost": energy,
        "materials": [{"name": n, "quantity": q} for n, q in materials],
        "output": {"name": output, "quantity": 1},
    }


RECIPES: dict[str, dict[str, Any]] = {
    "flour": _recipe("Flour", 1, 8, 2, [("Grain", 2)], "Flour"),
    "bread": _recipe("Bread", 1, 15, 2, [("Flour", 1)], "Bread"),
    "cooked_shrimp": _recipe("Cooked Shrimp", 1, 18, 2, [("Raw Shrimp", 1)], "Cooked Shrimp"),
    "cooked_chicken": _recipe("Cooked Chicken", 1, 15, 2, [("Raw Chicken", 1)], "Cooked Chicken"),
    "cooked_sardine": _recipe("Cooked Sardine", 5, 22, 2, [("Raw Sardine", 1)], "Cooked Sardine"),
    "cooked_meat": _recipe("Cooked Meat", 5, 25, 2, [("Raw Meat", 1)], "Cooked Meat"),
    "cooked_trout": _recipe("Cooked Trout", 10, 35, 3, [("Raw Trout", 1)], "Cooked Trout"),
    "meat_pie": _recipe("Meat Pie", 15, 55, 4, [("Flour", 1), ("Raw Meat", 1)], "Meat Pie"),
    "cooked_salmon": _recipe("Cooked Salmon", 20, 50, 3, [("Raw Salmon", 1)], "Cooked Salmon"),
    "cooked_lobster": _recipe("Cooked Lobster", 30, 75, 4, [("Raw Lobster", 1)], "Cooked Lobster"),
    "cooked_swordfish": _recipe("Cooked Swordfish", 40, 100, 4, [("Raw Swordfish", 1)], "Cooked Swordfish"),
}


class CookingService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._skills = SkillService(session)
        self._energy = EnergyService(session)
        self._inventory = InventoryService(session)

    async def _format_recipe(self, recipe_id: str, recipe: dict[str, Any], user: User, level: int) -> dict[str, Any]:
        is_locked = level < recipe["required_level"]
        materials = []
        has_materials = True
        for material in recipe["materials"]:
            have = await self._inventory.count_item(user, material["name"])
            has_enough = have >= material["quantity"]
            has_materials = has_materials and has_enough
            materials.append(
                {"name": material["name"], "required": material["quantity"], "have": have, "has_enough": has_enough}
            )

        can_make = (
            not is_locked
            and has_materials
            and EnergyService.has_energy(user, recipe["energy_cost"])
            and await self._inventory.has_empty_slot(user)
        )
        return {
            "id": recipe_id,
            "name": recipe["name"],
            "required_level": recipe["required_level"],
            "xp_reward": recipe["xp_reward"],
            "energy_cost": recipe["energy_cost"],
            "materials": materials,
            "output": recipe["output"],
            "can_make": can_make,
            "is_locked": is_locked,
            "current_level": level,
        }

    async def get_cooking_info(self, user: User) -> dict[str, Any]:
        level = await self._skills.get_level(user, "cooking")
        return {
            "recipes": [await self._format_recipe(key, recipe, user, level) for key, recipe in RECIPES.items()],
            "cooking_level": level,
        }

    async def cook(self, user: User, recipe_id: str) -> dict[str, Any]:
        recipe = RECIPES.get(recipe_id)
        if recipe is None:
            return {"success": False, "message": "Invalid recipe."}

        if await self._skills.get_level(user, "cooking") < recipe["required_level"]:
            return {"success": False, "message": f"You need level {recipe['required_level']} cooking to make this."}

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

        quantity = recipe["output"]["quantity"]
        await self._inventory.add_item(user, output, quantity)
        skill, levels_gained = await self._skills.add_xp(user, "cooking", recipe["xp_reward"])

        return {
            "success": True,
            "message": f"Cooked {quantity}x {output.name}!",
            "item": {"name": output.name, "quantity": quantity},
            "xp_awarded": recipe["xp_reward"],
            "skill": "cooking",
            "leveled_up": levels_gained > 0,
            "new_level": skill.level if levels_gained > 0 else None,
            "energy_remaining": user.energy,
        }
