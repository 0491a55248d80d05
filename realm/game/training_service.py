"""
Combat training at village, town and barony training grounds.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .energy_service import EnergyService
from .skill_service import SkillService, default_level, xp_for_level, xp_progress, xp_to_next_level

TRAINING_LOCATIONS = ("village", "town", "barony")

EXERCISES: dict[str, dict[str, Any]] = {
    "attack": {
        "name": "Combat Drills",
        "description": "Practice sword techniques and fighting stances to improve your attack power.",
        "skill": "attack",
        "energy_cost": 10,
        "base_xp": 25,
    },
    "strength": {
        "name": "Heavy Labor",
        "description": "Lift weights and perform manual labor to build raw strength.",
        "skill": "strength",
        "energy_cost": 10,
        "base_xp": 25,
    },
    "defense": {
        "name": "Sparring Practice",
        "description": "Train with shields and learn to block attacks to improve your defense.",
        "skill": "defense",
        "energy_cost": 10,
        "base_xp": 25,
    },
}


def training_xp(base_xp: int, level: int) -> int:
    """Higher levels earn a little less per session, never below half."""
    return round(base_xp * max(0.5, 1 - (level - 5) * 0.01))


class TrainingService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._skills = SkillService(session)
        self._energy = EnergyService(session)

    @staticmethod
    def can_train(user: User) -> bool:
        if user.is_traveling_now():
            return False
        return user.current_location_type in TRAINING_LOCATIONS

    async def _skill_snapshot(self, user: User, skill_name: str) -> dict[str, Any]:
        skill = await self._skills.find_skill(user, skill_name)
        if skill is None:
            level = default_level(skill_name)
            return {
                "level": level,
                "xp": 0,
                "progress": 0.0,
                "xp_to_next_level": xp_for_level(level + 1) - xp_for_level(level),
            }
        return {
            "level": skill.level,
            "xp": skill.xp,
            "progress": round(xp_progress(skill), 2),
            "xp_to_next_level": xp_to_next_level(skill),
        }

    async def get_exercise_info(self, user: User, exercise: str) -> dict[str, Any] | None:
        config = EXERCISES.get(exercise)
        if config is None:
            return None
        snapshot = await self._skill_snapshot(user, config["skill"])
        return {
            "id": exercise,
            "name": config["name"],
            "description": config["description"],
            "skill": config["skill"],
            "skill_level": snapshot["level"],
            "skill_xp": snapshot["xp"],
            "skill_progress": snapshot["progress"],
            "xp_to_next_level": snapshot["xp_to_next_level"],
            "energy_cost": config["energy_cost"],
            "base_xp": config["base_xp"],
            "player_energy": user.energy,
            "can_train": self.can_train(user) and EnergyService.has_energy(user, config["energy_cost"]),
        }

    async def get_available_exercises(self, user: User) -> list[dict[str, Any]]:
        if not self.can_train(user):
            return []
        return [await self.get_exercise_info(user, key) for key in EXERCISES]

    async def train(self, user: User, exercise: str) -> dict[str, Any]:
        config = EXERCISES.get(exercise)
        if config is None:
            return {"success": False, "message": "Invalid exercise."}

        if not self.can_train(user):
            return {
                "success": False,
                "message": "You cannot train here. Find a training ground in a village, town, or barony.",
            }

        if not EnergyService.has_energy(user, config["energy_cost"]):
            return {"success": False, "message": f"Not enough energy. Need {config['energy_cost']} energy."}

        await self._energy.consume_energy(user, config["energy_cost"])

        skill = await self._skills.get_or_create_skill(user, config["skill"])
        xp_awarded = training_xp(config["base_xp"], skill.level)
        skill, levels_gained = await self._skills.add_xp(user, config["skill"], xp_awarded)

        return {
            "success": True,
            "message": f"You completed {config['name']}!",
            "exercise": exercise,
            "xp_awarded": xp_awarded,
            "skill": config["skill"],
            "new_level": skill.level,
            "leveled_up": levels_gained > 0,
            "energy_remaining": user.energy,
            "skill_progress": round(xp_progress(skill), 2),
            "xp_to_next_level": xp_to_next_level(skill),
        }

    async def get_combat_stats(self, user: User) -> dict[str, Any]:
        stats: dict[str, Any] = {}
        for config in EXERCISES.values():
            stats[config["skill"]] = await self._skill_snapshot(user, config["skill"])
        stats["combat_level"] = await self._skills.get_combat_level(user)
        return stats
