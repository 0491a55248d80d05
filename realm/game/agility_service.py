"""
Agility courses.

Every attempt costs energy. Success rolls against the obstacle's base rate
plus half a percent per level above its requirement (at most +20), clamped
to 10..98; a failed attempt still earns a quarter of the XP.
"""

import math
import random
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .energy_service import EnergyService
from .skill_service import SkillService, default_level, xp_progress, xp_to_next_level

COURSE_LOCATIONS = ("village", "town", "barony")
FAILED_XP_FRACTION = 0.25


def _obstacle(name: str, min_level: int, energy: int, xp: int, rate: int, legendary: bool = False):
    return {
        "name": name,
        "min_level": min_level,
        "energy_cost": energy,
        "base_xp": xp,
        "base_success_rate": rate,
        "is_legendary": legendary,
    }


OBSTACLES: dict[str, dict[str, Any]] = {
    "log_balance": _obstacle("Log Balance", 1, 2, 8, 95),
    "rope_swing": _obstacle("Rope Swing", 1, 2, 10, 92),
    "hurdles": _obstacle("Hurdles", 5, 3, 15, 90),
    "stepping_stones": _obstacle("Stepping Stones", 5, 3, 18, 88),
    "wall_climb": _obstacle("Wall Climb", 10, 4, 22, 88),
    "balance_beam": _obstacle("Balance Beam", 10, 4, 25, 85),
    "monkey_bars": _obstacle("Monkey Bars", 15, 4, 30, 85),
    "net_climb": _obstacle("Cargo Net", 15, 4, 32, 85),
    "pipe_crawl": _obstacle("Pipe Crawl", 20, 5, 38, 82),
    "tightrope": _obstacle("Tightrope", 20, 5, 42, 80),
    "rope_ladder": _obstacle("Rope Ladder", 25, 5, 48, 80),
    "wall_run": _obstacle("Wall Run", 25, 5, 52, 78),
    "spinning_logs": _obstacle("Spinning Logs", 30, 6, 58, 78),
    "leap_of_faith": _obstacle("Leap of Faith", 30, 6, 62, 75),
    "hanging_rings": _obstacle("Hanging Rings", 35, 6, 68, 75),
    "salmon_ladder": _obstacle("Salmon Ladder", 35, 6, 72, 72),
    "cliff_face": _obstacle("Cliff Face", 40, 7, 80, 72),
    "spider_web": _obstacle("Spider Web", 40, 7, 85, 70),
    "warped_wall": _obstacle("Warped Wall", 45, 7, 92, 70),
    "floating_steps": _obstacle("Floating Steps", 45, 7, 98, 68),
    "vertical_limit": _obstacle("Vertical Limit", 50, 8, 105, 68),
    "swinging_axes": _obstacle("Swinging Axes", 50, 8, 112, 65),
    "sky_bridge": _obstacle("Sky Bridge", 55, 8, 120, 65),
    "wind_tunnel": _obstacle("Wind Tunnel", 55, 8, 128, 62),
    "tower_ascent": _obstacle("Tower Ascent", 60, 9, 138, 62),
    "trapeze": _obstacle("Flying Trapeze", 60, 9, 145, 60),
    "glass_bridge": _obstacle("Glass Bridge", 65, 9, 155, 60),
    "pendulum_jump": _obstacle("Pendulum Jump", 65, 9, 165, 58),
    "castle_walls": _obstacle("Castle Walls", 70, 10, 178, 58),
    "lava_pit": _obstacle("Lava Pit Crossing", 70, 10, 190, 55),
    "gauntlet_run": _obstacle("Gauntlet Run", 75, 10, 205, 55),
    "ultimate_climb": _obstacle("Ultimate Climb", 75, 10, 220, 52),
    "ninja_course": _obstacle("Ninja Course", 80, 12, 250, 50),
    "masters_trial": _obstacle("Master's Trial", 85, 14, 300, 45),
    "legendary_course": _obstacle("Legendary Course", 90, 16, 400, 40, legendary=True),
}


def calculate_success_rate(level: int, obstacle: dict[str, Any]) -> int:
    bonus = min(20, (level - obstacle["min_level"]) * 0.5)
    rate = obstacle["base_success_rate"] + bonus
    if obstacle["is_legendary"]:
        return int(max(5, min(60, rate)))
    return int(max(10, min(98, rate)))


class AgilityService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()
        self._skills = SkillService(session)
        self._energy = EnergyService(session)

    @staticmethod
    def can_train(user: User) -> bool:
        if user.is_traveling_now():
            return False
        return user.current_location_type in COURSE_LOCATIONS

    async def get_available_obstacles(self, user: User) -> list[dict[str, Any]]:
        level = await self._skills.get_level(user, "agility")
        obstacles = []
        for key, config in OBSTACLES.items():
            unlocked = level >= config["min_level"]
            obstacles.append(
                {
                    "id": key,
                    "name": config["name"],
                    "min_level": config["min_level"],
                    "energy_cost": config["energy_cost"],
                    "base_xp": config["base_xp"],
                    "success_rate": calculate_success_rate(level, config),
                    "is_unlocked": unlocked,
                    "is_legendary": config["is_legendary"],
                    "can_attempt": unlocked and EnergyService.has_energy(user, config["energy_cost"]),
                }
            )
        return obstacles

    async def train(self, user: User, obstacle_id: str) -> dict[str, Any]:
        config = OBSTACLES.get(obstacle_id)
        if config is None:
            return {"success": False, "message": "Invalid obstacle."}

        if not self.can_train(user):
            return {"success": False, "message": "This obstacle is not available at your location."}

        level = await self._skills.get_level(user, "agility")
        if level < config["min_level"]:
            return {"success": False, "message": f"You need level {config['min_level']} Agility to attempt this."}

        if not EnergyService.has_energy(user, config["energy_cost"]):
            return {"success": False, "message": f"Not enough energy. Need {config['energy_cost']} energy."}

        succeeded = self._rng.randint(1, 100) <= calculate_success_rate(level, config)
        await self._energy.consume_energy(user, config["energy_cost"])

        if not succeeded:
            xp_awarded = math.ceil(config["base_xp"] * FAILED_XP_FRACTION)
            await self._skills.add_xp(user, "agility", xp_awarded)
            return {
                "success": False,
                "failed": True,
                "message": f"You slipped and failed the {config['name']}. Try again!",
                "xp_awarded": xp_awarded,
                "skill": "agility",
                "energy_remaining": user.energy,
            }

        skill, levels_gained = await self._skills.add_xp(user, "agility", config["base_xp"])
        return {
            "success": True,
            "message": f"You successfully completed the {config['name']}!",
            "xp_awarded": config["base_xp"],
            "skill": "agility",
            "leveled_up": levels_gained > 0,
            "new_level": skill.level,
            "energy_remaining": user.energy,
        }

    async def get_agility_info(self, user: User) -> dict[str, Any]:
        skill = await self._skills.find_skill(user, "agility")
        return {
            "can_train": self.can_train(user),
            "obstacles": await self.get_available_obstacles(user),
            "player_energy": user.energy,
            "max_energy": user.max_energy,
            "agility_level": skill.level if skill is not None else default_level("agility"),
            "agility_xp": skill.xp if skill is not None else 0,
            "agility_xp_progress": round(xp_progress(skill), 2) if skill is not None else 0,
            "agility_xp_to_next": xp_to_next_level(skill) if skill is not None else 60,
        }
