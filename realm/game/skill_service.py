"""
Skill levels and experience.

XP required to go from level L to L+1 is L^2 * 60; totals accumulate from
level 1. Combat skills start at level 5, everything else at level 1.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.skill import PlayerSkill
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SKILLS = (
    "attack",
    "strength",
    "defense",
    "hitpoints",
    "range",
    "prayer",
    "farming",
    "mining",
    "fishing",
    "woodcutting",
    "cooking",
    "smithing",
    "crafting",
    "thieving",
    "herblore",
    "agility",
    "construction",
)
COMBAT_SKILLS = ("attack", "strength", "defense", "range", "hitpoints", "prayer")
MAX_LEVEL = 99


def default_level(skill_name: str) -> int:
    return 5 if skill_name in COMBAT_SKILLS else 1


def xp_for_level(level: int) -> int:
    """Total XP needed to reach ``level``."""
    if level < 1:
        return 0
    return sum(lvl * lvl * 60 for lvl in range(1, level))


def level_from_xp(xp: int) -> int:
    level = 1
    total = 0
    while level < MAX_LEVEL:
        needed = level * level * 60
        if total + needed > xp:
            break
        total += needed
        level += 1
    return level


def xp_progress(skill: PlayerSkill) -> float:
    """Percentage of the way from the current level to the next."""
    if skill.level >= MAX_LEVEL:
        return 100.0
    current = xp_for_level(skill.level)
    needed = xp_for_level(skill.level + 1) - current
    return (skill.xp - current) / needed * 100


def xp_to_next_level(skill: PlayerSkill) -> int:
    if skill.level >= MAX_LEVEL:
        return 0
    return xp_for_level(skill.level + 1) - skill.xp


class SkillService:
    """Reads and grows PlayerSkill rows, creating them at their starting level on first touch."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_skill(self, user: User, skill_name: str) -> PlayerSkill | None:
        stmt = select(PlayerSkill).where(PlayerSkill.player_id == user.id, PlayerSkill.skill_name == skill_name)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_or_create_skill(self, user: User, skill_name: str) -> PlayerSkill:
        if skill_name not in SKILLS:
            raise ValueError(f"Unknown skill: {skill_name}")
        skill = await self.find_skill(user, skill_name)
        if skill is None:
            start = default_level(skill_name)
            skill = PlayerSkill(player_id=user.id, skill_name=skill_name, level=start, xp=xp_for_level(start))
            self._session.add(skill)
            await self._session.flush()
        return skill

    async def get_level(self, user: User, skill_name: str) -> int:
        skill = await self.find_skill(user, skill_name)
        return skill.level if skill is not None else default_level(skill_name)

    async def add_xp(self, user: User, skill_name: str, amount: int) -> tuple[PlayerSkill, int]:
        """Add XP and return the skill with the number of levels gained."""
        skill = await self.get_or_create_skill(user, skill_name)
        skill.xp += amount
        new_level = min(level_from_xp(skill.xp), MAX_LEVEL)
        gained = max(0, new_level - skill.level)
        if gained:
            skill.level = new_level
            logger.info("Skill level up", user_id=user.id, skill=skill_name, new_level=new_level)
        await self._session.flush()
        return skill, gained

    async def get_combat_level(self, user: User) -> int:
        attack = await self.get_level(user, "attack")
        strength = await self.get_level(user, "strength")
        defense = await self.get_level(user, "defense")
        return (attack + strength + defense) // 3

    async def get_all_skills(self, user: User) -> list[dict]:
        stmt = select(PlayerSkill).where(PlayerSkill.player_id == user.id)
        owned = {s.skill_name: s for s in (await self._session.execute(stmt)).scalars()}
        summary = []
        for name in SKILLS:
            skill = owned.get(name)
            if skill is None:
                level = default_level(name)
                summary.append(
                    {
                        "skill": name,
                        "level": level,
                        "xp": xp_for_level(level),
                        "progress": 0.0,
                        "xp_to_next_level": xp_for_level(level + 1) - xp_for_level(level),
                    }
                )
            else:
                summary.append(
                    {
                        "skill": name,
                        "level": skill.level,
                        "xp": skill.xp,
                        "progress": round(xp_progress(skill), 2),
                        "xp_to_next_level": xp_to_next_level(skill),
                    }
                )
        return summary
