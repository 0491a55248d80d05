"""
Yearly aging of the NPC population.

Elderly NPCs roll against their death probability once per game year. A
dead role holder is replaced by a fresh adult unless a player has taken the
role at that location in the meantime.
"""

import random
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.npc import (
    LocationNpc,
    generate_family_name,
    generate_npc_name,
    generate_personality_traits,
)
from ..models.role import PlayerRole, Role
from ..models.world import WorldState
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

REPLACEMENT_AGE_RANGE = (20, 40)
ROLE_NPC_AGE_RANGE = (25, 50)


class NpcLifecycleService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()

    def roll_for_death(self, probability: float) -> bool:
        return self._rng.randint(0, 100) / 100 <= probability

    async def process_yearly_aging(self) -> dict[str, int]:
        state = await WorldState.current(self._session)
        year = state.current_year
        results = {"aged": 0, "died": 0, "replaced": 0}

        stmt = (
            select(LocationNpc)
            .where(LocationNpc.alive_clause(), LocationNpc.elderly_clause(year))
            .order_by(LocationNpc.id)
        )
        for npc in list((await self._session.execute(stmt)).scalars()):
            if not self.roll_for_death(npc.get_death_probability(year)):
                continue

            was_active = npc.is_active
            npc.die(year)
            results["died"] += 1
            logger.info(
                "NPC died of old age",
                npc_id=npc.id,
                npc_name=npc.npc_name,
                age=year - npc.birth_year,
                location_type=npc.location_type,
                location_id=npc.location_id,
                role_id=npc.role_id,
            )

            if was_active and await self._replace_dead_npc(npc, year):
                results["replaced"] += 1

        await self._session.flush()
        results["aged"] = await self._count(LocationNpc.alive_clause())
        logger.info(
            "NPC yearly aging processed",
            year=year,
            npcs_aged=results["aged"],
            npcs_died=results["died"],
            npcs_replaced=results["replaced"],
        )
        return results

    async def _role_held_by_player(self, role_id: int, location_type: str, location_id: int) -> bool:
        stmt = select(func.count(PlayerRole.id)).where(
            PlayerRole.role_id == role_id,
            PlayerRole.location_type == location_type,
            PlayerRole.location_id == location_id,
            PlayerRole.status == PlayerRole.STATUS_ACTIVE,
        )
        return (await self._session.execute(stmt)).scalar_one() > 0

    async def _replace_dead_npc(self, dead: LocationNpc, year: int) -> bool:
        if dead.role_id is None:
            return False
        role = await self._session.get(Role, dead.role_id)
        if role is None:
            return False
        if await self._role_held_by_player(role.id, dead.location_type, dead.location_id):
            return False

        replacement = LocationNpc(
            role_id=role.id,
            location_type=dead.location_type,
            location_id=dead.location_id,
            npc_name=generate_npc_name(role.slug, self._rng),
            family_name=generate_family_name(self._rng),
            npc_description=dead.npc_description,
            npc_icon=dead.npc_icon,
            is_active=True,
            birth_year=year - self._rng.randint(*REPLACEMENT_AGE_RANGE),
            personality_traits=generate_personality_traits(self._rng),
        )
        self._session.add(replacement)
        await self._session.flush()
        logger.info(
            "NPC replaced after death",
            old_npc_id=dead.id,
            new_npc_id=replacement.id,
            new_npc_name=replacement.npc_name,
            role=role.name,
            location_type=dead.location_type,
            location_id=dead.location_id,
        )
        return True

    async def create_npc_for_role(
        self, role: Role, location_type: str, location_id: int, current_year: int | None = None
    ) -> LocationNpc:
        """Seat a new adult NPC in a role at a location."""
        if current_year is None:
            current_year = (await WorldState.current(self._session)).current_year

        npc = LocationNpc(
            role_id=role.id,
            location_type=location_type,
            location_id=location_id,
            npc_name=generate_npc_name(role.slug, self._rng),
            family_name=generate_family_name(self._rng),
            npc_description=f"The local {role.name}.",
            npc_icon=role.icon or "user",
            is_active=True,
            birth_year=current_year - self._rng.randint(*ROLE_NPC_AGE_RANGE),
            personality_traits=generate_personality_traits(self._rng),
        )
        self._session.add(npc)
        await self._session.flush()
        return npc

    async def _count(self, *clauses) -> int:
        stmt = select(func.count(LocationNpc.id)).where(*clauses)
        return (await self._session.execute(stmt)).scalar_one()

    async def get_npc_statistics(self) -> dict[str, Any]:
        year = (await WorldState.current(self._session)).current_year
        return {
            "living": await self._count(LocationNpc.alive_clause()),
            "dead": await self._count(LocationNpc.dead_clause()),
            "elderly": await self._count(LocationNpc.alive_clause(), LocationNpc.elderly_clause(year)),
            "active": await self._count(LocationNpc.alive_clause(), LocationNpc.is_active.is_(True)),
            "current_year": year,
        }

    async def initialize_existing_npcs(self) -> int:
        """Give NPCs without a birth year an adult age, a family name and traits."""
        year = (await WorldState.current(self._session)).current_year
        stmt = select(LocationNpc).where(or_(LocationNpc.birth_year.is_(None), LocationNpc.birth_year == 0))
        updated = 0
        for npc in (await self._session.execute(stmt)).scalars():
            npc.birth_year = max(1, year - self._rng.randint(*ROLE_NPC_AGE_RANGE))
            npc.family_name = npc.family_name or generate_family_name(self._rng)
            npc.personality_traits = npc.personality_traits or generate_personality_traits(self._rng)
            updated += 1
        await self._session.flush()
        logger.info("Initialized lifecycle fields for existing NPCs", npcs_updated=updated)
        return updated
