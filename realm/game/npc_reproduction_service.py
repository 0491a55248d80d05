"""
Yearly marriages and births among the NPC population.
"""

import random
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.npc import (
    LocationNpc,
    generate_family_name,
    generate_first_name,
    generate_personality_traits,
)
from ..models.world import WorldState
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

BASE_FERTILITY_RATE = 0.3
CHILD_PENALTY = 0.05
MAX_CHILDREN = 6
MIN_FERTILITY = 0.05
MAX_FERTILITY = 0.5


def calculate_fertility_rate(mother: LocationNpc, father: LocationNpc, current_year: int, children: int) -> float:
    """
    Chance that a couple has a child this year.

    Falls with every existing child and with the mother's age past 35.
    Content parents are slightly more fertile, ambitious ones slightly less.
    """
    rate = BASE_FERTILITY_RATE - children * CHILD_PENALTY

    mother_age = mother.get_age(current_year)
    if mother_age > 35:
        rate *= max(0.2, 1 - (mother_age - 35) * 0.08)

    if mother.has_trait("content") or father.has_trait("content"):
        rate *= 1.1
    if mother.has_trait("ambitious") or father.has_trait("ambitious"):
        rate *= 0.9

    return max(MIN_FERTILITY, min(MAX_FERTILITY, rate))


class NpcReproductionService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()

    async def process_yearly_reproduction(self) -> dict[str, int]:
        year = (await WorldState.current(self._session)).current_year
        results = {
            "marriages": await self.process_marriages(year),
            "births": await self.process_births(year),
        }
        logger.info(
            "NPC yearly reproduction processed",
            year=year,
            new_marriages=results["marriages"],
            new_births=results["births"],
        )
        return results

    async def process_marriages(self, current_year: int) -> int:
        """Pair every unmarried woman of reproductive age with an unmarried man at her location."""
        stmt = (
            select(LocationNpc)
            .where(
                LocationNpc.alive_clause(),
                LocationNpc.spouse_id.is_(None),
                LocationNpc.gender == "female",
                LocationNpc.reproductive_age_clause(current_year),
            )
            .order_by(LocationNpc.id)
        )
        marriages = 0
        for female in list((await self._session.execute(stmt)).scalars()):
            candidates_stmt = (
                select(LocationNpc)
                .where(
                    LocationNpc.alive_clause(),
                    LocationNpc.spouse_id.is_(None),
                    LocationNpc.gender == "male",
                    LocationNpc.location_type == female.location_type,
                    LocationNpc.location_id == female.location_id,
                    LocationNpc.id != female.id,
                    LocationNpc.reproductive_age_clause(current_year),
                )
                .order_by(LocationNpc.id)
            )
            if female.parent1_id is not None:
                # Siblings share their first parent
                candidates_stmt = candidates_stmt.where(
                    or_(LocationNpc.parent1_id.is_(None), LocationNpc.parent1_id != female.parent1_id)
                )
            candidates = list((await self._session.execute(candidates_stmt)).scalars())
            if not candidates:
                continue

            male = self._rng.choice(candidates)
            female.marry(male)
            await self._session.flush()
            marriages += 1
            logger.info(
                "NPC marriage created",
                npc1_id=female.id,
                npc1_name=female.npc_name,
                npc2_id=male.id,
                npc2_name=male.npc_name,
                location_type=female.location_type,
                location_id=female.location_id,
            )
        return marriages

    async def get_child_count(self, parent1: LocationNpc, parent2: LocationNpc) -> int:
        stmt = select(func.count(LocationNpc.id)).where(
            or_(
                and_(LocationNpc.parent1_id == parent1.id, LocationNpc.parent2_id == parent2.id),
                and_(LocationNpc.parent1_id == parent2.id, LocationNpc.parent2_id == parent1.id),
            )
        )
        return (await self._session.execute(stmt)).scalar_one()

    def roll_for_birth(self, probability: float) -> bool:
        return self._rng.randint(0, 100) / 100 <= probability

    async def process_births(self, current_year: int) -> int:
        stmt = (
            select(LocationNpc)
            .where(
                LocationNpc.spouse_id.is_not(None),
                LocationNpc.gender == "female",
                LocationNpc.can_reproduce_clause(current_year),
            )
            .order_by(LocationNpc.id)
        )
        births = 0
        for mother in list((await self._session.execute(stmt)).scalars()):
            father = await self._session.get(LocationNpc, mother.spouse_id)
            if father is None or not father.can_have_child(current_year):
                continue

            children = await self.get_child_count(mother, father)
            if children >= MAX_CHILDREN:
                continue

            if self.roll_for_birth(calculate_fertility_rate(mother, father, current_year, children)):
                await self.create_child(mother, father, current_year)
                births += 1
        return births

    def inherit_traits(self, parent1: LocationNpc, parent2: LocationNpc) -> list[str]:
        """Half the time a child takes one or two of its parents' traits; otherwise it rolls its own."""
        parent_traits = list(dict.fromkeys((parent1.personality_traits or []) + (parent2.personality_traits or [])))
        if parent_traits and self._rng.randint(0, 1) == 0:
            self._rng.shuffle(parent_traits)
            return parent_traits[: self._rng.randint(1, min(2, len(parent_traits)))]
        return generate_personality_traits(self._rng)

    async def create_child(self, mother: LocationNpc, father: LocationNpc, current_year: int) -> LocationNpc:
        gender = "male" if self._rng.randint(0, 1) == 0 else "female"
        family_name = father.family_name or generate_family_name(self._rng)
        first_name = generate_first_name(gender, self._rng)

        child = LocationNpc(
            role_id=None,
            location_type=mother.location_type,
            location_id=mother.location_id,
            npc_name=first_name,
            family_name=family_name,
            gender=gender,
            parent1_id=mother.id,
            parent2_id=father.id,
            npc_description=f"Child of {mother.npc_name} and {father.npc_name}.",
            npc_icon="user",
            is_active=False,
            birth_year=current_year,
            personality_traits=self.inherit_traits(mother, father),
        )
        self._session.add(child)
        mother.last_birth_year = current_year
        father.last_birth_year = current_year
        await self._session.flush()

        logger.info(
            "NPC child born",
            child_id=child.id,
            child_name=f"{first_name} {family_name}",
            gender=gender,
            mother_id=mother.id,
            father_id=father.id,
            location_type=mother.location_type,
            location_id=mother.location_id,
        )
        return child

    async def get_reproduction_statistics(self) -> dict[str, Any]:
        year = (await WorldState.current(self._session)).current_year

        async def count(*clauses) -> int:
            return (await self._session.execute(select(func.count(LocationNpc.id)).where(*clauses))).scalar_one()

        return {
            "total_living": await count(LocationNpc.alive_clause()),
            "married_couples": await count(LocationNpc.alive_clause(), LocationNpc.spouse_id.is_not(None)) // 2,
            "eligible_for_reproduction": await count(LocationNpc.can_reproduce_clause(year)),
            "children_born_this_year": await count(LocationNpc.birth_year == year),
            "current_year": year,
        }
