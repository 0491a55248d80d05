"""
LocationNpc model: the simulated population of villages and towns.

An NPC is alive while death_year is NULL; age is derived from birth_year
and the current calendar year and freezes at death.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

import random

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, and_, or_
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

ADULT_AGE = 16
ELDERLY_AGE = 50
MAX_AGE = 80
MIN_REPRODUCTIVE_AGE = 18
MAX_FEMALE_REPRODUCTIVE_AGE = 45
BIRTH_COOLDOWN_YEARS = 2

PERSONALITY_TRAITS = (
    "greedy",
    "ambitious",
    "peaceful",
    "content",
    "honest",
    "cunning",
    "generous",
    "pious",
    "brave",
    "cautious",
    "lazy",
    "diligent",
)

MALE_FIRST_NAMES = (
    "Aldric", "Bram", "Cedric", "Dunstan", "Edmund", "Godfrey", "Hamon", "Osric",
    "Roland", "Tobias", "Walter", "Wystan",
)
FEMALE_FIRST_NAMES = (
    "Agnes", "Beatrice", "Cecily", "Edith", "Elswyth", "Isolde", "Juliana", "Maud",
    "Rosamund", "Sybil", "Wynn", "Ysolde",
)
FAMILY_NAMES = (
    "Ashdown", "Blackwood", "Brightwater", "Cooper", "Fairfax", "Fletcher", "Hale",
    "Marsh", "Millward", "Oakes", "Thatcher", "Underhill", "Whitlock",
)

# Role slug prefixes so the smith reads as a smith in the village roster
ROLE_NAME_PREFIXES = {
    "elder": "Old",
    "blacksmith": "Smith",
    "priest": "Brother",
    "guard_captain": "Captain",
    "mayor": "Master",
    "baron": "Lord",
    "king": "King",
}


def generate_first_name(gender: str, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    pool = FEMALE_FIRST_NAMES if gender == "female" else MALE_FIRST_NAMES
    return rng.choice(pool)


def generate_family_name(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return rng.choice(FAMILY_NAMES)


def generate_npc_name(role_slug: str | None = None, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    first = generate_first_name(rng.choice(("male", "female")), rng)
    prefix = ROLE_NAME_PREFIXES.get(role_slug or "")
    return f"{prefix} {first}" if prefix else first


def generate_personality_traits(rng: random.Random | None = None) -> list[str]:
    rng = rng or random.Random()
    return rng.sample(PERSONALITY_TRAITS, rng.randint(1, 2))


class LocationNpc(TimestampMixin, Base):
    """A simulated resident; role holders have is_active set."""

    __tablename__ = "location_npcs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_id: Mapped[int | None] = mapped_column(ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    npc_name: Mapped[str] = mapped_column(String(100), nullable=False)
    family_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    npc_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    npc_icon: Mapped[str] = mapped_column(String(30), default="user", nullable=False)
    gender: Mapped[str] = mapped_column(String(10), default="male", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    birth_year: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    death_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    personality_traits: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    spouse_id: Mapped[int | None] = mapped_column(ForeignKey("location_npcs.id", ondelete="SET NULL"), nullable=True)
    parent1_id: Mapped[int | None] = mapped_column(ForeignKey("location_npcs.id", ondelete="SET NULL"), nullable=True)
    parent2_id: Mapped[int | None] = mapped_column(ForeignKey("location_npcs.id", ondelete="SET NULL"), nullable=True)
    last_birth_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weeks_without_food: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Query helpers: SQL expressions mirroring the instance predicates below

    @classmethod
    def alive_clause(cls):
        return cls.death_year.is_(None)

    @classmethod
    def dead_clause(cls):
        return cls.death_year.is_not(None)

    @classmethod
    def elderly_clause(cls, current_year: int):
        return cls.birth_year <= current_year - ELDERLY_AGE

    @classmethod
    def reproductive_age_clause(cls, current_year: int):
        min_birth = current_year - MIN_REPRODUCTIVE_AGE
        female_oldest_birth = current_year - MAX_FEMALE_REPRODUCTIVE_AGE
        return or_(
            and_(cls.gender == "male", cls.birth_year <= min_birth),
            and_(cls.gender == "female", cls.birth_year <= min_birth, cls.birth_year >= female_oldest_birth),
        )

    @classmethod
    def can_reproduce_clause(cls, current_year: int):
        return and_(
            cls.alive_clause(),
            cls.reproductive_age_clause(current_year),
            or_(cls.last_birth_year.is_(None), cls.last_birth_year <= current_year - BIRTH_COOLDOWN_YEARS),
        )

    def is_alive(self) -> bool:
        return self.death_year is None

    def is_dead(self) -> bool:
        return self.death_year is not None

    def get_age(self, current_year: int) -> int:
        end_year = self.death_year if self.death_year is not None else current_year
        return max(0, end_year - self.birth_year)

    def is_adult(self, current_year: int) -> bool:
        return self.get_age(current_year) >= ADULT_AGE

    def is_elderly(self, current_year: int) -> bool:
        return self.get_age(current_year) >= ELDERLY_AGE

    def get_death_probability(self, current_year: int) -> float:
        """Zero until 50, rising linearly to certainty at 80."""
        age = self.get_age(current_year)
        if age <= ELDERLY_AGE:
            return 0.0
        if age >= MAX_AGE:
            return 1.0
        return (age - ELDERLY_AGE) / (MAX_AGE - ELDERLY_AGE)

    def die(self, year: int) -> None:
        self.death_year = year
        self.is_active = False

    def has_trait(self, trait: str) -> bool:
        return trait in (self.personality_traits or [])

    def is_of_reproductive_age(self, current_year: int) -> bool:
        age = self.get_age(current_year)
        if age < MIN_REPRODUCTIVE_AGE:
            return False
        if self.gender == "female":
            return age <= MAX_FEMALE_REPRODUCTIVE_AGE
        return True

    def can_have_child(self, current_year: int) -> bool:
        if not self.is_alive() or not self.is_of_reproductive_age(current_year):
            return False
        return self.last_birth_year is None or current_year - self.last_birth_year >= BIRTH_COOLDOWN_YEARS

    def marry(self, other: LocationNpc) -> None:
        self.spouse_id = other.id
        other.spouse_id = self.id

    @property
    def full_name(self) -> str:
        return f"{self.npc_name} {self.family_name}" if self.family_name else self.npc_name

    def __repr__(self) -> str:
        return f"<LocationNpc(id={self.id}, name={self.npc_name!r}, {self.location_type}:{self.location_id})>"
