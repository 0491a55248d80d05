"""
World models: the calendar singleton and the location hierarchy.

Kingdom > Barony > Village/Town. Every location carries map coordinates
(used for nearest-settlement searches) and a biome.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime

SEASONS = ("spring", "summer", "autumn", "winter")


class WorldState(TimestampMixin, Base):
    """Single-row in-game calendar."""

    __tablename__ = "world_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    current_year: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_season: Mapped[str] = mapped_column(String(10), default="spring", nullable=False)
    current_week: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_day: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_tick_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    @classmethod
    async def current(cls, session: AsyncSession) -> WorldState:
        """Return the calendar row, creating year 1, spring, week 1, day 1 when missing."""
        state = (await session.execute(select(cls).order_by(cls.id).limit(1))).scalar_one_or_none()
        if state is None:
            state = cls(current_year=1, current_season="spring", current_week=1, current_day=1)
            session.add(state)
            await session.flush()
        return state

    def season_index(self) -> int:
        return SEASONS.index(self.current_season)

    def week_of_year(self) -> int:
        return self.season_index() * 12 + self.current_week

    def __repr__(self) -> str:
        return (
            f"<WorldState(year={self.current_year}, season={self.current_season!r}, "
            f"week={self.current_week}, day={self.current_day})>"
        )


class Kingdom(TimestampMixin, Base):
    __tablename__ = "kingdoms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    biome: Mapped[str] = mapped_column(String(20), default="plains", nullable=False)
    tax_rate: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    capital_town_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Kingdom(id={self.id}, name={self.name!r})>"


class Barony(TimestampMixin, Base):
    """A barony; its castle is addressed with the 'castle' location type."""

    __tablename__ = "baronies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kingdom_id: Mapped[int | None] = mapped_column(ForeignKey("kingdoms.id", ondelete="SET NULL"), nullable=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    biome: Mapped[str] = mapped_column(String(20), default="plains", nullable=False)
    tax_rate: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    coordinates_x: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coordinates_y: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Barony(id={self.id}, name={self.name!r})>"


class Village(TimestampMixin, Base):
    __tablename__ = "villages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    barony_id: Mapped[int | None] = mapped_column(ForeignKey("baronies.id", ondelete="SET NULL"), nullable=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    biome: Mapped[str] = mapped_column(String(20), default="plains", nullable=False)
    is_port: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    population: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    wealth: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    granary_capacity: Mapped[int] = mapped_column(Integer, default=500, nullable=False)
    coordinates_x: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coordinates_y: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Village(id={self.id}, name={self.name!r})>"


class Town(TimestampMixin, Base):
    __tablename__ = "towns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    barony_id: Mapped[int | None] = mapped_column(ForeignKey("baronies.id", ondelete="SET NULL"), nullable=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    biome: Mapped[str] = mapped_column(String(20), default="plains", nullable=False)
    is_capital: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tax_rate: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    population: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    wealth: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    granary_capacity: Mapped[int] = mapped_column(Integer, default=1000, nullable=False)
    coordinates_x: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coordinates_y: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Town(id={self.id}, name={self.name!r})>"


LOCATION_MODELS: dict[str, type[Base]] = {
    "kingdom": Kingdom,
    "barony": Barony,
    "castle": Barony,
    "village": Village,
    "town": Town,
}


async def resolve_location(session: AsyncSession, location_type: str | None, location_id: int | None):
    """Load the location row for a (type, id) pair, or None."""
    model = LOCATION_MODELS.get(location_type or "")
    if model is None or location_id is None:
        return None
    return await session.get(model, location_id)
