"""
Player housing: the house itself, its rooms and furniture, storage, the
servant and the garden plots.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..game.construction_tables import (
    BUFFS_DISABLED_AT_CONDITION,
    GARDEN_BASE_QUALITY,
    HOUSE_TIERS,
    SERVANT_TIERS,
    STORAGE_DISABLED_AT_CONDITION,
)
from .base import Base, TimestampMixin, UTCDateTime, utcnow
from .item import Item
from .user import User


class PlayerHouse(TimestampMixin, Base):
    __tablename__ = "player_houses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), default="My House", nullable=False)
    tier: Mapped[str] = mapped_column(String(20), default="cottage", nullable=False)
    condition: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    upkeep_due_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    location_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    compost_charges: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    player: Mapped[User] = relationship("User", lazy="joined")

    @property
    def tier_config(self) -> dict[str, Any]:
        return HOUSE_TIERS.get(self.tier, HOUSE_TIERS["cottage"])

    def grid_size(self) -> int:
        return self.tier_config["grid"]

    def max_rooms(self) -> int:
        return self.tier_config["max_rooms"]

    def storage_capacity(self) -> int:
        return self.tier_config["storage"]

    def upkeep_cost(self) -> int:
        return self.tier_config["upkeep"]

    def repair_cost(self) -> int:
        return math.ceil(self.upkeep_cost() * (100 - self.condition) * 0.5)

    def are_buffs_disabled(self) -> bool:
        return self.condition <= BUFFS_DISABLED_AT_CONDITION

    def is_storage_disabled(self) -> bool:
        return self.condition <= STORAGE_DISABLED_AT_CONDITION

    def is_upkeep_overdue(self, now: datetime | None = None) -> bool:
        return self.upkeep_due_at is not None and self.upkeep_due_at < (now or utcnow())

    def __repr__(self) -> str:
        return f"<PlayerHouse(id={self.id}, player_id={self.player_id}, tier={self.tier!r})>"


class HouseRoom(TimestampMixin, Base):
    __tablename__ = "house_rooms"
    __table_args__ = (UniqueConstraint("player_house_id", "grid_x", "grid_y"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_house_id: Mapped[int] = mapped_column(
        ForeignKey("player_houses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_type: Mapped[str] = mapped_column(String(30), nullable=False)
    grid_x: Mapped[int] = mapped_column(Integer, nullable=False)
    grid_y: Mapped[int] = mapped_column(Integer, nullable=False)


class HouseFurniture(TimestampMixin, Base):
    """One piece of furniture per hotspot per room."""

    __tablename__ = "house_furniture"
    __table_args__ = (UniqueConstraint("house_room_id", "hotspot_slug"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    house_room_id: Mapped[int] = mapped_column(ForeignKey("house_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    hotspot_slug: Mapped[str] = mapped_column(String(30), nullable=False)
    furniture_key: Mapped[str] = mapped_column(String(50), nullable=False)


class HouseStorage(TimestampMixin, Base):
    __tablename__ = "house_storage"
    __table_args__ = (UniqueConstraint("player_house_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_house_id: Mapped[int] = mapped_column(
        ForeignKey("player_houses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    slot_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    item: Mapped[Item] = relationship("Item", lazy="joined")


class HouseServant(TimestampMixin, Base):
    __tablename__ = "house_servants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_house_id: Mapped[int] = mapped_column(
        ForeignKey("player_houses.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    servant_type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    on_strike: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hired_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    last_paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    house: Mapped[PlayerHouse] = relationship("PlayerHouse", lazy="joined")

    @property
    def config(self) -> dict[str, Any]:
        return SERVANT_TIERS[self.servant_type]


class ServantTask(TimestampMixin, Base):
    """
    Work queued for a servant.

    Tasks run one at a time in id order: queued -> in_progress ->
    completed or failed.
    """

    __tablename__ = "servant_tasks"

    STATUS_QUEUED = "queued"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    house_servant_id: Mapped[int] = mapped_column(
        ForeignKey("house_servants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_type: Mapped[str] = mapped_column(String(30), nullable=False)
    task_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_QUEUED, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    estimated_completion: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    result_message: Mapped[str | None] = mapped_column(String(255), nullable=True)

    servant: Mapped[HouseServant] = relationship("HouseServant", lazy="joined")

    def finish(self, status: str, message: str) -> None:
        self.status = status
        self.completed_at = utcnow()
        self.result_message = message


class GardenPlot(TimestampMixin, Base):
    """
    One planter in a house garden.

    A plot moves empty -> planted -> growing -> ready and withers if left
    unharvested. Watering moves a planted crop to growing; only growing
    crops ripen.
    """

    __tablename__ = "garden_plots"
    __table_args__ = (UniqueConstraint("player_house_id", "plot_slot"),)

    STATUS_EMPTY = "empty"
    STATUS_PLANTED = "planted"
    STATUS_GROWING = "growing"
    STATUS_READY = "ready"
    STATUS_WITHERED = "withered"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_house_id: Mapped[int] = mapped_column(
        ForeignKey("player_houses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plot_slot: Mapped[str] = mapped_column(String(20), nullable=False)
    crop: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_EMPTY, nullable=False)
    planted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    ready_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    withers_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    quality: Mapped[int] = mapped_column(Integer, default=GARDEN_BASE_QUALITY, nullable=False)
    times_tended: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_watered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_watered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    is_composted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status in (self.STATUS_PLANTED, self.STATUS_GROWING)

    def refresh_status(self, now: datetime | None = None) -> str:
        """Ripen or wither the crop according to the clock."""
        now = now or utcnow()
        if self.status == self.STATUS_GROWING and self.ready_at is not None and now >= self.ready_at:
            self.status = self.STATUS_READY
        if self.status == self.STATUS_READY and self.withers_at is not None and now >= self.withers_at:
            self.status = self.STATUS_WITHERED
        return self.status

    def growth_progress(self, now: datetime | None = None) -> int:
        if self.planted_at is None or self.ready_at is None:
            return 0
        if self.status in (self.STATUS_READY, self.STATUS_WITHERED):
            return 100
        total = (self.ready_at - self.planted_at).total_seconds()
        if total <= 0:
            return 100
        elapsed = ((now or utcnow()) - self.planted_at).total_seconds()
        return min(100, int(elapsed / total * 100))

    def clear(self) -> None:
        self.crop = None
        self.status = self.STATUS_EMPTY
        self.planted_at = None
        self.ready_at = None
        self.withers_at = None
        self.quality = GARDEN_BASE_QUALITY
        self.times_tended = 0
        self.is_watered = False
        self.last_watered_at = None
        self.is_composted = False
