"""
Item catalogue, player inventory slots and location stockpiles.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime

ITEM_TYPES = ("weapon", "armor", "resource", "consumable", "tool", "misc")
EQUIPMENT_SLOTS = ("weapon", "shield", "head", "body", "legs", "feet", "hands", "ring", "amulet")


class Item(TimestampMixin, Base):
    """Catalogue entry shared by inventories, stockpiles, recipes and loot tables."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default="misc", nullable=False)
    subtype: Mapped[str | None] = mapped_column(String(30), nullable=True)
    rarity: Mapped[str] = mapped_column(String(20), default="common", nullable=False)
    stackable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_stack: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    base_value: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    equipment_slot: Mapped[str | None] = mapped_column(String(20), nullable=True)
    atk_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    str_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    def_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hp_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    energy_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    food_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    decay_rate_per_week: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    spoil_after_weeks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    decays_into: Mapped[str | None] = mapped_column(String(100), nullable=True)
    effective_against: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    weak_against: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def decays_over_time(self) -> bool:
        return self.decay_rate_per_week > 0

    def spoils_after_time(self) -> bool:
        return self.spoil_after_weeks is not None

    def is_perishable(self) -> bool:
        return self.decays_over_time() or self.spoils_after_time()

    def is_equippable(self) -> bool:
        return self.equipment_slot is not None

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name!r})>"


class PlayerInventory(TimestampMixin, Base):
    """One inventory slot; slots are numbered from 0."""

    __tablename__ = "player_inventory"
    __table_args__ = (UniqueConstraint("player_id", "slot_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    slot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_equipped: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    weeks_stored: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_decay_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    item: Mapped[Item] = relationship("Item", lazy="joined")

    def __repr__(self) -> str:
        return f"<PlayerInventory(player_id={self.player_id}, slot={self.slot_number}, item_id={self.item_id})>"


class LocationStockpile(TimestampMixin, Base):
    """Goods held by a settlement (granary, market stock)."""

    __tablename__ = "location_stockpiles"
    __table_args__ = (UniqueConstraint("location_type", "location_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weeks_stored: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_decay_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    item: Mapped[Item] = relationship("Item", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<LocationStockpile({self.location_type}:{self.location_id}, "
            f"item_id={self.item_id}, quantity={self.quantity})>"
        )
