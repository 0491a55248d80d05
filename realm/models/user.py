"""
User model: the player account and its live character state.

Location, vitals, gold and the travel / infirmary timers all live on the
user row; skills and inventory hang off it in their own tables.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime, utcnow

SOCIAL_CLASSES = ("serf", "freeman", "burgher", "noble", "clergy")


class User(TimestampMixin, Base):
    """A player."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    gender: Mapped[str] = mapped_column(String(10), default="male", nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    social_class: Mapped[str] = mapped_column(String(20), default="freeman", nullable=False)
    title_tier: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    primary_title: Mapped[str | None] = mapped_column(String(50), nullable=True)

    home_village_id: Mapped[int | None] = mapped_column(ForeignKey("villages.id", ondelete="SET NULL"), nullable=True)
    current_location_type: Mapped[str] = mapped_column(String(20), default="village", nullable=False)
    current_location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    hp: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    max_hp: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    energy: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    max_energy: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    last_energy_regen_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    weeks_without_food: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gold: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    is_traveling: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    travel_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    travel_arrives_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    travel_destination_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    travel_destination_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_in_infirmary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    infirmary_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    infirmary_heals_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def is_traveling_now(self, now: datetime | None = None) -> bool:
        """A journey counts only while its arrival time is still ahead."""
        now = now or utcnow()
        return bool(self.is_traveling and self.travel_arrives_at is not None and self.travel_arrives_at > now)

    def is_in_infirmary_now(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return bool(self.is_in_infirmary and self.infirmary_heals_at is not None and self.infirmary_heals_at > now)

    def is_alive(self) -> bool:
        return self.hp > 0

    def admit_to_infirmary(self, minutes: int, now: datetime | None = None) -> None:
        now = now or utcnow()
        self.is_in_infirmary = True
        self.infirmary_started_at = now
        self.infirmary_heals_at = now + timedelta(minutes=minutes)

    def check_and_discharge(self, now: datetime | None = None) -> bool:
        """Release an expired infirmary stay at full health; True when released."""
        now = now or utcnow()
        if not self.is_in_infirmary or self.infirmary_heals_at is None or self.infirmary_heals_at > now:
            return False
        self.hp = self.max_hp
        self.is_in_infirmary = False
        self.infirmary_started_at = None
        self.infirmary_heals_at = None
        return True

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username!r})>"
