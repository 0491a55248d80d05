"""
Religions: membership, treasury and the headquarters building.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, utcnow

HQ_TIER_NAMES = {
    1: "Chapel",
    2: "Church",
    3: "Temple",
    4: "Cathedral",
    5: "Grand Cathedral",
    6: "Holy Sanctum",
}
HQ_MAX_TIER = 6

HQ_TIER_COSTS = {
    1: {"gold": 0, "devotion": 0},
    2: {"gold": 100_000, "devotion": 5_000},
    3: {"gold": 500_000, "devotion": 25_000},
    4: {"gold": 2_000_000, "devotion": 100_000},
    5: {"gold": 10_000_000, "devotion": 500_000},
    6: {"gold": 50_000_000, "devotion": 2_000_000},
}

HQ_TIER_PRAYER_REQUIREMENTS = {1: 1, 2: 15, 3: 30, 4: 50, 5: 70, 6: 90}

# Percentages; blessing_cost is a reduction
HQ_TIER_BONUSES = {
    1: {"blessing_cost": 0, "blessing_duration": 0, "devotion_gain": 0},
    2: {"blessing_cost": -5, "blessing_duration": 10, "devotion_gain": 5},
    3: {"blessing_cost": -10, "blessing_duration": 20, "devotion_gain": 10},
    4: {"blessing_cost": -15, "blessing_duration": 30, "devotion_gain": 20},
    5: {"blessing_cost": -25, "blessing_duration": 50, "devotion_gain": 35},
    6: {"blessing_cost": -40, "blessing_duration": 75, "devotion_gain": 50},
}

# Hours of construction once an upgrade is fully funded, by target tier
HQ_UPGRADE_HOURS = {2: 2, 3: 6, 4: 12, 5: 24, 6: 48}


class Religion(TimestampMixin, Base):
    __tablename__ = "religions"

    TYPE_RELIGION = "religion"
    TYPE_CULT = "cult"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=TYPE_RELIGION, nullable=False)
    founder_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Religion(id={self.id}, name={self.name!r})>"


class ReligionMember(TimestampMixin, Base):
    """A player can follow one religion at a time."""

    __tablename__ = "religion_members"

    RANK_PROPHET = "prophet"
    RANK_ARCHBISHOP = "archbishop"
    RANK_PRIEST = "priest"
    RANK_DEACON = "deacon"
    RANK_FOLLOWER = "follower"
    OFFICER_RANKS = (RANK_ARCHBISHOP, RANK_PRIEST, RANK_DEACON)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    religion_id: Mapped[int] = mapped_column(ForeignKey("religions.id", ondelete="CASCADE"), nullable=False, index=True)
    rank: Mapped[str] = mapped_column(String(20), default=RANK_FOLLOWER, nullable=False)
    devotion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def is_prophet(self) -> bool:
        return self.rank == self.RANK_PROPHET

    def is_officer(self) -> bool:
        return self.rank in self.OFFICER_RANKS


class ReligionTreasury(TimestampMixin, Base):
    __tablename__ = "religion_treasuries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    religion_id: Mapped[int] = mapped_column(ForeignKey("religions.id", ondelete="CASCADE"), unique=True, nullable=False)
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_collected: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_distributed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ReligionTreasuryTransaction(Base):
    __tablename__ = "religion_treasury_transactions"

    TYPE_DONATION = "donation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    treasury_id: Mapped[int] = mapped_column(
        ForeignKey("religion_treasuries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


class ReligionHeadquarters(TimestampMixin, Base):
    """A religion's building; unbuilt until the prophet places it at a location."""

    __tablename__ = "religion_headquarters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    religion_id: Mapped[int] = mapped_column(ForeignKey("religions.id", ondelete="CASCADE"), unique=True, nullable=False)
    location_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tier: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    total_devotion_invested: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_gold_invested: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    religion: Mapped[Religion] = relationship("Religion", lazy="joined")

    def is_built(self) -> bool:
        return self.location_type is not None and self.location_id is not None

    @property
    def tier_name(self) -> str:
        return HQ_TIER_NAMES.get(self.tier, "Unknown")

    def tier_bonuses(self) -> dict[str, int]:
        return HQ_TIER_BONUSES.get(self.tier, HQ_TIER_BONUSES[1])

    def upgrade_cost(self) -> dict[str, int] | None:
        return HQ_TIER_COSTS.get(self.tier + 1)

    def next_tier_prayer_requirement(self) -> int | None:
        return HQ_TIER_PRAYER_REQUIREMENTS.get(self.tier + 1)

    def combined_effects(self) -> dict[str, int]:
        bonuses = self.tier_bonuses()
        effects = {}
        if bonuses["blessing_cost"]:
            effects["blessing_cost_reduction"] = abs(bonuses["blessing_cost"])
        if bonuses["blessing_duration"]:
            effects["blessing_duration_bonus"] = bonuses["blessing_duration"]
        if bonuses["devotion_gain"]:
            effects["devotion_bonus"] = bonuses["devotion_gain"]
        return effects


class HqConstructionProject(TimestampMixin, Base):
    """
    An upgrade being funded and built.

    pending -> in_progress (first contribution) -> constructing (fully
    funded, timer running) -> completed; cancelled at any point before.
    """

    __tablename__ = "hq_construction_projects"

    TYPE_HQ_UPGRADE = "hq_upgrade"

    STATUS_PENDING = "pending"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_CONSTRUCTING = "constructing"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    OPEN_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_CONSTRUCTING)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    religion_hq_id: Mapped[int] = mapped_column(
        ForeignKey("religion_headquarters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_type: Mapped[str] = mapped_column(String(20), default=TYPE_HQ_UPGRADE, nullable=False)
    target_level: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING, nullable=False)
    gold_required: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gold_invested: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    devotion_required: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    devotion_invested: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    construction_ends_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    headquarters: Mapped[ReligionHeadquarters] = relationship("ReligionHeadquarters", lazy="joined")

    def is_active(self) -> bool:
        """Still accepting contributions."""
        return self.status in (self.STATUS_PENDING, self.STATUS_IN_PROGRESS)

    def is_constructing(self) -> bool:
        return self.status == self.STATUS_CONSTRUCTING

    def is_construction_complete(self, now: datetime | None = None) -> bool:
        return (
            self.is_constructing()
            and self.construction_ends_at is not None
            and self.construction_ends_at <= (now or utcnow())
        )

    def construction_hours(self) -> int:
        return HQ_UPGRADE_HOURS.get(self.target_level, 1)

    def calculate_progress(self) -> int:
        gold = self.gold_invested / self.gold_required * 100 if self.gold_required > 0 else 100
        devotion = self.devotion_invested / self.devotion_required * 100 if self.devotion_required > 0 else 100
        # Item requirements are always met for tier upgrades, so they count as 100
        return int((gold + devotion + 100) / 3)

    def requirements_met(self) -> bool:
        return self.gold_invested >= self.gold_required and self.devotion_invested >= self.devotion_required

    def contribute(self, gold: int = 0, devotion: int = 0) -> tuple[int, int]:
        """Add what is still needed; returns (gold_added, devotion_added)."""
        gold_added = min(max(0, gold), self.gold_required - self.gold_invested)
        devotion_added = min(max(0, devotion), self.devotion_required - self.devotion_invested)
        self.gold_invested += gold_added
        self.devotion_invested += devotion_added
        self.progress = self.calculate_progress()
        if self.status == self.STATUS_PENDING and (gold_added or devotion_added):
            self.status = self.STATUS_IN_PROGRESS
            self.started_at = self.started_at or utcnow()
        return gold_added, devotion_added

    def start_construction_timer(self, now: datetime | None = None) -> None:
        self.status = self.STATUS_CONSTRUCTING
        self.construction_ends_at = (now or utcnow()) + timedelta(hours=self.construction_hours())

    def complete(self) -> None:
        self.status = self.STATUS_COMPLETED
        self.progress = 100
        self.completed_at = utcnow()

    def cancel(self) -> None:
        self.status = self.STATUS_CANCELLED
