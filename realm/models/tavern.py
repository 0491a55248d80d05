"""
Tavern dice games, the daily minigame and minigame leaderboards.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, utcnow
from .item import Item


class TavernDiceGame(TimestampMixin, Base):
    __tablename__ = "tavern_dice_games"

    GAME_HIGH_ROLL = "high_roll"
    GAME_HAZARD = "hazard"
    GAME_DOUBLES = "doubles"
    GAMES = (GAME_HIGH_ROLL, GAME_HAZARD, GAME_DOUBLES)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    game_type: Mapped[str] = mapped_column(String(20), nullable=False)
    wager: Mapped[int] = mapped_column(Integer, nullable=False)
    rolls: Mapped[Any] = mapped_column(JSON, nullable=False)
    won: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # Signed: winnings when won, minus the wager when lost
    payout: Mapped[int] = mapped_column(Integer, nullable=False)
    energy_awarded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class MinigamePlay(TimestampMixin, Base):
    """One daily minigame play; at most one per player per day."""

    __tablename__ = "minigame_plays"
    __table_args__ = (UniqueConstraint("user_id", "played_at"),)

    REWARD_COMMON = "common"
    REWARD_UNCOMMON = "uncommon"
    REWARD_RARE = "rare"
    REWARD_EPIC = "epic"

    MAX_STREAK = 5

    # Percent chances by streak day
    STREAK_REWARD_CHANCES = {
        1: {REWARD_COMMON: 60, REWARD_UNCOMMON: 25, REWARD_RARE: 10, REWARD_EPIC: 5},
        2: {REWARD_COMMON: 52, REWARD_UNCOMMON: 25, REWARD_RARE: 13, REWARD_EPIC: 10},
        3: {REWARD_COMMON: 45, REWARD_UNCOMMON: 25, REWARD_RARE: 15, REWARD_EPIC: 15},
        4: {REWARD_COMMON: 37, REWARD_UNCOMMON: 25, REWARD_RARE: 18, REWARD_EPIC: 20},
        5: {REWARD_COMMON: 30, REWARD_UNCOMMON: 25, REWARD_RARE: 20, REWARD_EPIC: 25},
    }

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    played_at: Mapped[date] = mapped_column(Date, nullable=False)
    streak_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reward_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward_item_id: Mapped[int | None] = mapped_column(ForeignKey("items.id", ondelete="SET NULL"), nullable=True)

    reward_item: Mapped[Item | None] = relationship("Item", lazy="joined")

    @classmethod
    def reward_chances(cls, streak_day: int) -> dict[str, int]:
        return cls.STREAK_REWARD_CHANCES.get(min(streak_day, cls.MAX_STREAK), cls.STREAK_REWARD_CHANCES[1])


class MinigameScore(TimestampMixin, Base):
    __tablename__ = "minigame_scores"

    DAILY_LIMITED_GAMES = ("archery",)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    minigame: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    played_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


class MinigameReward(TimestampMixin, Base):
    """A leaderboard prize, collected in person at the location it was earned."""

    __tablename__ = "minigame_rewards"

    TYPE_DAILY = "daily"
    TYPE_WEEKLY = "weekly"
    TYPE_MONTHLY = "monthly"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    minigame: Mapped[str] = mapped_column(String(50), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(20), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    gold_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_id: Mapped[int | None] = mapped_column(ForeignKey("items.id", ondelete="SET NULL"), nullable=True)
    item_rarity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    collected_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    item: Mapped[Item | None] = relationship("Item", lazy="joined")

    def is_collected(self) -> bool:
        return self.collected_at is not None

    def collect(self) -> bool:
        if self.is_collected():
            return False
        self.collected_at = utcnow()
        return True
