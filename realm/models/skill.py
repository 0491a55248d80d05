"""
PlayerSkill model: per-player skill level and experience.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class PlayerSkill(TimestampMixin, Base):
    """(player, skill_name) with level and accumulated xp."""

    __tablename__ = "player_skills"
    __table_args__ = (UniqueConstraint("player_id", "skill_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_name: Mapped[str] = mapped_column(String(30), nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<PlayerSkill(player_id={self.player_id}, skill={self.skill_name!r}, level={self.level})>"
