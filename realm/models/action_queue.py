"""
ActionQueue model: a repeatable activity worked off one iteration at a time.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime

ACTION_TYPES = ("train", "gather", "cook", "craft", "smelt", "agility")


class ActionQueue(TimestampMixin, Base):
    """total == 0 means repeat until stopped."""

    __tablename__ = "action_queues"

    STATUS_ACTIVE = "active"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_FAILED = "failed"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    action_params: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_level_up: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_ACTIVE, nullable=False, index=True)
    stop_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    dismissed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def is_infinite(self) -> bool:
        return self.total == 0

    def mark(self, status: str, reason: str | None = None) -> None:
        self.status = status
        self.stop_reason = reason

    def __repr__(self) -> str:
        return f"<ActionQueue(id={self.id}, type={self.action_type!r}, status={self.status!r})>"
