"""
Political offices: role definitions, holders and petitions against holders.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, utcnow
from .user import User


class Role(TimestampMixin, Base):
    """An office that exists at every location of one type (elder, mayor, baron...)."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(30), nullable=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_elected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_per_location: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    salary: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tier: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    permissions: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Role(slug={self.slug!r}, location_type={self.location_type!r})>"


class PlayerRole(TimestampMixin, Base):
    """A player holding a role at one location."""

    __tablename__ = "player_roles"

    STATUS_ACTIVE = "active"
    STATUS_SUSPENDED = "suspended"
    STATUS_RESIGNED = "resigned"
    STATUS_REMOVED = "removed"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_ACTIVE, nullable=False)
    appointed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    removed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    appointed_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    removed_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    removal_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_salary_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    role: Mapped[Role] = relationship("Role", lazy="joined")
    user: Mapped[User] = relationship("User", foreign_keys=[user_id], lazy="joined")

    def is_active(self, now: datetime | None = None) -> bool:
        if self.status != self.STATUS_ACTIVE:
            return False
        now = now or utcnow()
        return self.expires_at is None or self.expires_at > now

    def resign(self) -> None:
        self.status = self.STATUS_RESIGNED
        self.removed_at = utcnow()

    def remove(self, removed_by: User | None, reason: str | None = None) -> None:
        self.status = self.STATUS_REMOVED
        self.removed_at = utcnow()
        self.removed_by_user_id = removed_by.id if removed_by else None
        self.removal_reason = reason

    def __repr__(self) -> str:
        return f"<PlayerRole(user_id={self.user_id}, role_id={self.role_id}, status={self.status!r})>"


class RolePetition(TimestampMixin, Base):
    """A resident asking the next authority up to remove a role holder."""

    __tablename__ = "role_petitions"

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_DENIED = "denied"
    STATUS_WITHDRAWN = "withdrawn"
    STATUS_EXPIRED = "expired"
    EXPIRATION_DAYS = 7

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    petitioner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_player_role_id: Mapped[int] = mapped_column(
        ForeignKey("player_roles.id", ondelete="CASCADE"), nullable=False
    )
    authority_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    authority_role_slug: Mapped[str] = mapped_column(String(50), nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING, nullable=False)
    petition_reason: Mapped[str] = mapped_column(Text, nullable=False)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_appointment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    def has_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def _review(self, status: str, response: str | None) -> None:
        self.status = status
        self.response_message = response
        self.reviewed_at = utcnow()

    def approve(self, response: str | None = None) -> None:
        self._review(self.STATUS_APPROVED, response)

    def deny(self, response: str | None = None) -> None:
        self._review(self.STATUS_DENIED, response)

    def withdraw(self) -> None:
        self.status = self.STATUS_WITHDRAWN

    def __repr__(self) -> str:
        return f"<RolePetition(id={self.id}, status={self.status!r})>"
