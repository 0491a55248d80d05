"""
Location treasuries and the taxes that fill them.

Residents pay income tax to their home village once a day; villages and
towns pass a share up to their barony, baronies to their kingdom.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class LocationTreasury(TimestampMixin, Base):
    __tablename__ = "location_treasuries"
    __table_args__ = (UniqueConstraint("location_type", "location_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_collected: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_distributed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<LocationTreasury({self.location_type}:{self.location_id}, balance={self.balance})>"


class TreasuryTransaction(TimestampMixin, Base):
    __tablename__ = "treasury_transactions"

    TYPE_TAX_INCOME = "tax_income"
    TYPE_UPSTREAM_TAX = "upstream_tax"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_treasury_id: Mapped[int] = mapped_column(
        ForeignKey("location_treasuries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    related_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    related_location_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    related_location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class TaxCollection(TimestampMixin, Base):
    """One tax payment: from a player or a lower location to a location."""

    __tablename__ = "tax_collections"

    TYPE_INCOME = "income"
    TYPE_UPSTREAM = "upstream"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    payer_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    payer_location_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    payer_location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    receiver_location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    receiver_location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tax_period: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<TaxCollection({self.tax_type}, {self.amount}g -> "
            f"{self.receiver_location_type}:{self.receiver_location_id}, period={self.tax_period})>"
        )
