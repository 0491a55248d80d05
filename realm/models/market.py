"""
Per-location market prices and the player trade ledger.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

import math
from datetime import datetime

from sqlalchemy import Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime
from .item import Item

SELL_RATIO = 0.8


class MarketPrice(TimestampMixin, Base):
    """
    The going rate for one item at one settlement.

    ``current_price`` is the base price scaled by the season and local supply.
    Players buy at the current price and sell at 80% of it.
    """

    __tablename__ = "market_prices"
    __table_args__ = (UniqueConstraint("location_type", "location_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    current_price: Mapped[int] = mapped_column(Integer, nullable=False)
    seasonal_modifier: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    supply_modifier: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    demand_level: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    last_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    item: Mapped[Item] = relationship("Item", lazy="joined")

    @property
    def buy_price(self) -> int:
        return max(1, self.current_price)

    @property
    def sell_price(self) -> int:
        return max(1, math.floor(self.current_price * SELL_RATIO))

    def __repr__(self) -> str:
        return f"<MarketPrice({self.location_type}:{self.location_id}, item_id={self.item_id}, price={self.current_price})>"


class MarketTransaction(TimestampMixin, Base):
    __tablename__ = "market_transactions"

    TYPE_BUY = "buy"
    TYPE_SELL = "sell"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_unit: Mapped[int] = mapped_column(Integer, nullable=False)
    total_gold: Mapped[int] = mapped_column(Integer, nullable=False)

    item: Mapped[Item] = relationship("Item", lazy="joined")
