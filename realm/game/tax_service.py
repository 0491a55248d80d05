"""
Daily taxes and location treasuries.

Collection runs once per day. Residents pay a share of the gold they carry
to their home village; then each village and town pays a share of its
treasury to its barony, and each barony to its kingdom. Every payment is
recorded as a TaxCollection and a treasury ledger entry.
"""

from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.role import PlayerRole
from ..models.tax import LocationTreasury, TaxCollection, TreasuryTransaction
from ..models.user import User
from ..models.world import Barony, Kingdom, Town, Village, resolve_location
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TAX_RATE = 10
MIN_TAX_RATE = 0
MAX_TAX_RATE = 50

# Permission a role needs to change the rate at each configurable location
RATE_PERMISSIONS = {"barony": "set_taxes", "kingdom": "set_kingdom_taxes"}


def tax_due(amount: int, rate: int) -> int:
    return amount * rate // 100


class TaxService:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_treasury(self, location_type: str, location_id: int) -> LocationTreasury:
        stmt = select(LocationTreasury).where(
            LocationTreasury.location_type == location_type, LocationTreasury.location_id == location_id
        )
        treasury = (await self._session.execute(stmt)).scalar_one_or_none()
        if treasury is None:
            treasury = LocationTreasury(location_type=location_type, location_id=location_id, balance=0)
            self._session.add(treasury)
            await self._session.flush()
        return treasury

    async def get_tax_rate(self, location_type: str, location_id: int) -> int:
        """Villages pay their barony's rate; baronies, kingdoms and towns set their own."""
        location = await resolve_location(self._session, location_type, location_id)
        if location is None:
            return DEFAULT_TAX_RATE
        if location_type == "village":
            barony = await self._session.get(Barony, location.barony_id) if location.barony_id else None
            return barony.tax_rate if barony is not None else DEFAULT_TAX_RATE
        if location_type in ("barony", "kingdom", "town"):
            return location.tax_rate
        return DEFAULT_TAX_RATE

    async def get_treasury_info(self, location_type: str, location_id: int) -> dict[str, Any]:
        treasury = await self.get_treasury(location_type, location_id)
        location = await resolve_location(self._session, location_type, location_id)
        return {
            "id": treasury.id,
            "location_type": location_type,
            "location_id": location_id,
            "location_name": location.name if location is not None else "Unknown",
            "balance": treasury.balance,
            "total_collected": treasury.total_collected,
            "total_distributed": treasury.total_distributed,
            "tax_rate": await self.get_tax_rate(location_type, location_id),
        }

    async def can_configure_taxes(self, user: User, location_type: str, location_id: int) -> bool:
        if user.is_admin:
            return True
        permission = RATE_PERMISSIONS.get(location_type)
        if permission is None:
            return False
        stmt = select(PlayerRole).where(
            PlayerRole.user_id == user.id,
            PlayerRole.status == PlayerRole.STATUS_ACTIVE,
            PlayerRole.location_type == location_type,
            PlayerRole.location_id == location_id,
        )
        return any(permission in (pr.role.permissions or []) for pr in (await self._session.execute(stmt)).scalars())

    async def set_tax_rate(self, user: User, location_type: str, location_id: int, rate: int) -> dict[str, Any]:
        if location_type not in RATE_PERMISSIONS:
            return {"success": False, "message": "Tax rates can only be set for baronies and kingdoms."}
        if not MIN_TAX_RATE <= rate <= MAX_TAX_RATE:
            return {
                "success": False,
                "message": f"Tax rate must be between {MIN_TAX_RATE}% and {MAX_TAX_RATE}%.",
            }
        location = await resolve_location(self._session, location_type, location_id)
        if location is None:
            return {"success": False, "message": "Location not found."}
        if not await self.can_configure_taxes(user, location_type, location_id):
            return {"success": False, "message": "You do not have authority to set taxes here."}

        location.tax_rate = rate
        await self._session.flush()
        logger.info("Tax rate updated", location_type=location_type, location_id=location_id, rate=rate, set_by=user.id)
        return {"success": True, "message": f"Tax rate set to {rate}%.", "tax_rate": rate}

    def _deposit(
        self,
        treasury: LocationTreasury,
        amount: int,
        kind: str,
        description: str,
        user_id: int | None = None,
        related: tuple[str, int] | None = None,
    ) -> None:
        treasury.balance += amount
        treasury.total_collected += amount
        self._ledger(treasury, kind, amount, description, user_id, related)

    def _withdraw(
        self, treasury: LocationTreasury, amount: int, kind: str, description: str, related: tuple[str, int]
    ) -> None:
        treasury.balance -= amount
        treasury.total_distributed += amount
        self._ledger(treasury, kind, -amount, description, None, related)

    def _ledger(
        self,
        treasury: LocationTreasury,
        kind: str,
        amount: int,
        description: str,
        user_id: int | None,
        related: tuple[str, int] | None,
    ) -> None:
        self._session.add(
            TreasuryTransaction(
                location_treasury_id=treasury.id,
                type=kind,
                amount=amount,
                balance_after=treasury.balance,
                description=description,
                related_user_id=user_id,
                related_location_type=related[0] if related else None,
                related_location_id=related[1] if related else None,
            )
        )

    async def already_collected(self, period: date) -> bool:
        stmt = select(TaxCollection.id).where(TaxCollection.tax_period == period).limit(1)
        return (await self._session.execute(stmt)).first() is not None

    async def collect_daily_taxes(self, today: date | None = None) -> dict[str, Any]:
        """
        Run one day's collection, players first, then villages, towns and baronies.

        A day that already has collections is skipped, so the job can be
        scheduled more often than daily.
        """
        period = today or utcnow().date()
        results: dict[str, Any] = {
            "tax_period": period.isoformat(),
            "already_collected": False,
            "players_taxed": 0,
            "player_tax_total": 0,
            "village_upstream_total": 0,
            "town_upstream_total": 0,
            "barony_upstream_total": 0,
        }
        if await self.already_collected(period):
            results["already_collected"] = True
            return results

        results.update(await self._collect_player_taxes(period))
        results["village_upstream_total"] = await self._collect_upstream(Village, "village", "barony", period)
        results["town_upstream_total"] = await self._collect_upstream(Town, "town", "barony", period)
        results["barony_upstream_total"] = await self._collect_upstream(Barony, "barony", "kingdom", period)
        await self._session.flush()
        logger.info("Daily taxes collected", **results)
        return results

    async def _collect_player_taxes(self, period: date) -> dict[str, int]:
        stmt = select(User).where(User.gold > 0, User.home_village_id.is_not(None)).order_by(User.id)
        taxed = 0
        total = 0
        rates: dict[int, int] = {}
        for user in (await self._session.execute(stmt)).scalars():
            village_id = user.home_village_id
            if village_id not in rates:
                rates[village_id] = await self.get_tax_rate("village", village_id)
            amount = tax_due(user.gold, rates[village_id])
            if amount <= 0:
                continue

            user.gold -= amount
            treasury = await self.get_treasury("village", village_id)
            self._deposit(
                treasury, amount, TreasuryTransaction.TYPE_TAX_INCOME, f"Income tax from {user.username}", user.id
            )
            self._session.add(
                TaxCollection(
                    payer_user_id=user.id,
                    receiver_location_type="village",
                    receiver_location_id=village_id,
                    amount=amount,
                    tax_type=TaxCollection.TYPE_INCOME,
                    description="Daily income tax",
                    tax_period=period,
                )
            )
            taxed += 1
            total += amount
        return {"players_taxed": taxed, "player_tax_total": total}

    async def _collect_upstream(self, model, from_type: str, to_type: str, period: date) -> int:
        parent_key = f"{to_type}_id"
        parent_column = getattr(model, parent_key)
        parent_model = Kingdom if to_type == "kingdom" else Barony
        total = 0
        for location in (await self._session.execute(select(model).where(parent_column.is_not(None)))).scalars():
            parent = await self._session.get(parent_model, getattr(location, parent_key))
            if parent is None:
                continue
            treasury = await self.get_treasury(from_type, location.id)
            amount = tax_due(treasury.balance, parent.tax_rate)
            if amount <= 0:
                continue

            self._withdraw(
                treasury,
                amount,
                TreasuryTransaction.TYPE_UPSTREAM_TAX,
                f"Upstream tax to {parent.name}",
                (to_type, parent.id),
            )
            self._deposit(
                await self.get_treasury(to_type, parent.id),
                amount,
                TreasuryTransaction.TYPE_TAX_INCOME,
                f"Tax from {location.name}",
                related=(from_type, location.id),
            )
            self._session.add(
                TaxCollection(
                    payer_location_type=from_type,
                    payer_location_id=location.id,
                    receiver_location_type=to_type,
                    receiver_location_id=parent.id,
                    amount=amount,
                    tax_type=TaxCollection.TYPE_UPSTREAM,
                    description=f"{from_type.title()} upstream tax",
                    tax_period=period,
                )
            )
            total += amount
        return total

    async def get_user_tax_history(self, user: User, limit: int = 20) -> list[dict[str, Any]]:
        stmt = (
            select(TaxCollection)
            .where(TaxCollection.payer_user_id == user.id)
            .order_by(TaxCollection.id.desc())
            .limit(limit)
        )
        return [
            {
                "id": tax.id,
                "amount": tax.amount,
                "tax_type": tax.tax_type,
                "receiver_type": tax.receiver_location_type,
                "receiver_id": tax.receiver_location_id,
                "description": tax.description,
                "tax_period": tax.tax_period.isoformat(),
                "created_at": tax.created_at.isoformat(),
            }
            for tax in (await self._session.execute(stmt)).scalars()
        ]

    async def get_treasury_transactions(
        self, location_type: str, location_id: int, limit: int = 20
    ) -> list[dict[str, Any]]:
        treasury = await self.get_treasury(location_type, location_id)
        stmt = (
            select(TreasuryTransaction)
            .where(TreasuryTransaction.location_treasury_id == treasury.id)
            .order_by(TreasuryTransaction.id.desc())
            .limit(limit)
        )
        return [
            {
                "id": tx.id,
                "type": tx.type,
                "amount": tx.amount,
                "balance_after": tx.balance_after,
                "description": tx.description,
                "created_at": tx.created_at.isoformat(),
            }
            for tx in (await self._session.execute(stmt)).scalars()
        ]
