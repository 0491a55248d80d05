"""
Banking: one account per player per village, castle or town.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.bank import BankAccount, BankTransaction
from ..models.user import User
from ..models.world import resolve_location
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

VALID_LOCATIONS = ("village", "castle", "town")


class BankService:
    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def can_access_bank(user: User) -> bool:
        if user.is_traveling_now():
            return False
        return user.current_location_type in VALID_LOCATIONS

    async def get_or_create_account(self, user: User) -> BankAccount | None:
        if not self.can_access_bank(user):
            return None
        stmt = select(BankAccount).where(
            BankAccount.user_id == user.id,
            BankAccount.location_type == user.current_location_type,
            BankAccount.location_id == user.current_location_id,
        )
        account = (await self._session.execute(stmt)).scalar_one_or_none()
        if account is None:
            account = BankAccount(
                user_id=user.id,
                location_type=user.current_location_type,
                location_id=user.current_location_id,
                balance=0,
            )
            self._session.add(account)
            await self._session.flush()
        return account

    async def _record(self, user: User, account: BankAccount, kind: str, amount: int, description: str) -> None:
        self._session.add(
            BankTransaction(
                user_id=user.id,
                bank_account_id=account.id,
                type=kind,
                amount=amount,
                balance_after=account.balance,
                description=description,
            )
        )
        await self._session.flush()

    async def deposit(self, user: User, amount: int) -> dict:
        if amount <= 0:
            return {"success": False, "message": "Amount must be greater than zero."}
        if user.gold < amount:
            return {"success": False, "message": "You don't have enough gold on you."}
        account = await self.get_or_create_account(user)
        if account is None:
            return {"success": False, "message": "You cannot access a bank here."}

        user.gold -= amount
        account.balance += amount
        await self._record(user, account, BankTransaction.TYPE_DEPOSIT, amount, "Deposited gold")
        logger.info("Gold deposited", user_id=user.id, amount=amount, balance=account.balance)
        return {
            "success": True,
            "message": f"Deposited {amount} gold.",
            "new_balance": account.balance,
            "gold_on_hand": user.gold,
        }

    async def withdraw(self, user: User, amount: int) -> dict:
        if amount <= 0:
            return {"success": False, "message": "Amount must be greater than zero."}
        account = await self.get_or_create_account(user)
        if account is None:
            return {"success": False, "message": "You cannot access a bank here."}
        if account.balance < amount:
            return {"success": False, "message": "Insufficient funds in your account."}

        account.balance -= amount
        user.gold += amount
        await self._record(user, account, BankTransaction.TYPE_WITHDRAWAL, amount, "Withdrew gold")
        logger.info("Gold withdrawn", user_id=user.id, amount=amount, balance=account.balance)
        return {
            "success": True,
            "message": f"Withdrew {amount} gold.",
            "new_balance": account.balance,
            "gold_on_hand": user.gold,
        }

    async def get_balance(self, user: User) -> int:
        account = await self.get_or_create_account(user)
        return account.balance if account is not None else 0

    async def get_total_balance(self, user: User) -> int:
        stmt = select(func.coalesce(func.sum(BankAccount.balance), 0)).where(BankAccount.user_id == user.id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def get_all_accounts(self, user: User) -> list[dict]:
        stmt = select(BankAccount).where(BankAccount.user_id == user.id, BankAccount.balance > 0)
        accounts = []
        for account in (await self._session.execute(stmt)).scalars():
            location = await resolve_location(self._session, account.location_type, account.location_id)
            accounts.append(
                {
                    "id": account.id,
                    "location_type": account.location_type,
                    "location_id": account.location_id,
                    "location_name": location.name if location is not None else "Unknown",
                    "balance": account.balance,
                }
            )
        return accounts

    async def get_recent_transactions(self, user: User, limit: int = 10) -> list[dict]:
        account = await self.get_or_create_account(user)
        if account is None:
            return []
        stmt = (
            select(BankTransaction)
            .where(BankTransaction.bank_account_id == account.id)
            .order_by(BankTransaction.created_at.desc(), BankTransaction.id.desc())
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

    async def get_bank_info(self, user: User) -> dict | None:
        if not self.can_access_bank(user):
            return None
        account = await self.get_or_create_account(user)
        location = await resolve_location(self._session, user.current_location_type, user.current_location_id)
        balance = account.balance if account is not None else 0
        return {
            "location_type": user.current_location_type,
            "location_id": user.current_location_id,
            "location_name": location.name if location is not None else "Unknown",
            "balance": balance,
            "gold_on_hand": user.gold,
            "total_wealth": balance + user.gold,
        }
