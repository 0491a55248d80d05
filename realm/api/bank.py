"""
Bank endpoints for the account at the player's current location.
"""

from fastapi import APIRouter

from ..game.bank_service import BankService
from ..schemas.requests import AmountRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, rejected, respond

bank_router = APIRouter(prefix="/bank", tags=["bank"])


@bank_router.get("")
async def get_bank(current_user: CurrentUser, session: SessionDep):
    service = BankService(session)
    info = await service.get_bank_info(current_user)
    if info is None:
        return rejected("You cannot access a bank here.")
    info["accounts"] = await service.get_all_accounts(current_user)
    info["transactions"] = await service.get_recent_transactions(current_user)
    return ok(info)


@bank_router.post("/deposit")
async def deposit(body: AmountRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await BankService(session).deposit(current_user, body.amount))


@bank_router.post("/withdraw")
async def withdraw(body: AmountRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await BankService(session).withdraw(current_user, body.amount))
