"""
Settlement market: prices, quotes, buying and selling.
"""

from fastapi import APIRouter, Query

from ..game.market_service import MarketService
from ..schemas.requests import TradeRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, rejected, respond

market_router = APIRouter(prefix="/market", tags=["market"])

NO_MARKET_MESSAGE = "There is no market here."


@market_router.get("")
async def get_market(current_user: CurrentUser, session: SessionDep):
    service = MarketService(session)
    info = await service.get_market_info(current_user)
    if info is None:
        return rejected(NO_MARKET_MESSAGE)
    location_type, location_id = info["location_type"], info["location_id"]
    info["prices"] = await service.get_market_prices(location_type, location_id)
    info["sellable"] = await service.get_sellable_items(current_user, location_type, location_id)
    info["recent_transactions"] = await service.get_recent_transactions(current_user)
    return ok(info)


@market_router.get("/quote")
async def get_sell_quote(
    current_user: CurrentUser,
    session: SessionDep,
    item_id: int = Query(...),
    quantity: int = Query(default=1, ge=1),
):
    return respond(await MarketService(session).get_sell_quote(current_user, item_id, quantity))


@market_router.post("/buy")
async def buy_item(body: TradeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await MarketService(session).buy_item(current_user, body.item_id, body.quantity))


@market_router.post("/sell")
async def sell_item(body: TradeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await MarketService(session).sell_item(current_user, body.item_id, body.quantity))
