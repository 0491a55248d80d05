"""
Location treasuries, tax rates and the player's own tax history.
"""

from fastapi import APIRouter

from ..exceptions import ResourceNotFoundError
from ..game.tax_service import TaxService
from ..models.world import LOCATION_MODELS
from ..schemas.requests import TaxRateRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

taxes_router = APIRouter(prefix="/taxes", tags=["taxes"])


@taxes_router.get("/history")
async def get_tax_history(current_user: CurrentUser, session: SessionDep):
    return ok({"taxes": await TaxService(session).get_user_tax_history(current_user)})


@taxes_router.get("/treasury/{location_type}/{location_id}")
async def get_treasury(location_type: str, location_id: int, current_user: CurrentUser, session: SessionDep):
    if location_type not in LOCATION_MODELS:
        raise ResourceNotFoundError("Location not found", resource_type="location", resource_id=location_id)
    service = TaxService(session)
    info = await service.get_treasury_info(location_type, location_id)
    if await service.can_configure_taxes(current_user, location_type, location_id):
        info["transactions"] = await service.get_treasury_transactions(location_type, location_id)
    return ok(info)


@taxes_router.post("/rate")
async def set_tax_rate(body: TaxRateRequest, current_user: CurrentUser, session: SessionDep):
    return respond(
        await TaxService(session).set_tax_rate(current_user, body.location_type, body.location_id, body.tax_rate)
    )
