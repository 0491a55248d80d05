"""
World endpoints: the calendar and settlement details.
"""

from fastapi import APIRouter

from ..exceptions import ResourceNotFoundError
from ..game.calendar_service import CalendarService
from ..game.food_consumption_service import FoodConsumptionService
from ..models.world import LOCATION_MODELS, resolve_location
from .dependencies import CurrentUser, SessionDep
from .responses import ok

world_router = APIRouter(prefix="/world", tags=["world"])


@world_router.get("/calendar")
async def get_calendar(_current_user: CurrentUser, session: SessionDep):
    return ok(await CalendarService(session).get_calendar_data())


@world_router.get("/locations/{location_type}/{location_id}")
async def get_location(location_type: str, location_id: int, _current_user: CurrentUser, session: SessionDep):
    location = await resolve_location(session, location_type, location_id)
    if location is None:
        raise ResourceNotFoundError(
            "Location not found",
            resource_type=location_type if location_type in LOCATION_MODELS else "location",
            resource_id=location_id,
        )
    data = {"type": location_type, "id": location.id, "name": location.name, "biome": location.biome}
    if location_type in ("village", "town"):
        data["food"] = await FoodConsumptionService(session).get_food_stats(location_type, location)
    return ok(data)
