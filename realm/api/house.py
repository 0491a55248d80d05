"""
Player housing: rooms, furniture, storage, upkeep, servants and the garden.
"""

from fastapi import APIRouter

from ..game.garden_service import GardenService
from ..game.house_buff_service import HouseBuffService
from ..game.house_service import HouseService, house_to_dict
from ..game.servant_service import ServantService
from ..schemas.requests import (
    FurnitureBuildRequest,
    GardenPlantRequest,
    GardenPlotRequest,
    HouseUpgradeRequest,
    RoomBuildRequest,
    ServantHireRequest,
    ServantTaskRequest,
    StorageRequest,
)
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

house_router = APIRouter(prefix="/house", tags=["house"])
servants_router = APIRouter(prefix="/house/servant", tags=["house"])
garden_router = APIRouter(prefix="/house/garden", tags=["house"])


@house_router.get("")
async def get_house(current_user: CurrentUser, session: SessionDep):
    info = await HouseService(session).get_house_info(current_user)
    if info is not None:
        buffs = HouseBuffService(session)
        info["effects"] = await buffs.get_house_effects(current_user)
    return ok({"house": info})


@house_router.get("/buffs")
async def get_house_buffs(current_user: CurrentUser, session: SessionDep):
    buffs = HouseBuffService(session)
    return ok(
        {
            "effects": await buffs.get_house_effects(current_user),
            "sources": await buffs.get_house_buff_sources(current_user),
        }
    )


@house_router.post("/purchase")
async def purchase_house(current_user: CurrentUser, session: SessionDep):
    result = await HouseService(session).purchase_house(current_user)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"house": house_to_dict(result["house"])})


@house_router.post("/rooms")
async def build_room(body: RoomBuildRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).build_room(current_user, body.room_type, body.grid_x, body.grid_y))


@house_router.post("/rooms/{room_id}/demolish")
async def demolish_room(room_id: int, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).demolish_room(current_user, room_id))


@house_router.post("/rooms/{room_id}/furniture")
async def build_furniture(room_id: int, body: FurnitureBuildRequest, current_user: CurrentUser, session: SessionDep):
    service = HouseService(session)
    return respond(await service.build_furniture(current_user, room_id, body.hotspot, body.furniture_key))


@house_router.post("/rooms/{room_id}/furniture/{hotspot}/demolish")
async def demolish_furniture(room_id: int, hotspot: str, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).demolish_furniture(current_user, room_id, hotspot))


@house_router.get("/upgrade/{target_tier}")
async def check_upgrade(target_tier: str, current_user: CurrentUser, session: SessionDep):
    return ok(await HouseService(session).can_upgrade_house(current_user, target_tier))


@house_router.post("/upgrade")
async def upgrade_house(body: HouseUpgradeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).upgrade_house(current_user, body.target_tier))


@house_router.post("/storage/deposit")
async def deposit_item(body: StorageRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).deposit_item(current_user, body.item_name, body.quantity))


@house_router.post("/storage/withdraw")
async def withdraw_item(body: StorageRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).withdraw_item(current_user, body.item_name, body.quantity))


@house_router.post("/upkeep")
async def pay_upkeep(current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).pay_upkeep(current_user))


@house_router.post("/repair")
async def repair_house(current_user: CurrentUser, session: SessionDep):
    return respond(await HouseService(session).repair_house(current_user))


@servants_router.get("")
async def get_servant(current_user: CurrentUser, session: SessionDep):
    return ok({"servant": await ServantService(session).get_servant_data(current_user)})


@servants_router.post("/hire")
async def hire_servant(body: ServantHireRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await ServantService(session).hire_servant(current_user, body.tier))


@servants_router.post("/dismiss")
async def dismiss_servant(current_user: CurrentUser, session: SessionDep):
    return respond(await ServantService(session).dismiss_servant(current_user))


@servants_router.post("/tasks")
async def assign_task(body: ServantTaskRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await ServantService(session).assign_task(current_user, body.task_type, body.params))


@servants_router.post("/tasks/{task_id}/cancel")
async def cancel_task(task_id: int, current_user: CurrentUser, session: SessionDep):
    return respond(await ServantService(session).cancel_task(current_user, task_id))


@servants_router.post("/wages")
async def pay_wages(current_user: CurrentUser, session: SessionDep):
    return respond(await ServantService(session).pay_wages(current_user))


@garden_router.get("")
async def get_garden(current_user: CurrentUser, session: SessionDep):
    return ok({"garden": await GardenService(session).get_garden(current_user)})


@garden_router.post("/plant")
async def plant(body: GardenPlantRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).plant(current_user, body.plot_slot, body.crop))


@garden_router.post("/water")
async def water(body: GardenPlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).water(current_user, body.plot_slot))


@garden_router.post("/tend")
async def tend(body: GardenPlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).tend(current_user, body.plot_slot))


@garden_router.post("/harvest")
async def harvest(body: GardenPlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).harvest(current_user, body.plot_slot))


@garden_router.post("/clear")
async def clear_plot(body: GardenPlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).clear_plot(current_user, body.plot_slot))


@garden_router.post("/compost")
async def add_compost(current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).add_compost(current_user))


@garden_router.post("/compost/use")
async def use_compost(body: GardenPlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GardenService(session).use_compost(current_user, body.plot_slot))
