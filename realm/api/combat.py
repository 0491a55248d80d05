"""
Combat and infirmary endpoints.
"""

from fastapi import APIRouter

from ..game.combat_service import CombatService
from ..game.infirmary_service import InfirmaryService
from ..schemas.requests import CombatStartRequest, EatRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

combat_router = APIRouter(prefix="/combat", tags=["combat"])
infirmary_router = APIRouter(prefix="/infirmary", tags=["infirmary"])


@combat_router.get("")
async def get_combat(current_user: CurrentUser, session: SessionDep):
    service = CombatService(session)
    info = await service.get_combat_info(current_user)
    info["monsters"] = [
        {
            "id": monster.id,
            "name": monster.name,
            "type": monster.type,
            "combat_level": monster.combat_level,
            "max_hp": monster.max_hp,
            "is_boss": monster.is_boss,
        }
        for monster in await service.get_available_monsters(current_user)
    ]
    info["food"] = await service.get_available_food(current_user)
    return ok(info)


@combat_router.post("/start")
async def start_combat(body: CombatStartRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await CombatService(session).start_combat(current_user, body.monster_id, body.attack_style_index))


@combat_router.post("/attack")
async def attack(current_user: CurrentUser, session: SessionDep):
    return respond(await CombatService(session).attack(current_user))


@combat_router.post("/eat")
async def eat(body: EatRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await CombatService(session).eat(current_user, body.inventory_slot_id))


@combat_router.post("/flee")
async def flee(current_user: CurrentUser, session: SessionDep):
    return respond(await CombatService(session).flee(current_user))


@infirmary_router.get("")
async def get_infirmary(current_user: CurrentUser, session: SessionDep):
    await InfirmaryService(session).check_and_discharge(current_user)
    return ok(InfirmaryService.get_infirmary_status(current_user))


@infirmary_router.post("/discharge")
async def discharge(current_user: CurrentUser, session: SessionDep):
    return respond(await InfirmaryService(session).discharge(current_user))
