"""
Player endpoints: profile, skills, inventory and equipment.
"""

from fastapi import APIRouter

from ..game.energy_service import EnergyService
from ..game.infirmary_service import InfirmaryService
from ..game.inventory_service import InventoryService
from ..game.skill_service import SkillService
from ..models.world import resolve_location
from ..schemas.requests import SlotRequest
from ..structured_logging.enhanced_logging_config import get_logger
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

logger = get_logger(__name__)

player_router = APIRouter(prefix="/player", tags=["player"])


@player_router.get("")
async def get_profile(current_user: CurrentUser, session: SessionDep):
    """Vitals, purse, location and timers for the acting player."""
    await InfirmaryService(session).check_and_discharge(current_user)
    location = await resolve_location(session, current_user.current_location_type, current_user.current_location_id)
    skills = SkillService(session)
    return ok(
        {
            "id": current_user.id,
            "username": current_user.username,
            "hp": current_user.hp,
            "max_hp": current_user.max_hp,
            "gold": current_user.gold,
            "title": current_user.primary_title,
            "title_tier": current_user.title_tier,
            "social_class": current_user.social_class,
            "location": {
                "type": current_user.current_location_type,
                "id": current_user.current_location_id,
                "name": location.name if location else None,
            },
            "is_traveling": current_user.is_traveling_now(),
            "infirmary": InfirmaryService.get_infirmary_status(current_user),
            "energy": EnergyService(session).get_regen_info(current_user),
            "combat_level": await skills.get_combat_level(current_user),
        }
    )


@player_router.get("/skills")
async def get_skills(current_user: CurrentUser, session: SessionDep):
    return ok(await SkillService(session).get_all_skills(current_user))


@player_router.get("/inventory")
async def get_inventory(current_user: CurrentUser, session: SessionDep):
    inventory = InventoryService(session)
    slots = await inventory.get_slots(current_user)
    return ok(
        {
            "slots": [
                {
                    "id": slot.id,
                    "slot_number": slot.slot_number,
                    "item_id": slot.item_id,
                    "item_name": slot.item.name,
                    "item_type": slot.item.type,
                    "quantity": slot.quantity,
                    "is_equipped": slot.is_equipped,
                }
                for slot in slots
            ],
            "free_slots": await inventory.free_slots(current_user),
            "summary": await inventory.get_inventory_summary(current_user),
        }
    )


@player_router.post("/inventory/equip")
async def equip_item(body: SlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await InventoryService(session).equip_item(current_user, body.slot_number))


@player_router.post("/inventory/unequip")
async def unequip_item(body: SlotRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await InventoryService(session).unequip_item(current_user, body.slot_number))
