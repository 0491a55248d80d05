"""
Petitions to remove a role holder.

A resident files a petition at the holder's location. It is routed to the
next authority up the chain and expires after a week if nobody reviews it:

    village roles -> elder -> baron
    town roles    -> mayor -> baron
    barony roles  -> baron -> king
    kingdom roles -> king
"""

from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.role import PlayerRole, RolePetition
from ..models.user import User
from ..models.world import Barony, Town, Village
from ..structured_logging.enhanced_logging_config import get_logger
from .role_service import RoleService

logger = get_logger(__name__)


def petition_to_dict(petition: RolePetition) -> dict[str, Any]:
    return {
        "id": petition.id,
        "petitioner_id": petition.petitioner_id,
        "target_player_role_id": petition.target_player_role_id,
        "authority_user_id": petition.authority_user_id,
        "authority_role_slug": petition.authority_role_slug,
        "location_type": petition.location_type,
        "location_id": petition.location_id,
        "status": petition.status,
        "petition_reason": petition.petition_reason,
        "response_message": petition.response_message,
        "request_appointment": petition.request_appointment,
        "expires_at": petition.expires_at.isoformat(),
    }


class RolePetitionService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._roles = RoleService(session)

    async def _resolve_authority(self, role_slug: str, location_type: str, location_id: int) -> tuple | None:
        """(role_slug, location_type, location_id) of whoever reviews challenges to this role."""
        if location_type == "village" and role_slug != "elder":
            return ("elder", "village", location_id)
        if role_slug == "elder":
            village = await self._session.get(Village, location_id)
            return ("baron", "barony", village.barony_id) if village and village.barony_id else None
        if location_type == "town" and role_slug != "mayor":
            return ("mayor", "town", location_id)
        if role_slug == "mayor":
            town = await self._session.get(Town, location_id)
            return ("baron", "barony", town.barony_id) if town and town.barony_id else None
        if location_type == "barony" and role_slug != "baron":
            return ("baron", "barony", location_id)
        if role_slug == "baron":
            barony = await self._session.get(Barony, location_id)
            return ("king", "kingdom", barony.kingdom_id) if barony and barony.kingdom_id else None
        if location_type == "kingdom" and role_slug != "king":
            return ("king", "kingdom", location_id)
        return None

    async def get_authority_for_role(self, target: PlayerRole) -> dict[str, Any] | None:
        authority = await self._resolve_authority(target.role.slug, target.location_type, target.location_id)
        if authority is None:
            return None
        holder = await self._roles.get_role_holder(*authority)
        if holder is None:
            return None
        return {"user_id": holder.id, "role_slug": authority[0]}

    async def _has_pending(self, petitioner: User, target: PlayerRole) -> bool:
        stmt = select(RolePetition.id).where(
            RolePetition.petitioner_id == petitioner.id,
            RolePetition.target_player_role_id == target.id,
            RolePetition.status == RolePetition.STATUS_PENDING,
            RolePetition.expires_at > utcnow(),
        )
        return (await self._session.execute(stmt)).first() is not None

    async def create_petition(
        self, petitioner: User, target: PlayerRole, reason: str, request_appointment: bool = False
    ) -> dict[str, Any]:
        if not target.is_active():
            return {"success": False, "message": "This role assignment is no longer active."}
        if target.role.is_elected:
            return {
                "success": False,
                "message": "Elected officials cannot be challenged via petition. Start an election instead.",
            }
        if (
            petitioner.current_location_type != target.location_type
            or petitioner.current_location_id != target.location_id
        ):
            return {"success": False, "message": "You must be at this location to file a petition."}
        if not await self._roles.user_resides_at(petitioner, target.location_type, target.location_id):
            return {"success": False, "message": "You must be a resident of this location to file a petition."}
        if petitioner.id == target.user_id:
            return {"success": False, "message": "You cannot petition against yourself. Resign instead."}
        if await self._has_pending(petitioner, target):
            return {"success": False, "message": "You already have a pending petition against this role holder."}
        if target.role.slug == "king":
            return {
                "success": False,
                "message": "The King cannot be challenged via petition. Use a no-confidence vote instead.",
            }

        authority = await self.get_authority_for_role(target)
        if authority is None:
            return {
                "success": False,
                "message": "No authority figure is available to review this petition. The required position is vacant.",
            }

        petition = RolePetition(
            petitioner_id=petitioner.id,
            target_player_role_id=target.id,
            authority_user_id=authority["user_id"],
            authority_role_slug=authority["role_slug"],
            location_type=target.location_type,
            location_id=target.location_id,
            status=RolePetition.STATUS_PENDING,
            petition_reason=reason,
            request_appointment=request_appointment,
            expires_at=utcnow() + timedelta(days=RolePetition.EXPIRATION_DAYS),
        )
        self._session.add(petition)
        await self._session.flush()
        logger.info(
            "Role petition filed",
            petition_id=petition.id,
            petitioner_id=petitioner.id,
            target_player_role_id=target.id,
            authority_user_id=authority["user_id"],
        )
        return {
            "success": True,
            "message": "Petition filed successfully. The authority figure will review it.",
            "petition": petition,
        }

    async def approve_petition(
        self, authority: User, petition: RolePetition, response: str | None = None
    ) -> dict[str, Any]:
        if petition.authority_user_id != authority.id:
            return {"success": False, "message": "You are not authorized to review this petition."}
        if not petition.is_pending():
            return {"success": False, "message": "This petition is no longer pending."}
        if petition.has_expired():
            return {"success": False, "message": "This petition has expired."}

        petition.approve(response)
        target = await self._session.get(PlayerRole, petition.target_player_role_id)
        if target is not None and target.is_active():
            await self._roles.remove_from_role(target, authority, "Removed by petition")

        if petition.request_appointment and target is not None:
            petitioner = await self._session.get(User, petition.petitioner_id)
            if petitioner is not None:
                await self._roles.appoint_role(
                    petitioner, target.role, petition.location_type, petition.location_id, authority
                )

        await self._session.flush()
        logger.info("Role petition approved", petition_id=petition.id, authority_user_id=authority.id)
        return {"success": True, "message": "Petition approved. The role holder has been removed."}

    async def deny_petition(self, authority: User, petition: RolePetition, response: str | None = None) -> dict[str, Any]:
        if petition.authority_user_id != authority.id:
            return {"success": False, "message": "You are not authorized to review this petition."}
        if not petition.is_pending():
            return {"success": False, "message": "This petition is no longer pending."}

        petition.deny(response)
        await self._session.flush()
        return {"success": True, "message": "Petition denied."}

    async def withdraw_petition(self, petitioner: User, petition: RolePetition) -> dict[str, Any]:
        if petition.petitioner_id != petitioner.id:
            return {"success": False, "message": "This is not your petition."}
        if not petition.is_pending():
            return {"success": False, "message": "This petition is no longer pending."}

        petition.withdraw()
        await self._session.flush()
        return {"success": True, "message": "Petition withdrawn."}

    async def get_pending_count_for_authority(self, user_id: int) -> int:
        stmt = select(func.count(RolePetition.id)).where(
            RolePetition.authority_user_id == user_id,
            RolePetition.status == RolePetition.STATUS_PENDING,
            RolePetition.expires_at > utcnow(),
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def get_pending_for_authority(self, user_id: int) -> list[RolePetition]:
        stmt = (
            select(RolePetition)
            .where(
                RolePetition.authority_user_id == user_id,
                RolePetition.status == RolePetition.STATUS_PENDING,
                RolePetition.expires_at > utcnow(),
            )
            .order_by(RolePetition.created_at)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def expire_stale_petitions(self) -> int:
        stmt = select(RolePetition).where(
            RolePetition.status == RolePetition.STATUS_PENDING, RolePetition.expires_at <= utcnow()
        )
        expired = list((await self._session.execute(stmt)).scalars())
        for petition in expired:
            petition.status = RolePetition.STATUS_EXPIRED
        await self._session.flush()
        if expired:
            logger.info("Stale role petitions expired", count=len(expired))
        return len(expired)
