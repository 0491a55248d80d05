"""
Political offices.

Every location type has a fixed set of roles (elder, mayor, baron, king...).
A vacant role is filled by an NPC; seating a player deactivates that NPC and
vacating the role brings it back. A player holds at most one role at a time.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.npc import LocationNpc
from ..models.role import PlayerRole, Role
from ..models.user import User
from ..models.world import Barony, Village
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# At or above this many residents a role can no longer be claimed without an election
SELF_APPOINT_THRESHOLD = 25

# Titles granted to office holders by role tier
ROLE_TIER_TITLES = {
    1: ("peasant", 2),
    2: ("freeman", 3),
    3: ("knight", 4),
    4: ("baron", 5),
    5: ("king", 6),
}
DEFAULT_TITLE = ("peasant", 2)


def player_role_to_dict(player_role: PlayerRole) -> dict[str, Any]:
    role = player_role.role
    return {
        "id": player_role.id,
        "role_id": role.id,
        "name": role.name,
        "slug": role.slug,
        "icon": role.icon,
        "description": role.description,
        "location_type": player_role.location_type,
        "location_id": player_role.location_id,
        "permissions": role.permissions or [],
        "salary": role.salary,
        "tier": role.tier,
        "status": player_role.status,
        "appointed_at": player_role.appointed_at.isoformat() if player_role.appointed_at else None,
        "expires_at": player_role.expires_at.isoformat() if player_role.expires_at else None,
        "total_salary_earned": player_role.total_salary_earned,
    }


class RoleService:
    def __init__(self, session: AsyncSession):
        self._session = session

    def _active_holders(self, *clauses):
        return (
            select(PlayerRole)
            .where(PlayerRole.status == PlayerRole.STATUS_ACTIVE, *clauses)
            .where((PlayerRole.expires_at.is_(None)) | (PlayerRole.expires_at > utcnow()))
        )

    async def get_role_by_slug(self, slug: str) -> Role | None:
        return (await self._session.execute(select(Role).where(Role.slug == slug))).scalar_one_or_none()

    async def get_holders_at(self, role: Role, location_type: str, location_id: int) -> list[PlayerRole]:
        stmt = self._active_holders(
            PlayerRole.role_id == role.id,
            PlayerRole.location_type == location_type,
            PlayerRole.location_id == location_id,
        ).order_by(PlayerRole.id)
        return list((await self._session.execute(stmt)).scalars())

    async def has_available_slots(self, role: Role, location_type: str, location_id: int) -> bool:
        return len(await self.get_holders_at(role, location_type, location_id)) < role.max_per_location

    async def get_npc_at(self, role: Role, location_type: str, location_id: int) -> LocationNpc | None:
        stmt = select(LocationNpc).where(
            LocationNpc.role_id == role.id,
            LocationNpc.location_type == location_type,
            LocationNpc.location_id == location_id,
            LocationNpc.alive_clause(),
        )
        return (await self._session.execute(stmt)).scalars().first()

    async def _format_role(self, role: Role, location_type: str, location_id: int) -> dict[str, Any]:
        holders = await self.get_holders_at(role, location_type, location_id)
        holder = holders[0] if holders else None
        npc = None if holder else await self.get_npc_at(role, location_type, location_id)
        return {
            "id": role.id,
            "name": role.name,
            "slug": role.slug,
            "icon": role.icon,
            "description": role.description,
            "location_type": role.location_type,
            "permissions": role.permissions or [],
            "salary": role.salary,
            "tier": role.tier,
            "is_elected": role.is_elected,
            "max_per_location": role.max_per_location,
            "holder": (
                {
                    "player_role_id": holder.id,
                    "user_id": holder.user_id,
                    "username": holder.user.username,
                    "title": holder.user.primary_title or "peasant",
                    "social_class": holder.user.social_class,
                    "appointed_at": holder.appointed_at.isoformat() if holder.appointed_at else None,
                    "total_salary_earned": holder.total_salary_earned,
                }
                if holder
                else None
            ),
            "npc": (
                {"id": npc.id, "name": npc.npc_name, "description": npc.npc_description, "icon": npc.npc_icon}
                if npc
                else None
            ),
            "is_vacant": holder is None,
        }

    async def get_roles_at_location(self, location_type: str, location_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(Role)
            .where(Role.location_type == location_type, Role.is_active.is_(True))
            .order_by(Role.tier.desc(), Role.id)
        )
        return [
            await self._format_role(role, location_type, location_id)
            for role in (await self._session.execute(stmt)).scalars()
        ]

    async def get_user_roles(self, user: User) -> list[dict[str, Any]]:
        stmt = self._active_holders(PlayerRole.user_id == user.id).order_by(PlayerRole.id)
        return [player_role_to_dict(pr) for pr in (await self._session.execute(stmt)).scalars()]

    async def get_active_role(self, user: User) -> PlayerRole | None:
        stmt = self._active_holders(PlayerRole.user_id == user.id).order_by(PlayerRole.id)
        return (await self._session.execute(stmt)).scalars().first()

    async def user_resides_at(self, user: User, location_type: str, location_id: int) -> bool:
        """Residency follows the home village up the barony and kingdom chain."""
        if user.home_village_id is None:
            return False
        if location_type == "village":
            return user.home_village_id == location_id
        village = await self._session.get(Village, user.home_village_id)
        if village is None or village.barony_id is None:
            return False
        if location_type in ("barony", "castle"):
            return village.barony_id == location_id
        if location_type == "kingdom":
            barony = await self._session.get(Barony, village.barony_id)
            return barony is not None and barony.kingdom_id == location_id
        return False

    async def get_location_population(self, location_type: str, location_id: int) -> int:
        if location_type == "village":
            stmt = select(func.count(User.id)).where(User.home_village_id == location_id)
        elif location_type in ("barony", "castle"):
            stmt = (
                select(func.count(User.id))
                .join(Village, User.home_village_id == Village.id)
                .where(Village.barony_id == location_id)
            )
        elif location_type == "kingdom":
            stmt = (
                select(func.count(User.id))
                .join(Village, User.home_village_id == Village.id)
                .join(Barony, Village.barony_id == Barony.id)
                .where(Barony.kingdom_id == location_id)
            )
        else:
            return 0
        return int((await self._session.execute(stmt)).scalar_one())

    async def _set_npc_active(self, role_id: int, location_type: str, location_id: int, active: bool) -> None:
        await self._session.execute(
            update(LocationNpc)
            .where(
                LocationNpc.role_id == role_id,
                LocationNpc.location_type == location_type,
                LocationNpc.location_id == location_id,
            )
            .values(is_active=active)
            .execution_options(synchronize_session="evaluate")
        )

    async def _activate_npc_if_vacant(self, player_role: PlayerRole) -> None:
        await self._session.flush()
        stmt = self._active_holders(
            PlayerRole.role_id == player_role.role_id,
            PlayerRole.location_type == player_role.location_type,
            PlayerRole.location_id == player_role.location_id,
        )
        if (await self._session.execute(stmt)).scalars().first() is None:
            await self._set_npc_active(player_role.role_id, player_role.location_type, player_role.location_id, True)

    @staticmethod
    def _grant_title(user: User, role: Role) -> None:
        title, tier = ROLE_TIER_TITLES.get(role.tier, DEFAULT_TITLE)
        if tier > user.title_tier:
            user.primary_title = title
            user.title_tier = tier

    @staticmethod
    def _revert_title(user: User) -> None:
        user.primary_title, user.title_tier = DEFAULT_TITLE

    async def _vacate(self, player_role: PlayerRole) -> None:
        self._revert_title(player_role.user)
        await self._activate_npc_if_vacant(player_role)

    async def appoint_role(
        self,
        user: User,
        role: Role,
        location_type: str,
        location_id: int,
        appointed_by: User | None = None,
        expires_at: datetime | None = None,
    ) -> dict[str, Any]:
        if role.location_type != location_type:
            return {"success": False, "message": "This role is not available at this type of location."}
        if not role.is_active:
            return {"success": False, "message": "This role is not currently active."}

        for held in await self.get_holders_at(role, location_type, location_id):
            if held.user_id == user.id:
                return {"success": False, "message": "This player already holds this role at this location."}

        if not await self.has_available_slots(role, location_type, location_id):
            return {"success": False, "message": "No positions available for this role at this location."}

        existing = await self.get_active_role(user)
        if existing is not None:
            existing.resign()
            await self._vacate(existing)

        player_role = PlayerRole(
            user_id=user.id,
            role=role,
            user=user,
            location_type=location_type,
            location_id=location_id,
            status=PlayerRole.STATUS_ACTIVE,
            appointed_at=utcnow(),
            expires_at=expires_at,
            appointed_by_user_id=appointed_by.id if appointed_by else None,
            total_salary_earned=0,
        )
        self._session.add(player_role)
        await self._set_npc_active(role.id, location_type, location_id, False)
        self._grant_title(user, role)
        await self._session.flush()

        logger.info(
            "Role appointed",
            user_id=user.id,
            role=role.slug,
            location_type=location_type,
            location_id=location_id,
            appointed_by=appointed_by.id if appointed_by else None,
        )
        return {
            "success": True,
            "message": f"{user.username} has been appointed as {role.name}!",
            "player_role": player_role,
        }

    async def self_appoint(self, user: User, role: Role, location_type: str, location_id: int) -> dict[str, Any]:
        """Claim a vacant role at a small settlement the player lives in."""
        if user.current_location_type != location_type or user.current_location_id != location_id:
            return {"success": False, "message": "You must travel to this location to claim a role here."}
        if not await self.user_resides_at(user, location_type, location_id):
            return {"success": False, "message": "You must be a resident of this location to claim a role here."}

        holders = await self.get_holders_at(role, location_type, location_id)
        if holders:
            return {"success": False, "message": f"This role is already held by {holders[0].user.username}."}

        population = await self.get_location_population(location_type, location_id)
        if population >= SELF_APPOINT_THRESHOLD:
            return {
                "success": False,
                "message": f"This location has {population} residents. An election is required to fill this role.",
            }
        return await self.appoint_role(user, role, location_type, location_id)

    async def remove_from_role(
        self, player_role: PlayerRole, removed_by: User | None, reason: str | None = None
    ) -> dict[str, Any]:
        if not player_role.is_active():
            return {"success": False, "message": "This role assignment is not active."}

        player_role.remove(removed_by, reason)
        await self._vacate(player_role)
        await self._session.flush()
        logger.info("Role removed", player_role_id=player_role.id, removed_by=removed_by.id if removed_by else None)
        return {"success": True, "message": f"Role has been removed from {player_role.user.username}."}

    async def resign_from_role(self, user: User, player_role: PlayerRole) -> dict[str, Any]:
        if player_role.user_id != user.id:
            return {"success": False, "message": "This role does not belong to you."}
        if not player_role.is_active():
            return {"success": False, "message": "You do not currently hold this role."}

        player_role.resign()
        await self._vacate(player_role)
        await self._session.flush()
        logger.info("Role resigned", user_id=user.id, player_role_id=player_role.id)
        return {"success": True, "message": f"You have resigned from the {player_role.role.name} position."}

    async def holds_role(self, user: User, role_slug: str, location_type: str, location_id: int) -> bool:
        holder = await self.get_role_holder(role_slug, location_type, location_id)
        return holder is not None and holder.id == user.id

    async def get_role_holder(self, role_slug: str, location_type: str, location_id: int) -> User | None:
        role = await self.get_role_by_slug(role_slug)
        if role is None:
            return None
        holders = await self.get_holders_at(role, location_type, location_id)
        return holders[0].user if holders else None

    async def has_permission(self, user: User, permission: str, location_type: str, location_id: int) -> bool:
        stmt = self._active_holders(
            PlayerRole.user_id == user.id,
            PlayerRole.location_type == location_type,
            PlayerRole.location_id == location_id,
        )
        return any(permission in (pr.role.permissions or []) for pr in (await self._session.execute(stmt)).scalars())

    async def pay_salaries(self) -> list[dict[str, Any]]:
        """Pay one salary to every active holder of a paid role."""
        stmt = self._active_holders().join(Role, PlayerRole.role_id == Role.id).where(Role.salary > 0)
        paid = []
        for player_role in (await self._session.execute(stmt)).scalars():
            amount = player_role.role.salary
            player_role.user.gold += amount
            player_role.total_salary_earned += amount
            paid.append(
                {
                    "user_id": player_role.user_id,
                    "username": player_role.user.username,
                    "role": player_role.role.name,
                    "amount": amount,
                }
            )
        await self._session.flush()
        logger.info("Role salaries paid", holders_paid=len(paid))
        return paid
