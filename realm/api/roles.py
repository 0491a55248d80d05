"""
Political offices and the petitions that challenge their holders.

Appointing and removing office holders needs the matching permission on a
role the acting player holds at that location.
"""

from fastapi import APIRouter

from ..exceptions import AuthorizationError, ResourceNotFoundError
from ..game.role_petition_service import RolePetitionService, petition_to_dict
from ..game.role_service import RoleService, player_role_to_dict
from ..models.role import PlayerRole, RolePetition
from ..models.user import User
from ..schemas.requests import (
    PetitionCreateRequest,
    PetitionResponseRequest,
    RoleAppointRequest,
    RoleClaimRequest,
    RoleRemoveRequest,
)
from .dependencies import CurrentUser, SessionDep
from .responses import ok, rejected, respond

roles_router = APIRouter(prefix="/roles", tags=["roles"])
petitions_router = APIRouter(prefix="/petitions", tags=["roles"])

APPOINT_PERMISSION = "appoint_roles"
REMOVE_PERMISSION = "remove_roles"


async def _player_role(session, player_role_id: int) -> PlayerRole:
    player_role = await session.get(PlayerRole, player_role_id)
    if player_role is None:
        raise ResourceNotFoundError("Role assignment not found", resource_type="player_role", resource_id=player_role_id)
    return player_role


async def _petition(session, petition_id: int) -> RolePetition:
    petition = await session.get(RolePetition, petition_id)
    if petition is None:
        raise ResourceNotFoundError("Petition not found", resource_type="petition", resource_id=petition_id)
    return petition


@roles_router.get("/location/{location_type}/{location_id}")
async def get_location_roles(location_type: str, location_id: int, _current_user: CurrentUser, session: SessionDep):
    return ok(await RoleService(session).get_roles_at_location(location_type, location_id))


@roles_router.get("/mine")
async def get_my_roles(current_user: CurrentUser, session: SessionDep):
    return ok(await RoleService(session).get_user_roles(current_user))


@roles_router.post("/claim")
async def claim_role(body: RoleClaimRequest, current_user: CurrentUser, session: SessionDep):
    service = RoleService(session)
    role = await service.get_role_by_slug(body.role_slug)
    if role is None:
        return rejected("Role not found.")
    result = await service.self_appoint(current_user, role, body.location_type, body.location_id)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"role": player_role_to_dict(result["player_role"])})


@roles_router.post("/appoint")
async def appoint_role(body: RoleAppointRequest, current_user: CurrentUser, session: SessionDep):
    service = RoleService(session)
    if not await service.has_permission(current_user, APPOINT_PERMISSION, body.location_type, body.location_id):
        raise AuthorizationError("You do not have authority to appoint roles here.")
    role = await service.get_role_by_slug(body.role_slug)
    appointee = await session.get(User, body.user_id)
    if role is None or appointee is None:
        return rejected("Role or player not found.")
    result = await service.appoint_role(appointee, role, body.location_type, body.location_id, current_user)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"role": player_role_to_dict(result["player_role"])})


@roles_router.post("/{player_role_id}/remove")
async def remove_role(player_role_id: int, body: RoleRemoveRequest, current_user: CurrentUser, session: SessionDep):
    service = RoleService(session)
    player_role = await _player_role(session, player_role_id)
    if not await service.has_permission(
        current_user, REMOVE_PERMISSION, player_role.location_type, player_role.location_id
    ):
        raise AuthorizationError("You do not have authority to remove role holders here.")
    return respond(await service.remove_from_role(player_role, current_user, body.reason))


@roles_router.post("/{player_role_id}/resign")
async def resign_role(player_role_id: int, current_user: CurrentUser, session: SessionDep):
    player_role = await _player_role(session, player_role_id)
    return respond(await RoleService(session).resign_from_role(current_user, player_role))


@petitions_router.get("/pending")
async def get_pending_petitions(current_user: CurrentUser, session: SessionDep):
    service = RolePetitionService(session)
    return ok([petition_to_dict(p) for p in await service.get_pending_for_authority(current_user.id)])


@petitions_router.post("")
async def create_petition(body: PetitionCreateRequest, current_user: CurrentUser, session: SessionDep):
    target = await _player_role(session, body.target_player_role_id)
    result = await RolePetitionService(session).create_petition(
        current_user, target, body.reason, body.request_appointment
    )
    if not result["success"]:
        return respond(result)
    return respond(result, data={"petition": petition_to_dict(result["petition"])})


@petitions_router.post("/{petition_id}/approve")
async def approve_petition(
    petition_id: int, body: PetitionResponseRequest, current_user: CurrentUser, session: SessionDep
):
    petition = await _petition(session, petition_id)
    return respond(await RolePetitionService(session).approve_petition(current_user, petition, body.response))


@petitions_router.post("/{petition_id}/deny")
async def deny_petition(petition_id: int, body: PetitionResponseRequest, current_user: CurrentUser, session: SessionDep):
    petition = await _petition(session, petition_id)
    return respond(await RolePetitionService(session).deny_petition(current_user, petition, body.response))


@petitions_router.post("/{petition_id}/withdraw")
async def withdraw_petition(petition_id: int, current_user: CurrentUser, session: SessionDep):
    petition = await _petition(session, petition_id)
    return respond(await RolePetitionService(session).withdraw_petition(current_user, petition))
