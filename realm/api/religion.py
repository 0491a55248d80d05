"""
Religion treasury and headquarters endpoints.
"""

from fastapi import APIRouter

from ..exceptions import ResourceNotFoundError
from ..game.religion_headquarters_service import ReligionHeadquartersService, project_to_dict
from ..models.religion import HqConstructionProject, Religion
from ..schemas.requests import AmountRequest, ContributionRequest, LocationRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

religion_router = APIRouter(prefix="/religions", tags=["religion"])


async def _religion(session, religion_id: int) -> Religion:
    religion = await session.get(Religion, religion_id)
    if religion is None or not religion.is_active:
        raise ResourceNotFoundError("Religion not found", resource_type="religion", resource_id=religion_id)
    return religion


@religion_router.get("/bonuses")
async def get_my_bonuses(current_user: CurrentUser, session: SessionDep):
    return ok(await ReligionHeadquartersService(session).get_member_bonuses(current_user))


@religion_router.get("/{religion_id}")
async def get_religion(religion_id: int, current_user: CurrentUser, session: SessionDep):
    religion = await _religion(session, religion_id)
    service = ReligionHeadquartersService(session)
    member = await service.get_membership(current_user, religion)
    return ok(
        {
            "id": religion.id,
            "name": religion.name,
            "description": religion.description,
            "type": religion.type,
            "membership": {"rank": member.rank, "devotion": member.devotion} if member else None,
            "treasury": await service.get_treasury_info(religion),
            "headquarters": await service.get_headquarters_info(religion),
        }
    )


@religion_router.post("/{religion_id}/treasury/donate")
async def donate(religion_id: int, body: AmountRequest, current_user: CurrentUser, session: SessionDep):
    religion = await _religion(session, religion_id)
    return respond(await ReligionHeadquartersService(session).donate_to_treasury(current_user, religion, body.amount))


@religion_router.post("/{religion_id}/headquarters/build")
async def build_headquarters(religion_id: int, body: LocationRequest, current_user: CurrentUser, session: SessionDep):
    religion = await _religion(session, religion_id)
    service = ReligionHeadquartersService(session)
    result = await service.build_headquarters(current_user, religion, body.location_type, body.location_id)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"headquarters": await service.get_headquarters_info(religion)})


@religion_router.post("/{religion_id}/headquarters/upgrade")
async def start_upgrade(religion_id: int, current_user: CurrentUser, session: SessionDep):
    religion = await _religion(session, religion_id)
    result = await ReligionHeadquartersService(session).start_hq_upgrade(current_user, religion)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"project": project_to_dict(result["project"])})


@religion_router.post("/projects/{project_id}/contribute")
async def contribute(project_id: int, body: ContributionRequest, current_user: CurrentUser, session: SessionDep):
    project = await session.get(HqConstructionProject, project_id)
    if project is None:
        raise ResourceNotFoundError("Project not found", resource_type="hq_project", resource_id=project_id)
    result = await ReligionHeadquartersService(session).contribute_to_project(
        current_user, project, body.gold, body.devotion
    )
    if not result["success"]:
        return respond(result)
    return respond(result, data={"project": project_to_dict(project)})
