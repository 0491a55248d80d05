"""
Unit tests for role petitions.
"""

from datetime import timedelta

import pytest

from realm.game.role_petition_service import RolePetitionService
from realm.game.role_service import RoleService
from realm.models.base import utcnow
from realm.models.role import PlayerRole, Role, RolePetition

REASON = "Keeps the forge cold every market day."


@pytest.fixture
def village_offices(db_session, world, make_user):
    """An elder and a blacksmith seated in the test village."""

    async def _make():
        village = world["village"]
        elder_role = Role(slug="elder", name="Elder", location_type="village", tier=2)
        smith_role = Role(slug="blacksmith", name="Blacksmith", location_type="village", tier=1)
        db_session.add_all([elder_role, smith_role])
        await db_session.flush()

        roles = RoleService(db_session)
        elder = await make_user()
        smith = await make_user()
        await roles.appoint_role(elder, elder_role, "village", village.id)
        smith_seat = (await roles.appoint_role(smith, smith_role, "village", village.id))["player_role"]
        return {"elder": elder, "smith": smith, "smith_seat": smith_seat}

    return _make


@pytest.mark.asyncio
async def test_petition_routes_to_elder_and_appoints_petitioner(db_session, user, village_offices):
    """Test an approved petition removes the holder and can seat the petitioner."""
    offices = await village_offices()
    service = RolePetitionService(db_session)

    filed = await service.create_petition(user, offices["smith_seat"], REASON, request_appointment=True)
    assert filed["success"]
    petition = filed["petition"]
    assert petition.authority_user_id == offices["elder"].id
    assert await service.get_pending_count_for_authority(offices["elder"].id) == 1

    result = await service.approve_petition(offices["elder"], petition)

    assert result["success"]
    assert petition.status == RolePetition.STATUS_APPROVED
    assert offices["smith_seat"].status == PlayerRole.STATUS_REMOVED
    holder = await RoleService(db_session).get_role_holder("blacksmith", "village", offices["smith_seat"].location_id)
    assert holder.id == user.id


@pytest.mark.asyncio
async def test_petition_refusals(db_session, user, village_offices):
    """Test self-petitions, duplicates and reviews by the wrong person are refused."""
    offices = await village_offices()
    service = RolePetitionService(db_session)
    seat = offices["smith_seat"]

    result = await service.create_petition(offices["smith"], seat, REASON)
    assert result["message"] == "You cannot petition against yourself. Resign instead."

    petition = (await service.create_petition(user, seat, REASON))["petition"]
    result = await service.create_petition(user, seat, REASON)
    assert result["message"] == "You already have a pending petition against this role holder."

    result = await service.approve_petition(offices["smith"], petition)
    assert result["message"] == "You are not authorized to review this petition."

    assert (await service.deny_petition(offices["elder"], petition, "Not convinced"))["success"]
    assert petition.response_message == "Not convinced"
    assert (await service.withdraw_petition(user, petition))["message"] == "This petition is no longer pending."


@pytest.mark.asyncio
async def test_petition_without_authority(db_session, world, user, make_user):
    """Test a petition fails when the reviewing office is vacant."""
    role = Role(slug="blacksmith", name="Blacksmith", location_type="village", tier=1)
    db_session.add(role)
    await db_session.flush()
    smith = await make_user()
    seat = (await RoleService(db_session).appoint_role(smith, role, "village", world["village"].id))["player_role"]

    result = await RolePetitionService(db_session).create_petition(user, seat, REASON)

    assert "The required position is vacant." in result["message"]


@pytest.mark.asyncio
async def test_expire_stale_petitions(db_session, user, village_offices):
    """Test petitions past their deadline are expired."""
    offices = await village_offices()
    service = RolePetitionService(db_session)
    petition = (await service.create_petition(user, offices["smith_seat"], REASON))["petition"]
    petition.expires_at = utcnow() - timedelta(minutes=1)
    await db_session.flush()

    assert await service.expire_stale_petitions() == 1
    assert petition.status == RolePetition.STATUS_EXPIRED
    assert await service.get_pending_for_authority(offices["elder"].id) == []
