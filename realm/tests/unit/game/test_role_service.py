"""
Unit tests for political offices.
"""

import pytest

from realm.game.role_service import SELF_APPOINT_THRESHOLD, RoleService
from realm.models.npc import LocationNpc
from realm.models.role import PlayerRole, Role


@pytest.fixture
def make_role(db_session):
    async def _make(slug, location_type="village", **attrs):
        values = {"name": slug.replace("_", " ").title(), "tier": 2}
        values.update(attrs)
        role = Role(slug=slug, location_type=location_type, **values)
        db_session.add(role)
        await db_session.flush()
        return role

    return _make


@pytest.mark.asyncio
async def test_self_appoint_takes_over_from_npc(db_session, world, user, make_role):
    """Test claiming a vacant role seats the player, grants a title and benches the NPC."""
    village = world["village"]
    role = await make_role("elder")
    npc = LocationNpc(
        role_id=role.id, location_type="village", location_id=village.id, npc_name="Old Wynn", is_active=True
    )
    db_session.add(npc)
    await db_session.flush()
    service = RoleService(db_session)

    result = await service.self_appoint(user, role, "village", village.id)

    assert result["success"]
    assert npc.is_active is False
    assert user.primary_title == "freeman"
    assert user.title_tier == 3
    assert await service.holds_role(user, "elder", "village", village.id)
    roles = await service.get_roles_at_location("village", village.id)
    assert roles[0]["holder"]["username"] == user.username
    assert roles[0]["is_vacant"] is False


@pytest.mark.asyncio
async def test_self_appoint_refusals(db_session, world, make_user, make_role):
    """Test claims need presence, residency, a vacancy and a small population."""
    village = world["village"]
    role = await make_role("elder")
    service = RoleService(db_session)

    visitor = await make_user(home_village_id=None)
    result = await service.self_appoint(visitor, role, "village", village.id)
    assert result["message"] == "You must be a resident of this location to claim a role here."

    away = await make_user(current_location_type="town", current_location_id=world["town"].id)
    result = await service.self_appoint(away, role, "village", village.id)
    assert result["message"] == "You must travel to this location to claim a role here."

    for _ in range(SELF_APPOINT_THRESHOLD):
        await make_user()
    claimant = await make_user()
    result = await service.self_appoint(claimant, role, "village", village.id)
    assert "An election is required" in result["message"]


@pytest.mark.asyncio
async def test_new_appointment_resigns_previous_role(db_session, world, user, make_role):
    """Test a player holds one role at a time; taking another resigns the first."""
    village = world["village"]
    elder = await make_role("elder")
    smith = await make_role("blacksmith", tier=1)
    service = RoleService(db_session)

    first = (await service.appoint_role(user, elder, "village", village.id))["player_role"]
    second = await service.appoint_role(user, smith, "village", village.id)

    assert second["success"]
    assert first.status == PlayerRole.STATUS_RESIGNED
    assert [r["slug"] for r in await service.get_user_roles(user)] == ["blacksmith"]
    assert user.primary_title == "peasant"


@pytest.mark.asyncio
async def test_appoint_rejects_wrong_location_type(db_session, world, user, make_role):
    """Test a village role cannot be held at a town."""
    role = await make_role("elder")
    result = await RoleService(db_session).appoint_role(user, role, "town", world["town"].id)
    assert result["message"] == "This role is not available at this type of location."


@pytest.mark.asyncio
async def test_permissions_salaries_and_removal(db_session, world, make_user, make_role):
    """Test permissions follow the role, salaries accrue and removal vacates the office."""
    town = world["town"]
    mayor = await make_role("mayor", location_type="town", salary=50, permissions=["appoint_roles"])
    holder = await make_user()
    king = await make_user()
    service = RoleService(db_session)
    player_role = (await service.appoint_role(holder, mayor, "town", town.id))["player_role"]

    assert await service.has_permission(holder, "appoint_roles", "town", town.id)
    assert not await service.has_permission(holder, "remove_roles", "town", town.id)

    paid = await service.pay_salaries()
    assert paid == [{"user_id": holder.id, "username": holder.username, "role": "Mayor", "amount": 50}]
    assert holder.gold == 1050
    assert player_role.total_salary_earned == 50

    result = await service.remove_from_role(player_role, king, "Neglect")
    assert result["success"]
    assert player_role.removal_reason == "Neglect"
    assert await service.get_role_holder("mayor", "town", town.id) is None
    assert (await service.remove_from_role(player_role, king))["message"] == "This role assignment is not active."


@pytest.mark.asyncio
async def test_resign_checks_ownership(db_session, world, make_user, make_role):
    """Test only the holder can resign a role."""
    village = world["village"]
    role = await make_role("elder")
    holder = await make_user()
    other = await make_user()
    service = RoleService(db_session)
    player_role = (await service.appoint_role(holder, role, "village", village.id))["player_role"]

    assert (await service.resign_from_role(other, player_role))["message"] == "This role does not belong to you."
    assert (await service.resign_from_role(holder, player_role))["success"]
    assert (holder.primary_title, holder.title_tier) == ("peasant", 2)


@pytest.mark.asyncio
async def test_refused_appointment_keeps_current_role(db_session, world, make_user, make_role):
    """Test a full role refuses the appointment without touching the player's current office."""
    village = world["village"]
    elder = await make_role("elder")
    smith = await make_role("blacksmith", tier=1)
    holder = await make_user()
    user = await make_user()
    service = RoleService(db_session)
    await service.appoint_role(holder, smith, "village", village.id)
    await service.appoint_role(user, elder, "village", village.id)

    result = await service.appoint_role(user, smith, "village", village.id)

    assert result == {"success": False, "message": "No positions available for this role at this location."}
    assert await service.holds_role(user, "elder", "village", village.id)
    assert user.title_tier == 3
