"""
Unit tests for NPC aging, death and role replacement.
"""

import random

import pytest
from sqlalchemy import select

from realm.game.npc_lifecycle_service import NpcLifecycleService
from realm.models.npc import LocationNpc
from realm.models.role import PlayerRole, Role


@pytest.fixture
def blacksmith_role(db_session):
    async def _make():
        role = Role(slug="blacksmith", name="Blacksmith", location_type="village")
        db_session.add(role)
        await db_session.flush()
        return role

    return _make


async def _npc(db_session, village, **attrs):
    npc = LocationNpc(location_type="village", location_id=village.id, npc_name="Osric", **attrs)
    db_session.add(npc)
    await db_session.flush()
    return npc


def test_death_probability_curve():
    """Test death odds are zero until fifty and certain at eighty."""
    npc = LocationNpc(npc_name="Maud", birth_year=1)
    assert npc.get_death_probability(40) == 0.0
    assert npc.get_death_probability(66) == pytest.approx(0.5)
    assert npc.get_death_probability(100) == 1.0


@pytest.mark.asyncio
async def test_very_old_npc_dies_and_role_is_refilled(db_session, world, blacksmith_role):
    """Test a dead role holder is replaced by a fresh adult in the same role."""
    world["state"].current_year = 100
    role = await blacksmith_role()
    old = await _npc(db_session, world["village"], birth_year=10, role_id=role.id, is_active=True)
    young = await _npc(db_session, world["village"], birth_year=80)

    results = await NpcLifecycleService(db_session, rng=random.Random(7)).process_yearly_aging()

    assert results["died"] == 1
    assert results["replaced"] == 1
    assert old.death_year == 100
    assert old.is_active is False
    assert young.is_alive()

    stmt = select(LocationNpc).where(LocationNpc.role_id == role.id, LocationNpc.alive_clause())
    replacement = (await db_session.execute(stmt)).scalar_one()
    assert replacement.is_active
    assert 60 <= replacement.birth_year <= 80
    assert replacement.npc_name.startswith("Smith ")


@pytest.mark.asyncio
async def test_role_taken_by_player_is_not_refilled(db_session, world, user, blacksmith_role):
    """Test no replacement is seated when a player holds the role there."""
    world["state"].current_year = 100
    role = await blacksmith_role()
    village = world["village"]
    db_session.add(PlayerRole(user_id=user.id, role_id=role.id, location_type="village", location_id=village.id))
    await _npc(db_session, village, birth_year=1, role_id=role.id, is_active=True)

    results = await NpcLifecycleService(db_session, rng=random.Random(7)).process_yearly_aging()

    assert results == {"aged": 0, "died": 1, "replaced": 0}


@pytest.mark.asyncio
async def test_statistics_and_create_for_role(db_session, world, blacksmith_role):
    """Test seating an NPC in a role shows up in the population statistics."""
    world["state"].current_year = 60
    role = await blacksmith_role()
    service = NpcLifecycleService(db_session, rng=random.Random(3))

    npc = await service.create_npc_for_role(role, "village", world["village"].id)
    await _npc(db_session, world["village"], birth_year=5)

    assert npc.npc_description == "The local Blacksmith."
    assert 10 <= npc.birth_year <= 35
    stats = await service.get_npc_statistics()
    assert stats["living"] == 2
    assert stats["dead"] == 0
    assert stats["current_year"] == 60
    assert stats["active"] == 1
