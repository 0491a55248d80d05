"""
Unit tests for player energy.
"""

from datetime import timedelta

import pytest

from realm.game.energy_service import EnergyService
from realm.models.base import utcnow


@pytest.mark.asyncio
async def test_consume_energy(db_session, user):
    """Test spending energy and refusing when short."""
    service = EnergyService(db_session)
    user.energy = 10
    assert await service.consume_energy(user, 4) is True
    assert user.energy == 6
    assert await service.consume_energy(user, 7) is False
    assert user.energy == 6


@pytest.mark.asyncio
async def test_add_energy_caps_at_max(db_session, user):
    """Test restoring energy never passes the maximum."""
    user.energy = 95
    gained = await EnergyService(db_session).add_energy(user, 20)
    assert gained == 5
    assert user.energy == user.max_energy


@pytest.mark.asyncio
async def test_set_energy_on_death_keeps_a_quarter(db_session, user):
    """Test dying leaves a quarter of the current energy."""
    user.energy = 80
    await EnergyService(db_session).set_energy_on_death(user)
    assert user.energy == 20


@pytest.mark.asyncio
async def test_regenerate_all_players_skips_full(db_session, make_user):
    """Test the regeneration tick only touches players below max."""
    tired = await make_user(energy=50)
    rested = await make_user(energy=100)
    affected = await EnergyService(db_session).regenerate_all_players()
    await db_session.refresh(tired)
    await db_session.refresh(rested)
    assert affected == 1
    assert tired.energy == 51
    assert rested.energy == 100
    assert tired.last_energy_regen_at is not None


def test_get_regen_info_counts_down(user):
    """Test seconds until the next point reflect the last regeneration."""
    now = utcnow()
    user.energy = 40
    user.last_energy_regen_at = now - timedelta(minutes=2)
    info = EnergyService(None, regen_minutes=5).get_regen_info(user, now=now)
    assert info["at_max"] is False
    assert info["seconds_until_next"] == 180
    assert info["regen_rate"] == 5


def test_get_regen_info_at_max(user):
    """Test a full player has no countdown."""
    info = EnergyService(None).get_regen_info(user)
    assert info["at_max"] is True
    assert info["seconds_until_next"] is None
