"""
Unit tests for combat training.
"""

import pytest

from realm.game.skill_service import xp_for_level
from realm.game.training_service import TrainingService, training_xp


def test_training_xp_tapers_with_level():
    """Test XP per session shrinks with level but never below half."""
    assert training_xp(25, 5) == 25
    assert training_xp(25, 25) == 20
    assert training_xp(25, 90) == 12


@pytest.mark.asyncio
async def test_train_awards_xp_and_spends_energy(db_session, user):
    """Test a session spends 10 energy and grants the base XP at level 5."""
    result = await TrainingService(db_session).train(user, "attack")
    assert result["success"]
    assert result["xp_awarded"] == 25
    assert result["energy_remaining"] == 90
    assert result["message"] == "You completed Combat Drills!"


@pytest.mark.asyncio
async def test_train_refusals(db_session, user, world):
    """Test invalid exercises, missing energy and bad locations."""
    service = TrainingService(db_session)
    assert (await service.train(user, "juggling"))["message"] == "Invalid exercise."

    user.energy = 5
    assert (await service.train(user, "strength"))["message"] == "Not enough energy. Need 10 energy."

    user.energy = 100
    user.current_location_type = "kingdom"
    user.current_location_id = world["kingdom"].id
    result = await service.train(user, "strength")
    assert result["success"] is False
    assert "training ground" in result["message"]
    assert await service.get_available_exercises(user) == []


@pytest.mark.asyncio
async def test_combat_stats(db_session, user):
    """Test combat stats report each melee skill and the combat level."""
    service = TrainingService(db_session)
    await service.train(user, "defense")
    stats = await service.get_combat_stats(user)
    assert stats["defense"]["xp"] == xp_for_level(5) + 25
    assert stats["attack"]["level"] == 5
    assert stats["combat_level"] == 5
