"""
Unit tests for agility courses.
"""

import pytest

from realm.game.agility_service import OBSTACLES, AgilityService, calculate_success_rate


class FixedRoll:
    """Random stand-in that always rolls the same number."""

    def __init__(self, value: int):
        self.value = value

    def randint(self, low: int, high: int) -> int:
        return self.value


def test_success_rate_bonus_is_capped():
    """Test the level bonus caps at +20 and the rate stays within bounds."""
    assert calculate_success_rate(1, OBSTACLES["log_balance"]) == 95
    assert calculate_success_rate(99, OBSTACLES["log_balance"]) == 98
    assert calculate_success_rate(30, OBSTACLES["ninja_course"]) == 25
    assert calculate_success_rate(99, OBSTACLES["legendary_course"]) == 44


@pytest.mark.asyncio
async def test_train_success(db_session, user):
    """Test a successful attempt grants the full XP."""
    result = await AgilityService(db_session, rng=FixedRoll(1)).train(user, "log_balance")
    assert result["success"]
    assert result["xp_awarded"] == 8
    assert result["energy_remaining"] == 98


@pytest.mark.asyncio
async def test_train_failure_grants_quarter_xp(db_session, user):
    """Test a failed attempt still costs energy and earns a quarter of the XP."""
    result = await AgilityService(db_session, rng=FixedRoll(100)).train(user, "rope_swing")
    assert result["success"] is False
    assert result["failed"]
    assert result["xp_awarded"] == 3
    assert result["energy_remaining"] == 98


@pytest.mark.asyncio
async def test_train_refusals(db_session, user, world):
    """Test unknown obstacles, level gates and locations without a course."""
    service = AgilityService(db_session, rng=FixedRoll(1))
    assert (await service.train(user, "moon_jump"))["message"] == "Invalid obstacle."
    assert (await service.train(user, "hurdles"))["message"] == "You need level 5 Agility to attempt this."

    user.current_location_type = "kingdom"
    user.current_location_id = world["kingdom"].id
    result = await service.train(user, "log_balance")
    assert result["message"] == "This obstacle is not available at your location."


@pytest.mark.asyncio
async def test_agility_info_defaults(db_session, user):
    """Test info for a player who has never trained agility."""
    info = await AgilityService(db_session).get_agility_info(user)
    assert info["can_train"]
    assert info["agility_level"] == 1
    assert info["agility_xp"] == 0
    assert len(info["obstacles"]) == len(OBSTACLES)
    assert info["obstacles"][0]["can_attempt"]
