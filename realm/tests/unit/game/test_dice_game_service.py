"""
Unit tests for tavern dice games.
"""

import random

import pytest

from realm.game.dice_game_service import DiceGameService, calculate_payout


class LoadedDice(random.Random):
    """Rolls a fixed sequence of faces."""

    def __init__(self, faces):
        super().__init__(0)
        self._faces = list(faces)

    def randint(self, a, b):
        return self._faces.pop(0)


def _service(db_session, *faces, cooldown_seconds=0):
    return DiceGameService(db_session, rng=LoadedDice(faces), cooldown_seconds=cooldown_seconds)


def test_payout_takes_house_rake():
    """Test winnings are the multiplied wager less ten percent."""
    assert calculate_payout(100, 1.5) == 135
    assert calculate_payout(100, 1.75) == 158
    assert calculate_payout(100, 2) == 180


@pytest.mark.asyncio
async def test_high_roll_win_pays_and_restores_energy(db_session, user, world):
    """Test a higher roll wins the payout and ten energy."""
    user.energy = 50
    service = _service(db_session, 6, 5, 2, 3)

    result = await service.play(user, "high_roll", 100, "village", world["village"].id)

    assert result["won"]
    assert result["message"] == "You rolled 11, house rolled 5. You win 135g!"
    assert user.gold == 1135
    assert user.energy == 60


@pytest.mark.asyncio
async def test_high_roll_tie_goes_to_house(db_session, user, world):
    """Test a tied roll loses the wager."""
    result = await _service(db_session, 3, 3, 4, 2).play(user, "high_roll", 100, "village", world["village"].id)
    assert not result["won"]
    assert "It's a tie - house wins." in result["message"]
    assert user.gold == 900


@pytest.mark.asyncio
async def test_hazard_point_and_seven_out(db_session, user, world):
    """Test hazard wins on the point and loses on a seven."""
    village_id = world["village"].id
    won = await _service(db_session, 5, 1, 2, 2, 3, 3).play(user, "hazard", 100, "village", village_id)
    assert won["message"] == "Point was 6. Rolled 6. You hit your point! You win 158g!"
    assert len(won["rolls"]) == 3

    lost = await _service(db_session, 4, 2, 3, 4).play(user, "hazard", 100, "village", village_id)
    assert lost["message"] == "Point was 6. Rolled 7. Seven out! You lose."

    natural = await _service(db_session, 5, 6).play(user, "hazard", 100, "village", village_id)
    assert natural["message"] == "Rolled 11 on the come-out roll. Natural! You win 158g!"


@pytest.mark.asyncio
async def test_doubles(db_session, user, world):
    """Test doubles pay double less the rake."""
    village_id = world["village"].id
    result = await _service(db_session, 4, 4).play(user, "doubles", 50, "village", village_id)
    assert result["message"] == "Double 4s! You win 90g!"
    result = await _service(db_session, 2, 5).play(user, "doubles", 50, "village", village_id)
    assert result["message"] == "Rolled 2 and 5. No doubles. You lose."
    assert user.gold == 1040


@pytest.mark.asyncio
async def test_wager_limits_and_cooldown(db_session, user, world):
    """Test wager bounds and the cooldown between games."""
    village_id = world["village"].id
    service = DiceGameService(db_session, rng=LoadedDice([1, 2]))

    assert (await service.play(user, "roulette", 100, "village", village_id))["message"] == "Invalid game type."
    assert (await service.play(user, "doubles", 5, "village", village_id))["message"] == "Minimum wager is 10g."
    assert (await service.play(user, "doubles", 3000, "village", village_id))["message"] == "Maximum wager is 2500g."

    assert (await service.play(user, "doubles", 10, "village", village_id))["success"]
    again = await service.play(user, "doubles", 10, "village", village_id)
    assert again["message"] == "You must wait before playing again."
    assert (await service.can_play(user))["cooldown_ends"] is not None


@pytest.mark.asyncio
async def test_history_and_stats(db_session, user, world):
    """Test history lists newest first and stats add up profit."""
    village_id = world["village"].id
    await _service(db_session, 4, 4).play(user, "doubles", 50, "village", village_id)
    await _service(db_session, 2, 5).play(user, "doubles", 50, "village", village_id)

    service = DiceGameService(db_session)
    history = await service.get_game_history(user)
    assert [game["won"] for game in history] == [False, True]
    assert await service.get_tavern_stats(user, "village", village_id) == {
        "wins": 1,
        "losses": 1,
        "total_profit": 40,
    }
    assert await service.get_tavern_stats(user, "town", world["town"].id) == {
        "wins": 0,
        "losses": 0,
        "total_profit": 0,
    }
