"""
Unit tests for the infirmary.
"""

from datetime import timedelta

import pytest

from realm.game.infirmary_service import InfirmaryService
from realm.models.base import utcnow


@pytest.mark.asyncio
async def test_admit_and_discharge(db_session, user):
    """Test a player stays until the timer runs out and leaves fully healed."""
    service = InfirmaryService(db_session)
    user.hp = 0
    await service.admit_player(user)

    status = InfirmaryService.get_infirmary_status(user)
    assert status["is_in_infirmary"]
    assert 590 <= status["remaining_seconds"] <= 600
    assert (await service.discharge(user))["message"] == "You are still recovering."

    user.infirmary_heals_at = utcnow() - timedelta(seconds=1)
    result = await service.discharge(user)
    assert result["success"]
    assert user.hp == user.max_hp
    assert InfirmaryService.get_infirmary_status(user) is None


@pytest.mark.asyncio
async def test_discharge_when_not_admitted(db_session, user):
    """Test discharging a healthy player is refused."""
    result = await InfirmaryService(db_session).discharge(user)
    assert result == {"success": False, "message": "You are not in the infirmary."}


@pytest.mark.asyncio
async def test_custom_stay_length(db_session, user):
    """Test the stay length is configurable."""
    await InfirmaryService(db_session, minutes=1).admit_player(user)
    assert user.infirmary_heals_at - user.infirmary_started_at == timedelta(minutes=1)
