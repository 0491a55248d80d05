"""
Unit tests for religion treasuries and headquarters upgrades.
"""

from datetime import timedelta

import pytest

from realm.game.religion_headquarters_service import ReligionHeadquartersService
from realm.game.skill_service import SkillService, xp_for_level
from realm.models.base import utcnow
from realm.models.religion import HqConstructionProject, Religion, ReligionMember


@pytest.fixture
def religion(db_session, user):
    """The Order of the Dawn with the test user as its prophet."""

    async def _make():
        order = Religion(name="Order of the Dawn", founder_id=user.id)
        db_session.add(order)
        await db_session.flush()
        prophet = ReligionMember(
            user_id=user.id, religion_id=order.id, rank=ReligionMember.RANK_PROPHET, devotion=10_000
        )
        db_session.add(prophet)
        await db_session.flush()
        return order, prophet

    return _make


@pytest.mark.asyncio
async def test_donations_require_membership(db_session, user, make_user, religion):
    """Test members can donate gold and outsiders cannot."""
    order, _ = await religion()
    outsider = await make_user()
    service = ReligionHeadquartersService(db_session)

    assert (await service.donate_to_treasury(outsider, order, 50))["message"] == "You are not a member of this religion."
    assert (await service.donate_to_treasury(user, order, 0))["message"] == "Donation amount must be positive."
    assert (await service.donate_to_treasury(user, order, 100))["success"]

    info = await service.get_treasury_info(order)
    assert info["balance"] == 100
    assert user.gold == 900
    assert info["recent_transactions"][0]["description"] == f"Donation from {user.username}"


@pytest.mark.asyncio
async def test_only_prophet_builds_headquarters(db_session, world, user, make_user, religion):
    """Test the prophet places the chapel once."""
    order, _ = await religion()
    follower = await make_user()
    db_session.add(ReligionMember(user_id=follower.id, religion_id=order.id))
    await db_session.flush()
    service = ReligionHeadquartersService(db_session)
    village_id = world["village"].id

    result = await service.build_headquarters(follower, order, "village", village_id)
    assert result["message"] == "Only the Prophet can build the headquarters."

    result = await service.build_headquarters(user, order, "village", village_id)
    assert result["success"]
    assert result["headquarters"].name == "Order of the Dawn Chapel"
    assert (await service.build_headquarters(user, order, "village", village_id))["message"] == (
        "The headquarters has already been built."
    )
    assert await service.get_member_bonuses(user) == {}


@pytest.mark.asyncio
async def test_upgrade_funding_construction_and_completion(db_session, world, user, religion):
    """Test an upgrade is funded, refunds the overage, builds and lands the new tier."""
    order, prophet = await religion()
    user.gold = 200_000
    service = ReligionHeadquartersService(db_session)
    await service.build_headquarters(user, order, "village", world["village"].id)

    result = await service.start_hq_upgrade(user, order)
    assert "You need level 15 Prayer" in result["message"]

    await SkillService(db_session).add_xp(user, "prayer", xp_for_level(15))
    project = (await service.start_hq_upgrade(user, order))["project"]
    assert (await service.start_hq_upgrade(user, order))["message"] == "An HQ upgrade is already in progress."

    result = await service.contribute_to_project(user, project, gold=150_000, devotion=6_000)
    assert result["success"]
    assert "Overage returned: 50000 gold, 1000 devotion." in result["message"]
    assert "Completion in 2 hours." in result["message"]
    assert user.gold == 100_000
    assert prophet.devotion == 5_000
    assert project.status == HqConstructionProject.STATUS_CONSTRUCTING
    assert project.progress == 100

    result = await service.contribute_to_project(user, project, gold=10)
    assert "under construction" in result["message"]

    assert await service.complete_due_constructions() == 0
    project.construction_ends_at = utcnow() - timedelta(minutes=1)
    await db_session.flush()
    assert await service.complete_due_constructions() == 1

    info = await service.get_headquarters_info(order)
    assert info["tier"] == 2
    assert info["name"] == "Order of the Dawn Church"
    assert info["bonuses"]["devotion_bonus"] == 5
    assert await service.get_devotion_gain_modifier(user) == pytest.approx(1.05)
