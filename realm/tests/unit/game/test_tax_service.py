"""
Unit tests for daily taxes and location treasuries.
"""

from datetime import date

import pytest
from sqlalchemy import select

from realm.game.tax_service import DEFAULT_TAX_RATE, TaxService, tax_due
from realm.models.role import PlayerRole, Role
from realm.models.tax import TaxCollection, TreasuryTransaction
from realm.models.world import Village

TODAY = date(2026, 3, 1)


def test_tax_due_rounds_down():
    """Test partial gold is never taxed."""
    assert tax_due(1000, 10) == 100
    assert tax_due(99, 10) == 9
    assert tax_due(5, 10) == 0


@pytest.mark.asyncio
async def test_rates_follow_the_hierarchy(db_session, world):
    """Test villages pay their barony's rate and orphans pay the default."""
    world["barony"].tax_rate = 20
    orphan = Village(name="Lonely Hollow", barony_id=None)
    db_session.add(orphan)
    await db_session.flush()
    service = TaxService(db_session)

    assert await service.get_tax_rate("village", world["village"].id) == 20
    assert await service.get_tax_rate("village", orphan.id) == DEFAULT_TAX_RATE
    assert await service.get_tax_rate("kingdom", world["kingdom"].id) == 10
    assert await service.get_tax_rate("village", 9999) == DEFAULT_TAX_RATE


@pytest.mark.asyncio
async def test_daily_collection_flows_up_the_hierarchy(db_session, world, make_user):
    """Test residents pay their village, which pays the barony, which pays the kingdom."""
    rich = await make_user(gold=1000)
    await make_user(gold=5)
    service = TaxService(db_session)

    result = await service.collect_daily_taxes(today=TODAY)

    assert result["players_taxed"] == 1
    assert result["player_tax_total"] == 100
    assert result["village_upstream_total"] == 10
    assert result["town_upstream_total"] == 0
    assert result["barony_upstream_total"] == 1
    assert rich.gold == 900

    village = await service.get_treasury_info("village", world["village"].id)
    assert village["balance"] == 90
    assert village["total_collected"] == 100
    assert village["total_distributed"] == 10
    assert village["location_name"] == "Millbrook"
    assert (await service.get_treasury("barony", world["barony"].id)).balance == 9
    assert (await service.get_treasury("kingdom", world["kingdom"].id)).balance == 1

    collections = (await db_session.execute(select(TaxCollection).order_by(TaxCollection.id))).scalars().all()
    assert [(c.tax_type, c.amount) for c in collections] == [("income", 100), ("upstream", 10), ("upstream", 1)]
    history = await service.get_user_tax_history(rich)
    assert history[0]["description"] == "Daily income tax"
    assert history[0]["tax_period"] == "2026-03-01"

    ledger = await service.get_treasury_transactions("village", world["village"].id)
    assert [(tx["type"], tx["amount"], tx["balance_after"]) for tx in ledger] == [
        (TreasuryTransaction.TYPE_UPSTREAM_TAX, -10, 90),
        (TreasuryTransaction.TYPE_TAX_INCOME, 100, 100),
    ]


@pytest.mark.asyncio
async def test_second_collection_same_day_is_skipped(db_session, world, make_user):
    """Test a day is only taxed once."""
    payer = await make_user(gold=1000)
    service = TaxService(db_session)
    await service.collect_daily_taxes(today=TODAY)

    again = await service.collect_daily_taxes(today=TODAY)

    assert again["already_collected"] is True
    assert again["players_taxed"] == 0
    assert payer.gold == 900
    tomorrow = await service.collect_daily_taxes(today=date(2026, 3, 2))
    assert tomorrow["player_tax_total"] == 90


@pytest.mark.asyncio
async def test_setting_rates_needs_authority(db_session, world, make_user):
    """Test only a baron may set the barony rate, within bounds."""
    baron_role = Role(slug="baron", name="Baron", location_type="barony", tier=4, permissions=["set_taxes"])
    db_session.add(baron_role)
    await db_session.flush()
    barony_id = world["barony"].id
    baron = await make_user()
    commoner = await make_user()
    db_session.add(
        PlayerRole(
            user_id=baron.id,
            role_id=baron_role.id,
            role=baron_role,
            location_type="barony",
            location_id=barony_id,
            status=PlayerRole.STATUS_ACTIVE,
        )
    )
    await db_session.flush()
    service = TaxService(db_session)

    refused = await service.set_tax_rate(commoner, "barony", barony_id, 15)
    assert refused["message"] == "You do not have authority to set taxes here."
    too_high = await service.set_tax_rate(baron, "barony", barony_id, 60)
    assert too_high["message"] == "Tax rate must be between 0% and 50%."
    village = await service.set_tax_rate(baron, "village", world["village"].id, 15)
    assert village["message"] == "Tax rates can only be set for baronies and kingdoms."

    result = await service.set_tax_rate(baron, "barony", barony_id, 15)
    assert result == {"success": True, "message": "Tax rate set to 15%.", "tax_rate": 15}
    assert world["barony"].tax_rate == 15
    assert await service.get_tax_rate("village", world["village"].id) == 15
