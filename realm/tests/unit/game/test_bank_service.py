"""
Unit tests for banking.
"""

import pytest

from realm.game.bank_service import BankService


@pytest.mark.asyncio
async def test_deposit_and_withdraw(db_session, user, world):
    """Test gold moves between the purse and the local account."""
    service = BankService(db_session)
    result = await service.deposit(user, 400)
    assert result["success"]
    assert result["new_balance"] == 400
    assert user.gold == 600

    result = await service.withdraw(user, 150)
    assert result["success"]
    assert result["new_balance"] == 250
    assert user.gold == 750

    info = await service.get_bank_info(user)
    assert info["location_name"] == world["village"].name
    assert info["total_wealth"] == 1000


@pytest.mark.asyncio
async def test_deposit_validation(db_session, user):
    """Test invalid deposits are refused without touching the purse."""
    service = BankService(db_session)
    assert (await service.deposit(user, 0))["message"] == "Amount must be greater than zero."
    assert (await service.deposit(user, 5000))["message"] == "You don't have enough gold on you."
    assert user.gold == 1000


@pytest.mark.asyncio
async def test_withdraw_insufficient_funds(db_session, user):
    """Test withdrawing more than the balance fails."""
    result = await BankService(db_session).withdraw(user, 10)
    assert result == {"success": False, "message": "Insufficient funds in your account."}


@pytest.mark.asyncio
async def test_accounts_are_per_location(db_session, user, world):
    """Test each settlement keeps its own balance."""
    service = BankService(db_session)
    await service.deposit(user, 100)
    user.current_location_type = "town"
    user.current_location_id = world["town"].id
    await service.deposit(user, 50)

    assert await service.get_balance(user) == 50
    assert await service.get_total_balance(user) == 150
    names = sorted(a["location_name"] for a in await service.get_all_accounts(user))
    assert names == sorted([world["village"].name, world["town"].name])


@pytest.mark.asyncio
async def test_bank_unavailable_in_kingdom(db_session, user, world):
    """Test there is no bank at kingdom level."""
    user.current_location_type = "kingdom"
    user.current_location_id = world["kingdom"].id
    service = BankService(db_session)
    assert await service.get_bank_info(user) is None
    assert (await service.deposit(user, 10))["message"] == "You cannot access a bank here."


@pytest.mark.asyncio
async def test_recent_transactions_newest_first(db_session, user):
    """Test the ledger lists the latest movement first."""
    service = BankService(db_session)
    await service.deposit(user, 100)
    await service.withdraw(user, 30)
    history = await service.get_recent_transactions(user)
    assert [tx["balance_after"] for tx in history] == [70, 100]
