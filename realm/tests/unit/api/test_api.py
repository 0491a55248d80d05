"""
Tests for the realm HTTP API: envelopes, authentication and a few game flows.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from realm.api.dependencies import CurrentUser
from realm.api.responses import respond
from realm.models.bank import BankAccount
from realm.models.item import Item, LocationStockpile
from realm.models.user import User


@pytest.mark.asyncio
async def test_health(client):
    """Test the health endpoint answers without a player."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_missing_player_header_is_unauthorized(client):
    """Test game endpoints need the player header."""
    response = await client.get("/player")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Authentication required"
    assert body["error"]["type"] == "authentication_failed"


@pytest.mark.asyncio
async def test_unknown_player_is_unauthorized(client, player):
    """Test a header naming no player is refused."""
    response = await client.get("/player", headers={"X-Player-Id": "9999"})
    assert response.status_code == 401
    assert response.json()["message"] == "Player not found"


@pytest.mark.asyncio
async def test_player_profile(client, auth_headers, player):
    """Test the profile reports vitals and location."""
    response = await client.get("/player", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["username"] == player.username
    assert data["gold"] == 1000
    assert data["location"]["name"] == "Millbrook"
    assert data["is_traveling"] is False


@pytest.mark.asyncio
async def test_bank_deposit_is_committed(client, auth_headers, player, session_maker):
    """Test a successful action is committed with its request."""
    response = await client.post("/bank/deposit", json={"amount": 300}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body == {
        "success": True,
        "message": "Deposited 300 gold.",
        "data": {"new_balance": 300, "gold_on_hand": 700},
    }

    async with session_maker() as session:
        assert (await session.get(User, player.id)).gold == 700
        assert (await session.get(BankAccount, 1)).balance == 300

    info = (await client.get("/bank", headers=auth_headers)).json()["data"]
    assert info["balance"] == 300
    assert info["transactions"][0]["amount"] == 300


@pytest.mark.asyncio
async def test_rejected_action_answers_422(client, auth_headers):
    """Test a refused game action keeps the envelope and answers 422."""
    response = await client.post("/bank/withdraw", json={"amount": 50}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json() == {"success": False, "message": "Insufficient funds in your account.", "data": {}}


@pytest.mark.asyncio
async def test_malformed_body_is_a_validation_error(client, auth_headers):
    """Test unknown fields are rejected before reaching the game."""
    response = await client.post("/bank/deposit", json={"amount": 5, "note": "hi"}, headers=auth_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["message"] == "Invalid input provided"
    assert body["error"]["type"] == "validation_error"


@pytest.mark.asyncio
async def test_unknown_route_is_404(client):
    """Test unknown paths use the error envelope."""
    response = await client.get("/no-such-thing")
    assert response.status_code == 404
    assert response.json()["error"]["type"] == "resource_not_found"


@pytest.mark.asyncio
async def test_market_buy(client, auth_headers, player, world, db_session):
    """Test buying from the village market through the API."""
    wood = Item(name="Wood", type="resource", base_value=10)
    db_session.add(wood)
    await db_session.flush()
    db_session.add(
        LocationStockpile(location_type="village", location_id=world["village"].id, item_id=wood.id, quantity=50)
    )
    await db_session.commit()

    market = (await client.get("/market", headers=auth_headers)).json()["data"]
    assert [p["item_name"] for p in market["prices"]] == ["Wood"]

    response = await client.post("/market/buy", json={"item_id": wood.id, "quantity": 2}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Bought 2x Wood for 22 gold."
    assert response.json()["data"]["gold_remaining"] == 978


@pytest.mark.asyncio
async def test_training_through_the_api(client, auth_headers):
    """Test a one-shot training action answers with the skill result."""
    response = await client.post("/training/train", json={"exercise": "attack"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["skill"] == "attack"
    assert data["energy_remaining"] == 90


@pytest.mark.asyncio
async def test_action_queue_start_and_cancel(client, auth_headers):
    """Test a queue can be started, is listed, and cancelled."""
    response = await client.post(
        "/action-queue/start",
        json={"action_type": "train", "action_params": {"exercise": "strength"}, "total": 5},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["queue"]["status"] == "active"

    again = await client.post(
        "/action-queue/start", json={"action_type": "train", "action_params": {"exercise": "attack"}}, headers=auth_headers
    )
    assert again.status_code == 422
    assert again.json()["message"] == "You already have an active queue running."

    cancelled = await client.post("/action-queue/cancel", headers=auth_headers)
    assert cancelled.json()["data"]["queue"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_house_purchase_needs_a_title(client, auth_headers):
    """Test housing rules come back as rejected actions."""
    response = await client.post("/house/purchase", headers=auth_headers)
    assert response.status_code == 422
    assert "higher title" in response.json()["message"]


@pytest.mark.asyncio
async def test_unhandled_exception_returns_error_envelope(app):
    """Test an unexpected library error answers 500 in the standard envelope."""

    async def _broken():
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    app.add_api_route("/broken", _broken)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/broken")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"]["type"] == "database_error"


@pytest.mark.asyncio
async def test_rejected_action_rolls_back_the_request(app, client, auth_headers, player, db_session):
    """Test changes made before a game rule refuses the action are not saved."""
    async def _spend_then_refuse(current_user: CurrentUser):
        current_user.gold = 0
        return respond({"success": False, "message": "Changed my mind."})

    app.add_api_route("/spend-then-refuse", _spend_then_refuse, methods=["POST"])

    response = await client.post("/spend-then-refuse", headers=auth_headers)

    assert response.status_code == 422
    assert response.json() == {"success": False, "message": "Changed my mind.", "data": {}}
    await db_session.refresh(player)
    assert player.gold == 1000


@pytest.mark.asyncio
async def test_treasury_and_tax_rate_endpoints(client, auth_headers, world):
    """Test anyone may view a treasury but only office holders change the rate."""
    barony_id = world["barony"].id

    treasury = await client.get(f"/taxes/treasury/barony/{barony_id}", headers=auth_headers)
    assert treasury.status_code == 200
    assert treasury.json()["data"]["balance"] == 0
    assert "transactions" not in treasury.json()["data"]

    refused = await client.post(
        "/taxes/rate",
        json={"location_type": "barony", "location_id": barony_id, "tax_rate": 15},
        headers=auth_headers,
    )
    assert refused.status_code == 422
    assert refused.json()["message"] == "You do not have authority to set taxes here."

    history = await client.get("/taxes/history", headers=auth_headers)
    assert history.json()["data"] == {"taxes": []}


@pytest.mark.asyncio
async def test_garden_endpoints_need_a_house(client, auth_headers):
    """Test garden actions are rejected for a player without a house."""
    garden = await client.get("/house/garden", headers=auth_headers)
    assert garden.json()["data"] == {"garden": None}

    planted = await client.post("/house/garden/plant", json={"plot_slot": "planter_1"}, headers=auth_headers)
    assert planted.status_code == 422
    assert planted.json()["message"] == "You do not own a house."
