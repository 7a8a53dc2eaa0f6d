import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from storefront.core.errors import PersistenceError
from storefront.models import Order, OrderItem
from storefront.store import DataStore

from tests.conftest import ADMIN_HEADERS, SESSION_HEADERS, VALID_CONTACT


async def add_to_cart(client, menu_item, quantity=1, headers=SESSION_HEADERS, **extra):
    return await client.post(
        "/api/cart/items",
        json={"menu_item_id": str(menu_item.id), "quantity": quantity, **extra},
        headers=headers,
    )


# =============================================================================
# PUBLIC
# =============================================================================

async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"


async def test_menu_lists_available_items_and_refreshes_after_toggle(client, menu_items):
    response = await client.get("/api/menu")
    assert [i["name"] for i in response.json()] == ["Margherita", "Kebab Pizza"]

    toggle = await client.post(f"/api/admin/menu-items/{menu_items[0].id}/toggle", headers=ADMIN_HEADERS)
    assert toggle.status_code == 200
    assert toggle.json()["is_available"] is False

    response = await client.get("/api/menu")
    assert [i["name"] for i in response.json()] == ["Kebab Pizza"]


async def test_settings_missing_then_saved(client):
    assert (await client.get("/api/settings")).status_code == 404

    saved = await client.put("/api/admin/settings", json={"name": "Pizzeria Napoli"}, headers=ADMIN_HEADERS)
    assert saved.status_code == 200

    response = await client.get("/api/settings")
    assert response.status_code == 200
    assert response.json()["name"] == "Pizzeria Napoli"


async def test_availability_closed_without_hours(client):
    response = await client.get("/api/availability")
    assert response.status_code == 200
    body = response.json()
    assert body["is_open"] is False
    assert body["today_hours"] is None
    assert 0 <= body["day_of_week"] <= 6


# =============================================================================
# CART
# =============================================================================

async def test_cart_requires_session_header(client):
    response = await client.get("/api/cart")
    assert response.status_code == 422


async def test_cart_add_merge_update_remove(client, menu_items):
    margherita, kebab = menu_items

    await add_to_cart(client, margherita, 1)
    response = await add_to_cart(client, margherita, 2, special_requests="No basil")
    body = response.json()
    assert len(body["lines"]) == 1
    assert body["lines"][0]["quantity"] == 3
    assert body["lines"][0]["special_requests"] == "No basil"

    await add_to_cart(client, kebab, 1)
    response = await client.patch(
        f"/api/cart/items/{margherita.id}", json={"quantity": 1}, headers=SESSION_HEADERS
    )
    assert response.json()["total_items"] == 2
    assert Decimal(response.json()["total_amount"]) == Decimal("25.40")

    response = await client.patch(
        f"/api/cart/items/{kebab.id}", json={"quantity": 0}, headers=SESSION_HEADERS
    )
    assert [line["name"] for line in response.json()["lines"]] == ["Margherita"]

    response = await client.delete(f"/api/cart/items/{margherita.id}", headers=SESSION_HEADERS)
    assert response.json()["lines"] == []


async def test_carts_are_per_session(client, menu_items):
    await add_to_cart(client, menu_items[0])
    other = await client.get("/api/cart", headers={"X-Session-Id": "session-0002"})
    assert other.json()["lines"] == []


async def test_cannot_add_unavailable_or_unknown_item(client, store, menu_items):
    await store.update(type(menu_items[0]), menu_items[0].id, {"is_available": False})
    response = await add_to_cart(client, menu_items[0])
    assert response.status_code == 409
    assert response.json()["success"] is False

    response = await client.post(
        "/api/cart/items", json={"menu_item_id": str(uuid.uuid4())}, headers=SESSION_HEADERS
    )
    assert response.status_code == 404


# =============================================================================
# CHECKOUT
# =============================================================================

async def test_checkout_places_order(client, store, menu_items):
    await add_to_cart(client, menu_items[0], 2)
    await add_to_cart(client, menu_items[1], 1)

    response = await client.post("/api/checkout", json=VALID_CONTACT, headers=SESSION_HEADERS)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "pending"
    assert Decimal(body["total_amount"]) == Decimal("36.90")

    cart = await client.get("/api/cart", headers=SESSION_HEADERS)
    assert cart.json()["lines"] == []

    confirmation = await client.get(f"/api/orders/{body['order_id']}")
    assert confirmation.status_code == 200
    assert confirmation.json()["reference"] == body["reference"]
    assert len(confirmation.json()["items"]) == 2


async def test_checkout_with_empty_cart(client, store):
    response = await client.post("/api/checkout", json=VALID_CONTACT, headers=SESSION_HEADERS)
    assert response.status_code == 400
    assert await store.fetch_all(Order) == []


async def test_checkout_field_errors(client, store, menu_items):
    await add_to_cart(client, menu_items[0])
    response = await client.post(
        "/api/checkout",
        json={**VALID_CONTACT, "customer_phone": "123", "customer_email": "nope"},
        headers=SESSION_HEADERS,
    )
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert errors == {
        "customer_phone": "Phone number is required",
        "customer_email": "Invalid email address",
    }
    assert await store.fetch_all(Order) == []
    assert await store.fetch_all(OrderItem) == []


async def test_unknown_order(client):
    response = await client.get(f"/api/orders/{uuid.uuid4()}")
    assert response.status_code == 404


# =============================================================================
# ADMIN
# =============================================================================

async def test_admin_requires_token(client):
    assert (await client.get("/api/admin/orders")).status_code == 401
    response = await client.get("/api/admin/orders", headers={"X-Admin-Token": "wrong"})
    assert response.status_code == 401


async def test_admin_order_actions(client, menu_items):
    await add_to_cart(client, menu_items[0])
    placed = (await client.post("/api/checkout", json=VALID_CONTACT, headers=SESSION_HEADERS)).json()
    order_id = placed["order_id"]

    listing = (await client.get("/api/admin/orders", headers=ADMIN_HEADERS)).json()
    assert listing["total"] == 1
    assert listing["orders"][0]["available_actions"] == ["accept", "reject"]

    response = await client.post(f"/api/admin/orders/{order_id}/actions/mark_ready", headers=ADMIN_HEADERS)
    assert response.status_code == 409

    response = await client.post(f"/api/admin/orders/{order_id}/actions/accept", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = await client.patch(
        f"/api/admin/orders/{order_id}/status", json={"status": "completed"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 409

    response = await client.patch(
        f"/api/admin/orders/{order_id}/status", json={"status": "preparing"}, headers=ADMIN_HEADERS
    )
    assert response.json()["status"] == "preparing"

    active = (await client.get("/api/admin/orders/active", headers=ADMIN_HEADERS)).json()
    assert active["total"] == 1

    filtered = (await client.get("/api/admin/orders?status=pending", headers=ADMIN_HEADERS)).json()
    assert filtered["total"] == 0


async def test_failed_status_write_returns_500(client, menu_items, monkeypatch):
    await add_to_cart(client, menu_items[0])
    placed = (await client.post("/api/checkout", json=VALID_CONTACT, headers=SESSION_HEADERS)).json()
    order_id = placed["order_id"]

    async def failing_update(self, model, record_id, values):
        raise PersistenceError("Could not update orders")

    monkeypatch.setattr(DataStore, "update", failing_update)
    response = await client.post(f"/api/admin/orders/{order_id}/actions/accept", headers=ADMIN_HEADERS)
    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"] == "Persistence failure"

    monkeypatch.undo()
    order = (await client.get(f"/api/orders/{order_id}")).json()
    assert order["status"] == "pending"


async def test_admin_category_crud(client):
    created = await client.post(
        "/api/admin/categories", json={"name": "Salaatit", "display_order": 4}, headers=ADMIN_HEADERS
    )
    assert created.status_code == 201
    category_id = created.json()["id"]

    updated = await client.patch(
        f"/api/admin/categories/{category_id}", json={"name": "Salads"}, headers=ADMIN_HEADERS
    )
    assert updated.json()["name"] == "Salads"
    assert updated.json()["display_order"] == 4

    public = (await client.get("/api/menu/categories")).json()
    assert [c["name"] for c in public] == ["Salads"]

    deleted = await client.delete(f"/api/admin/categories/{category_id}", headers=ADMIN_HEADERS)
    assert deleted.status_code == 204
    assert (await client.get("/api/menu/categories")).json() == []


async def test_admin_hours_save_and_availability(client):
    days = [
        {"day_of_week": day, "open_time": "00:00", "close_time": "23:59", "is_closed": False}
        for day in range(7)
    ]
    response = await client.put("/api/admin/hours", json={"days": days}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert len(response.json()) == 7

    availability = (await client.get("/api/availability")).json()
    assert availability["is_open"] is True

    response = await client.put(
        "/api/admin/hours", json={"days": [days[0], days[0]]}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 422


# =============================================================================
# ADMIN LIVE FEED
# =============================================================================

def test_feed_rejects_missing_token(app):
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/admin/orders"):
            pass


def test_feed_sends_snapshot_on_connect(app):
    client = TestClient(app)
    with client.websocket_connect("/ws/admin/orders?token=test-admin-token") as websocket:
        message = websocket.receive_json()
    assert message["type"] == "orders"
    assert message["alert"] is False
    assert message["orders"] == []
