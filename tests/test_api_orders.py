"""
HTTP API tests on the in-memory backend.
"""

import pytest
from fastapi.testclient import TestClient

from menu_orders.main import create_app
from menu_orders.services.ledger import OrderLedger
from menu_orders.store import CollectionOrderStore, MemoryKeyValueStore


ORDER_IN = {
    "customer": {"name": "Anna", "phone": "+7111"},
    "items": [{"name": "Juice", "price": 12, "quantity": 2}],
}


@pytest.fixture
def client(clock):
    ledger = OrderLedger(CollectionOrderStore(MemoryKeyValueStore()), clock=clock)
    with TestClient(create_app(ledger)) as client:
        yield client


def _create(client, restaurant_id="rest-1", **overrides):
    response = client.post(f"/restaurants/{restaurant_id}/orders", json={**ORDER_IN, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_order_statuses(client):
    statuses = {s["status"]: s for s in client.get("/order-statuses").json()}
    assert statuses["pending"]["next"] == ["accepted", "cancelled"]
    assert statuses["delivered"]["terminal"] is True


def test_create_and_get(client):
    order = _create(client)
    assert order["status"] == "pending"
    assert order["total_amount"] == 24
    assert order["items"][0]["price"] == 12
    assert order["delivery_method"] == "pickup"

    response = client.get(f"/orders/{order['id']}")
    assert response.status_code == 200
    assert response.json() == order


def test_validation_error(client):
    response = client.post("/restaurants/rest-1/orders", json={**ORDER_IN, "items": []})
    assert response.status_code == 400
    assert response.json()["detail"] == ["Order must contain at least one item"]


def test_unknown_fields_rejected(client):
    response = client.post("/restaurants/rest-1/orders", json={**ORDER_IN, "discount": 5})
    assert response.status_code == 422


def test_not_found(client):
    response = client.get("/orders/missing")
    assert response.status_code == 404
    assert response.json() == {"detail": "Order not found"}


def test_status_flow(client):
    order = _create(client)
    order_id = order["id"]

    response = client.patch(f"/orders/{order_id}/status", json={"status": "preparing"})
    assert response.status_code == 409
    assert response.json()["current"] == "pending"
    assert response.json()["requested"] == "preparing"

    response = client.patch(f"/orders/{order_id}/accept", json={"estimated_minutes": 20})
    assert response.status_code == 200
    assert response.json()["estimated_ready_at"] is not None

    response = client.patch(f"/orders/{order_id}/status", json={"status": "preparing"})
    assert response.json()["status"] == "preparing"

    response = client.patch(f"/orders/{order_id}/cancel", json={"reason": "too late"})
    assert response.status_code == 409


def test_cancel_and_note(client):
    order_id = _create(client)["id"]

    response = client.patch(f"/orders/{order_id}/cancel", json={"reason": " "})
    assert response.status_code == 400

    response = client.patch(f"/orders/{order_id}/cancel", json={"reason": "duplicate"})
    assert response.json()["status"] == "cancelled"

    response = client.post(f"/orders/{order_id}/notes", json={"note": "refund issued"})
    assert response.status_code == 200
    assert response.json()["notes"][0]["text"] == "refund issued"


def test_list_filter_and_search(client):
    anna = _create(client)
    boris = _create(client, customer={"name": "Boris", "phone": "+7222"})
    _create(client, restaurant_id="rest-2")
    client.patch(f"/orders/{boris['id']}/accept")

    assert [o["id"] for o in client.get("/restaurants/rest-1/orders").json()] == [anna["id"], boris["id"]]
    assert [o["id"] for o in client.get("/restaurants/rest-1/orders?status=accepted").json()] == [boris["id"]]
    assert [o["id"] for o in client.get("/restaurants/rest-1/orders?q=anna").json()] == [anna["id"]]
    assert client.get("/restaurants/rest-1/orders?status=lost").status_code == 422


def test_list_date_range_and_paging(client, clock):
    first = _create(client)
    clock.advance(days=1)
    second = _create(client)
    clock.advance(days=1)
    third = _create(client)

    def ids(**params):
        response = client.get("/restaurants/rest-1/orders", params=params)
        assert response.status_code == 200, response.text
        return [o["id"] for o in response.json()]

    assert ids(date_from="2025-06-16T00:00:00Z") == [second["id"], third["id"]]
    assert ids(date_to="2025-06-16T23:59:59Z") == [first["id"], second["id"]]
    assert ids(limit=1, offset=1) == [second["id"]]
    assert ids(offset=3) == []

    assert client.get("/restaurants/rest-1/orders", params={"limit": 0}).status_code == 422
    response = client.get(
        "/restaurants/rest-1/orders",
        params={"date_from": "2025-06-17T00:00:00Z", "date_to": "2025-06-16T00:00:00Z"},
    )
    assert response.status_code == 400


def test_customer_orders(client):
    anna = _create(client)
    _create(client, customer={"name": "Boris", "phone": "+7222"})

    response = client.get("/restaurants/rest-1/customers/%2B7111/orders")
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [anna["id"]]
    assert client.get("/restaurants/rest-2/customers/%2B7111/orders").json() == []


def test_revenue_by_period(client, clock):
    _create(client)
    clock.advance(days=1)
    _create(client, items=[{"name": "Tea", "price": "3.50", "quantity": 1}])

    days = client.get("/restaurants/rest-1/order-stats/revenue").json()
    assert [(d["period_start"], d["revenue"]) for d in days] == [("2025-06-15", 24), ("2025-06-16", 3.5)]

    months = client.get("/restaurants/rest-1/order-stats/revenue", params={"period": "month"}).json()
    assert months == [{
        "period": "month",
        "period_start": "2025-06-01",
        "count_orders": 2,
        "revenue": 27.5,
        "average_order_value": 13.75,
    }]

    assert client.get("/restaurants/rest-1/order-stats/revenue", params={"period": "year"}).status_code == 422


def test_unreadable_store_is_unavailable(clock):
    kv = MemoryKeyValueStore()
    ledger = OrderLedger(CollectionOrderStore(kv), clock=clock)

    with TestClient(create_app(ledger)) as client:
        order_id = _create(client)["id"]
        kv._data["orders"] = b"garbage"

        assert client.get(f"/orders/{order_id}").status_code == 503
        assert client.get("/restaurants/rest-1/orders").json() == []


def test_stats(client):
    _create(client)
    _create(client, customer={"name": "Boris", "phone": "+7222"})

    stats = client.get("/restaurants/rest-1/order-stats").json()
    assert stats["total_orders"] == 2
    assert stats["total_revenue"] == 48
    assert stats["average_order_value"] == 24
    assert stats["unique_customers"] == 2
    assert stats["orders_by_status"]["pending"] == 2
    assert stats["top_items"] == [{"name": "Juice", "quantity": 4, "revenue": 48}]


def test_delete_is_idempotent(client):
    order_id = _create(client)["id"]
    assert client.delete(f"/orders/{order_id}").status_code == 204
    assert client.delete(f"/orders/{order_id}").status_code == 204
    assert client.get(f"/orders/{order_id}").status_code == 404
