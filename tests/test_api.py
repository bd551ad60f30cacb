import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from dinein import main
from dinein.seed import seed_demo_menu
from dinein.services.realtime import MemoryChangeFeed
from dinein.services.store import MockDataStore


@pytest.fixture
def api_store() -> MockDataStore:
    store = MockDataStore(feed=MemoryChangeFeed())
    asyncio.run(seed_demo_menu(store))
    return store


@pytest.fixture
def client(api_store):
    app = main.create_app(store=api_store, feed=api_store.feed)
    with TestClient(app) as client:
        yield client


def _order(client, **overrides) -> dict:
    payload = {
        "table_number": 4,
        "items": [
            {"menu_item_id": "item-kebab", "quantity": 2},
            {"menu_item_id": "item-rice", "quantity": 1, "notes": "Extra saffron"},
        ],
    }
    payload.update(overrides)
    response = client.post("/api/orders", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    data = client.get("/health").json()
    assert data["status"] == "operational"
    assert data["data_store"] == "memory: healthy"


def test_menu_resolves_offers(client):
    data = client.get("/api/menu").json()

    kebab = next(item for item in data["items"] if item["id"] == "item-kebab")
    assert float(kebab["effective_price"]) == 4000
    assert kebab["discount_percent"] == 20
    assert kebab["primary_image"] == "/images/kebab.jpg"
    assert [c["name"] for c in data["categories"]] == ["Grills", "Sides", "Drinks"]
    assert data["settings"]["restaurant_name"] == "Dine-in Restaurant"

    drinks = client.get("/api/menu", params={"category_id": "cat-drinks"}).json()
    assert [item["id"] for item in drinks["items"]] == ["item-tea"]


def test_submit_order(client):
    data = _order(client)

    assert data["success"] is True
    assert float(data["total_amount"]) == 9500
    assert data["status"] == "pending"
    assert data["table_number"] == 4

    order = client.get(f"/api/orders/{data['order_id']}").json()
    notes = {line["menu_item_id"]: line["notes"] for line in order["items"]}
    assert notes == {"item-kebab": None, "item-rice": "Extra saffron"}


def test_duplicate_request_lines_are_merged(client):
    data = _order(client, items=[
        {"menu_item_id": "item-tea", "quantity": 1},
        {"menu_item_id": "item-tea", "quantity": 2},
    ])
    order = client.get(f"/api/orders/{data['order_id']}").json()
    assert [line["quantity"] for line in order["items"]] == [3]


def test_empty_cart_rejected(client, api_store):
    response = client.post("/api/orders", json={"items": [], "table_number": 1})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert asyncio.run(api_store.count("orders")) == 0


def test_unknown_or_inactive_item_rejected(client, api_store):
    response = client.post("/api/orders", json={"items": [{"menu_item_id": "ghost", "quantity": 1}]})
    assert response.status_code == 400

    asyncio.run(api_store.update("menu_items", {"id": "item-tea"}, {"is_active": False}))
    response = client.post("/api/orders", json={"items": [{"menu_item_id": "item-tea", "quantity": 1}]})
    assert response.status_code == 400


def test_schema_validation(client):
    response = client.post("/api/orders", json={"items": [{"menu_item_id": "item-tea", "quantity": 0}]})
    assert response.status_code == 422


def test_store_failure_is_503(client, api_store):
    api_store.fail_next("insert", "orders")
    response = client.post("/api/orders", json={"items": [{"menu_item_id": "item-tea", "quantity": 1}]})
    assert response.status_code == 503


def test_status_workflow(client):
    order_id = _order(client)["order_id"]

    actions = client.get(f"/api/orders/{order_id}/actions").json()
    assert actions["actions"] == ["preparing", "cancelled"]

    assert client.post(f"/api/orders/{order_id}/advance").json()["status"] == "preparing"
    assert client.post(f"/api/orders/{order_id}/actions/pending").status_code == 409

    response = client.put(f"/api/orders/{order_id}/status", json={"status": "pending"})
    assert response.json()["status"] == "pending"

    assert client.post(f"/api/orders/{order_id}/cancel").json()["status"] == "cancelled"
    assert client.get(f"/api/orders/{order_id}/actions").json()["actions"] == []
    assert client.put(f"/api/orders/{order_id}/status", json={"status": "ready"}).status_code == 409


def test_unknown_order_is_404(client):
    assert client.get("/api/orders/missing").status_code == 404
    assert client.post("/api/orders/missing/advance").status_code == 404


def test_order_list_filter(client):
    first = _order(client)["order_id"]
    _order(client, table_number=2)
    client.post(f"/api/orders/{first}/advance")

    data = client.get("/api/orders").json()
    assert data["total"] == 2

    pending = client.get("/api/orders", params={"status": "pending"}).json()
    assert pending["total"] == 1
    assert pending["orders"][0]["table_number"] == 2


def test_dashboard_and_report(client):
    _order(client)

    stats = client.get("/api/dashboard-data").json()
    assert stats["pending_orders"] == 1
    assert stats["items"] == 5

    report = client.get("/api/reports/sales").json()
    assert report["total_orders"] == 1
    assert report["top_dishes"][0]["name"] == "Lamb Kebab"


def test_report_export_is_queued(client, monkeypatch):
    queued = []

    def fake_delay(report):
        queued.append(report)
        return SimpleNamespace(id="task-1")

    monkeypatch.setattr(main, "export_sales_report", SimpleNamespace(delay=fake_delay))

    response = client.post("/api/reports/export")

    assert response.json() == {"queued": True, "task_id": "task-1"}
    assert queued[0]["total_orders"] == 0


def test_staff_feed_alerts_on_new_order(client):
    with client.websocket_connect("/ws/orders?notifications=granted") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "orders"
        assert snapshot["orders"] == []

        order_id = _order(client)["order_id"]

        board = ws.receive_json()
        assert board["type"] == "orders"
        assert [o["id"] for o in board["orders"]] == [order_id]
        assert board["counts"]["pending"] == 1

        alert = ws.receive_json()
        assert alert == {"type": "alert", "title": "New order!", "body": "Table 4 - 9,500 IQD", "tag": "new-order"}
        assert ws.receive_json() == {"type": "sound", "src": "/notification.mp3"}

        client.post(f"/api/orders/{order_id}/advance")
        update = ws.receive_json()
        assert update["orders"][0]["status"] == "preparing"


def test_staff_feed_without_permission_sends_no_alert(client):
    with client.websocket_connect("/ws/orders") as ws:
        ws.receive_json()
        first = _order(client)["order_id"]
        assert ws.receive_json()["type"] == "orders"

        # Next message is the board for the second order, not an alert
        second = _order(client, table_number=6)["order_id"]
        board = ws.receive_json()
        assert board["type"] == "orders"
        assert {o["id"] for o in board["orders"]} == {first, second}
