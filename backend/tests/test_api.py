import time

from fastapi.testclient import TestClient

import main
from conftest import run_until
from core.state import get_cart_store, get_simulator
from main import app
from utils import broadcast

DISH = {"id": "d1", "name": "Shakshuka", "price": 10.0}


def add(client, item=DISH, quantity=1, item_type="dish"):
    return client.post("/api/v1/cart/items", json={"item": item, "quantity": quantity, "item_type": item_type})


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


def test_cart_roundtrip(client):
    assert add(client, quantity=2).json()["quantity"] == 2
    line = add(client).json()
    assert line["key"] == "dish:d1"
    assert line["quantity"] == 3

    cart = client.get("/api/v1/cart").json()
    assert cart["item_count"] == 3
    assert len(cart["items"]) == 1
    assert client.get("/api/v1/cart/count").json() == {"item_count": 3}


def test_update_and_remove_line(client):
    add(client, quantity=2)
    res = client.patch("/api/v1/cart/items/dish:d1", json={"quantity": 5})
    assert res.json()["item_count"] == 5
    res = client.patch("/api/v1/cart/items/dish:d1", json={"quantity": 0})
    assert res.json()["items"] == []
    # removing again is not an error
    assert client.delete("/api/v1/cart/items/dish:d1").status_code == 200


def test_update_unknown_line(client):
    assert client.patch("/api/v1/cart/items/dish:zzz", json={"quantity": 2}).status_code == 404


def test_add_rejects_zero_quantity(client):
    assert add(client, quantity=0).status_code == 422


def test_cart_totals(client):
    add(client, quantity=3)
    totals = client.get("/api/v1/cart/totals", params={"promo_code": "WELCOME15"}).json()
    assert totals["subtotal"] == 30.0
    assert totals["discount"] == 4.5
    assert client.get("/api/v1/cart/totals", params={"promo_code": "NOPE"}).status_code == 400


def test_checkout_empty_cart(client):
    res = client.post("/api/v1/checkout", json={})
    assert res.status_code == 400


def test_checkout_creates_order_and_clears_cart(client, cart):
    add(client, quantity=2)
    res = client.post("/api/v1/checkout", json={"user": {"id": "u1", "name": "Dana"}})
    assert res.status_code == 200
    order = res.json()
    assert order["status"] == "confirmed"
    assert order["current_step"] == 0
    assert order["user"]["name"] == "Dana"
    assert cart.get_item_count() == 0

    active = client.get("/api/v1/orders/active").json()
    assert [o["id"] for o in active] == [order["id"]]
    assert client.get(f"/api/v1/orders/{order['id']}").json()["id"] == order["id"]


def test_tracking_and_eviction(client, simulator, clock):
    add(client)
    order_id = client.post("/api/v1/checkout", json={}).json()["id"]

    view = client.get(f"/api/v1/orders/{order_id}/tracking").json()
    assert view["status"] == "confirmed"
    assert view["show_map"] is False

    run_until(simulator, clock, 480 + 60)
    assert client.get(f"/api/v1/orders/{order_id}").status_code == 404
    assert client.get(f"/api/v1/orders/{order_id}/tracking").status_code == 404
    history = client.get("/api/v1/orders/history").json()
    assert history[0]["status"] == "delivered"


def test_reorder(client, cart):
    add(client, quantity=2)
    order_id = client.post("/api/v1/checkout", json={}).json()["id"]
    lines = client.post(f"/api/v1/orders/{order_id}/reorder").json()
    assert [(line["key"], line["quantity"]) for line in lines] == [("dish:d1", 2)]
    assert cart.get_item_count() == 2
    assert client.post("/api/v1/orders/ORD-NOPE/reorder").status_code == 404


def test_websocket_sends_active_orders(client):
    add(client)
    order_id = client.post("/api/v1/checkout", json={}).json()["id"]
    with client.websocket_connect("/api/v1/ws/orders") as ws:
        message = ws.receive_json()
    assert message["event"] == "active_orders"
    assert [o["id"] for o in message["data"]] == [order_id]


def test_checkout_with_bad_promo_keeps_cart(client, cart):
    add(client, quantity=2)
    res = client.post("/api/v1/checkout", json={"promo_code": "NOPE"})
    assert res.status_code == 400
    assert cart.get_item_count() == 2
    assert client.get("/api/v1/orders/active").json() == []


def test_websocket_streams_stage_changes(monkeypatch, cart, simulator, clock, filled_cart):
    # the lifespan bridges main.simulator, so point it at the manually ticked one
    monkeypatch.setattr(main, "simulator", simulator)
    app.dependency_overrides[get_cart_store] = lambda: cart
    app.dependency_overrides[get_simulator] = lambda: simulator
    try:
        with TestClient(app) as client:
            order = simulator.create_fake_order(filled_cart.items())
            with client.websocket_connect("/api/v1/ws/orders") as first, \
                    client.websocket_connect("/api/v1/ws/orders") as second:
                assert first.receive_json()["event"] == "active_orders"
                assert second.receive_json()["event"] == "active_orders"
                simulator.tick(clock.advance(30))
                updates = [first.receive_json(), second.receive_json()]
    finally:
        app.dependency_overrides.clear()

    for message in updates:
        assert message["event"] == "order_update"
        assert message["data"]["id"] == order.id
        assert message["data"]["status"] == "preparing"


def test_websocket_connection_released_on_close(client):
    with client.websocket_connect("/api/v1/ws/orders") as ws:
        ws.receive_json()
        assert len(broadcast.order_connections) == 1
    for _ in range(50):
        if not broadcast.order_connections:
            break
        time.sleep(0.01)
    assert broadcast.order_connections == []
