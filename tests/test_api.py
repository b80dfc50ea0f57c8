import logging

import pytest
from fastapi.testclient import TestClient

from shop_service.app.main import app, get_notifier, get_payment_gateway, get_storage
from shop_service.app.models import Order

from tests.fakes import FakeStorage, RecordingNotifier

ORDER = {"productId": 5, "paymentDetails": {"card": "4242", "amount": 20}, "email": "c@d.com"}


@pytest.fixture
def client(tables, payments):
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Shop service is running"}


def test_create_user_logs_welcome(client, caplog):
    caplog.set_level(logging.INFO)

    response = client.post("/api/users", json={"email": "a@b.com", "name": "A"})

    assert response.status_code == 200
    assert isinstance(response.json()["id"], int)
    assert any("a@b.com" in record.getMessage() for record in caplog.records)


def test_create_order(client, seed_inventory, inventory_quantity, db_session):
    seed_inventory(5, 3)
    notifier = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: notifier

    response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 200
    order = db_session.get(Order, response.json()["id"])
    assert order.product_id == 5
    assert order.email == "c@d.com"
    assert inventory_quantity(5) == 2
    assert notifier.sent == [("c@d.com", "order_confirmation")]


def test_out_of_stock(client, seed_inventory, payments):
    seed_inventory(5, 0)

    response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 500
    assert response.json() == {"error": "Product out of stock"}
    assert payments.charges == []


def test_unknown_product_is_out_of_stock(client):
    response = client.post("/api/orders", json=dict(ORDER, productId=404))

    assert response.status_code == 500
    assert response.json() == {"error": "Product out of stock"}


def test_payment_failed_leaves_inventory(client, seed_inventory, inventory_quantity, payments):
    seed_inventory(5, 3)
    payments.approve = False

    response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 500
    assert response.json() == {"error": "Payment failed"}
    assert inventory_quantity(5) == 3


def test_same_order_twice_is_two_orders(client, seed_inventory, inventory_quantity):
    seed_inventory(5, 3)

    first = client.post("/api/orders", json=ORDER)
    second = client.post("/api/orders", json=ORDER)

    assert first.status_code == second.status_code == 200
    assert first.json()["id"] != second.json()["id"]
    assert inventory_quantity(5) == 1


def test_idempotency_key(client, seed_inventory, inventory_quantity, payments):
    seed_inventory(5, 3)
    body = dict(ORDER, idempotencyKey="checkout-1")

    first = client.post("/api/orders", json=body)
    second = client.post("/api/orders", json=body)

    assert first.json() == second.json()
    assert inventory_quantity(5) == 2
    assert len(payments.charges) == 1


def test_storage_error_message_is_returned(client):
    storage = FakeStorage()
    storage.fail_on.add("insert_user")
    app.dependency_overrides[get_storage] = lambda: storage

    response = client.post("/api/users", json={"email": "a@b.com"})

    assert response.status_code == 500
    assert response.json() == {"error": "insert_user failed"}


def test_unexpected_error_is_500(client):
    class BrokenStorage(FakeStorage):
        def insert_user(self, data):
            raise KeyError("boom")

    app.dependency_overrides[get_storage] = lambda: BrokenStorage()

    response = client.post("/api/users", json={"email": "a@b.com"})

    assert response.status_code == 500
    assert response.json() == {"error": "'boom'"}


def test_user_fields_are_unconstrained(client):
    response = client.post("/api/users", json={"email": "a@b.com", "name": 42})

    assert response.status_code == 200
    assert isinstance(response.json()["id"], int)


@pytest.mark.parametrize("body", [
    {"email": "c@d.com"},
    {"productId": "abc", "paymentDetails": "card", "email": "c@d.com"},
])
def test_unparseable_order_is_500_with_error(client, body, payments):
    response = client.post("/api/orders", json=body)

    assert response.status_code == 500
    assert set(response.json()) == {"error"}
    assert "productId" in response.json()["error"]
    assert payments.charges == []
