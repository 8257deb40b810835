"""Integration tests for the Ordering API via TestClient."""

import threading

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import admin_router, cart_router, order_router, product_router, register_error_handlers
from ordering.catalogue.product import Product
from ordering.domain import ordering
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

ADDRESS = {
    "full_name": "Asha Rao",
    "address": "12 Hill Cart Road",
    "city": "Siliguri",
    "state": "West Bengal",
    "pincode": "734001",
    "phone": "9876543210",
}


@pytest.fixture()
def client(order_service):
    app = FastAPI()
    app.include_router(product_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    register_error_handlers(app)
    app.state.order_service = order_service
    return TestClient(app)


def _register_product(client, **overrides):
    body = {"name": "Darjeeling Tea", "price": 100.0, "stock": 5}
    body.update(overrides)
    response = client.post("/products", json=body)
    assert response.status_code == 201
    return response.json()["product_id"]


def _checkout(client, customer_id="cust-api-001", quantity=2, **overrides):
    product_id = _register_product(client)
    client.post(f"/carts/{customer_id}/items", json={"product_id": product_id, "quantity": quantity})
    body = {"customer_id": customer_id, "shipping_address": ADDRESS}
    body.update(overrides)
    return client.post("/orders", json=body), product_id


class TestProductAPI:
    def test_register_and_get(self, client):
        product_id = _register_product(client, stock=3)
        response = client.get(f"/products/{product_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["stock"] == 3
        assert data["stock_status"] == "low-stock"
        assert data["is_available"] is True

    def test_unknown_product_is_404(self, client):
        response = client.get("/products/prod-404")
        assert response.status_code == 404
        assert response.json() == {"error": {"product_id": ["Product prod-404 not found"]}}

    def test_adjust_stock(self, client):
        product_id = _register_product(client, stock=3)
        response = client.post(f"/products/{product_id}/stock", json={"delta": 20})
        assert response.json()["stock"] == 23
        assert response.json()["stock_status"] == "in-stock"


class TestCartAPI:
    def test_add_update_remove(self, client):
        product_id = _register_product(client)
        client.post("/carts/cust-1/items", json={"product_id": product_id, "quantity": 2})
        assert client.get("/carts/cust-1").json()["total_items"] == 2

        client.put(f"/carts/cust-1/items/{product_id}", json={"quantity": 5})
        assert client.get("/carts/cust-1").json()["items"] == [{"product_id": product_id, "quantity": 5}]

        client.delete(f"/carts/cust-1/items/{product_id}")
        assert client.get("/carts/cust-1").json()["items"] == []

    def test_empty_cart_for_new_customer(self, client):
        assert client.get("/carts/nobody").json() == {"customer_id": "nobody", "items": [], "total_items": 0}


class TestCreateOrderAPI:
    def test_returns_201_with_priced_order(self, client):
        response, product_id = _checkout(client)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["pricing"] == {"subtotal": 200.0, "shipping": 50.0, "tax": 10.0, "discount": 0.0, "total": 260.0}
        assert data["payment"]["method"] == "cod"
        assert data["is_cancellable"] is True
        assert data["tracking"][0]["message"] == "Order placed successfully"
        assert current_domain.repository_for(Product).get(product_id).stock == 3

    def test_empty_cart_is_400(self, client):
        response = client.post("/orders", json={"customer_id": "cust-empty", "shipping_address": ADDRESS})
        assert response.status_code == 400
        assert "cart" in response.json()["error"]

    def test_insufficient_stock_is_400_naming_product(self, client):
        response, _ = _checkout(client, quantity=9)
        assert response.status_code == 400
        assert "Insufficient stock for Darjeeling Tea" in response.json()["error"]["stock"][0]

    def test_invalid_payment_method_is_422(self, client):
        response, _ = _checkout(client, payment_method="barter")
        assert response.status_code == 422

    def test_concurrent_checkouts_sell_last_unit_once(self, client):
        product_id = _register_product(client, stock=1)
        customers = [f"cust-race-{n}" for n in range(3)]
        for customer_id in customers:
            client.post(f"/carts/{customer_id}/items", json={"product_id": product_id, "quantity": 1})

        statuses = []
        statuses_lock = threading.Lock()
        start = threading.Barrier(len(customers))

        def checkout(customer_id):
            with ordering.domain_context():
                start.wait()
                response = client.post("/orders", json={"customer_id": customer_id, "shipping_address": ADDRESS})
            with statuses_lock:
                statuses.append(response.status_code)

        threads = [threading.Thread(target=checkout, args=(c,)) for c in customers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(statuses) == [201, 400, 400]
        assert client.get(f"/products/{product_id}").json()["stock"] == 0


class TestOrderQueriesAPI:
    def test_get_and_list(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]

        assert client.get(f"/orders/{reference}").json()["reference"] == reference
        listing = client.get("/orders", params={"customer_id": "cust-api-001"}).json()
        assert [o["reference"] for o in listing["orders"]] == [reference]
        assert listing["pagination"]["total_orders"] == 1

    def test_other_customers_order_is_404(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]
        response = client.get(f"/orders/{reference}", params={"customer_id": "someone-else"})
        assert response.status_code == 404
        assert response.json() == {"error": {"order": ["Order not found"]}}

    def test_unknown_reference_is_404(self, client):
        response = client.get("/orders/ORD000000AAAAAA")
        assert response.status_code == 404
        assert response.json() == {"error": {"order": ["Order not found"]}}

    def test_track(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]
        response = client.get(f"/orders/{reference}/track", params={"customer_id": "cust-api-001"})
        assert response.status_code == 200
        assert response.json()["timeline"][0]["completed"] is True


class TestLifecycleAPI:
    def test_customer_cancel_restores_stock(self, client):
        created, product_id = _checkout(client)
        reference = created.json()["reference"]

        response = client.put(
            f"/orders/{reference}/cancel",
            json={"customer_id": "cust-api-001", "reason": "Found it cheaper"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancel_reason"] == "Found it cheaper"
        assert current_domain.repository_for(Product).get(product_id).stock == 5

    def test_admin_status_flow(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]

        for status in ("confirmed", "preparing", "shipped", "delivered"):
            response = client.put(f"/admin/orders/{reference}/status", json={"status": status})
            assert response.status_code == 200

        data = response.json()
        assert data["status"] == "delivered"
        assert data["delivered_at"] is not None
        assert data["is_returnable"] is True

    def test_illegal_transition_is_400(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]
        response = client.put(f"/admin/orders/{reference}/status", json={"status": "delivered"})
        assert response.status_code == 400
        assert response.json()["error"]["status"] == ["Cannot change status from pending to delivered"]

    def test_customer_cannot_cancel_shipped_order(self, client):
        created, _ = _checkout(client)
        reference = created.json()["reference"]
        for status in ("confirmed", "preparing", "shipped"):
            client.put(f"/admin/orders/{reference}/status", json={"status": status})

        response = client.put(f"/orders/{reference}/cancel", json={"customer_id": "cust-api-001", "reason": "Late"})

        assert response.status_code == 400
        assert client.get(f"/orders/{reference}").json()["status"] == "shipped"

    def test_admin_list_filter(self, client):
        first, _ = _checkout(client, customer_id="cust-a")
        _checkout(client, customer_id="cust-b")
        client.put(f"/admin/orders/{first.json()['reference']}/status", json={"status": "confirmed"})

        listing = client.get("/admin/orders", params={"status": "confirmed"}).json()
        assert [o["reference"] for o in listing["orders"]] == [first.json()["reference"]]

    def test_notes_and_payment(self, client):
        created, _ = _checkout(client, payment_method="card")
        reference = created.json()["reference"]

        notes = client.put(f"/admin/orders/{reference}/notes", json={"admin_notes": "VIP"})
        assert notes.json()["admin_notes"] == "VIP"

        paid = client.put(
            f"/admin/orders/{reference}/payment",
            json={"payment_status": "completed", "transaction_id": "txn-123"},
        )
        assert paid.json()["payment"]["status"] == "completed"
        assert paid.json()["payment"]["transaction_id"] == "txn-123"


class TestErrorMapping:
    def test_framework_not_found_is_404(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/missing")
        def missing():
            raise ObjectNotFoundError("Missing record")

        response = TestClient(app).get("/missing")
        assert response.status_code == 404
        assert "error" in response.json()
