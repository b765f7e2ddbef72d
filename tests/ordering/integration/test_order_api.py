"""Integration tests for the order endpoints via TestClient."""

import pytest

MEMBER = {"X-Account-Id": "cust-api-001"}
ADDRESS = {"street": "1 Market St", "city": "San Francisco", "state": "CA", "postal_code": "94105", "country": "US"}


@pytest.fixture()
def order_id(client, products, gateway):
    client.put("/tax-rates/CA", json={"rate": 8.0})
    client.post("/carts/me/items", json={"product_id": "prod-001", "quantity": 2}, headers=MEMBER)
    response = client.post("/checkout/orders", json={"shipping_address": ADDRESS}, headers=MEMBER)
    assert response.status_code == 201
    return response.json()["order_id"]


class TestReadOrders:
    def test_get_order(self, client, order_id):
        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["payment_status"] == "pending"
        assert data["customer_id"] == "cust-api-001"
        assert data["total_amount"] == "27.00"
        assert data["items"][0]["tax_amount"] == "2.00"
        assert data["items"][0]["category"] == "home"
        assert data["shipping_address"]["state"] == "CA"

    def test_unknown_order(self, client):
        assert client.get("/orders/missing").status_code == 404

    def test_list_customer_orders(self, client, order_id):
        response = client.get("/orders", params={"customer_id": "cust-api-001"})

        assert [o["order_id"] for o in response.json()] == [order_id]
        assert client.get("/orders", params={"customer_id": "someone-else"}).json() == []


class TestLifecycle:
    def test_fulfillment_flow(self, client, order_id):
        for action in ("processing", "ship", "deliver"):
            response = client.put(f"/orders/{order_id}/{action}")
            assert response.status_code == 200
            assert response.json() == {"status": "ok"}

        assert client.get(f"/orders/{order_id}").json()["status"] == "delivered"

    def test_illegal_transition(self, client, order_id):
        response = client.put(f"/orders/{order_id}/deliver")

        assert response.status_code == 409
        assert client.get(f"/orders/{order_id}").json()["status"] == "pending"

    def test_cancel(self, client, order_id):
        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Changed my mind"})

        assert response.status_code == 200
        data = client.get(f"/orders/{order_id}").json()
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Changed my mind"
        assert data["cancelled_by"] == "Customer"

    def test_cancel_with_unknown_actor(self, client, order_id):
        response = client.put(f"/orders/{order_id}/cancel", json={"cancelled_by": "Robot"})
        assert response.status_code == 400

    def test_cannot_cancel_delivered_order(self, client, order_id):
        for action in ("processing", "ship", "deliver"):
            client.put(f"/orders/{order_id}/{action}")

        assert client.put(f"/orders/{order_id}/cancel", json={}).status_code == 409


class TestGuestOrders:
    @pytest.fixture()
    def guest_order_id(self, client, products, gateway):
        client.put("/tax-rates/CA", json={"rate": 8.0})
        response = client.post(
            "/checkout/orders",
            json={
                "shipping_address": ADDRESS,
                "items": [{"product_id": "prod-001", "quantity": 1}],
                "guest_info": {"email": " Gina@Example.com ", "first_name": "Gina", "last_name": "Guest"},
            },
            headers={"X-Session-Id": "6f1c2a9e-4b7d-4c1e-9a3f-2d5e8b7c1a40"},
        )
        assert response.status_code == 201
        return response.json()["order_id"]

    def test_listing_includes_unclaimed_guest_orders(self, client, guest_order_id):
        response = client.get("/orders", params={"customer_id": "cust-api-001", "email": "gina@example.com"})

        assert [o["order_id"] for o in response.json()] == [guest_order_id]
        assert response.json()[0]["guest_email"] == "gina@example.com"

    def test_associate_guest_orders(self, client, guest_order_id):
        response = client.post("/orders/associate-guest", json={"email": "GINA@example.com"}, headers=MEMBER)

        assert response.status_code == 200
        assert response.json() == {"associated": 1}
        data = client.get(f"/orders/{guest_order_id}").json()
        assert data["customer_id"] == "cust-api-001"
        assert data["guest_email"] is None

    def test_associate_requires_account(self, client, guest_order_id):
        assert client.post("/orders/associate-guest", json={"email": "gina@example.com"}).status_code == 401
