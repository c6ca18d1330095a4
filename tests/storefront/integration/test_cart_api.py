"""Integration tests for Cart API endpoints via TestClient."""

import pytest


def _create_cart(client):
    response = client.post("/carts", json={"session_id": "sess-001"})
    assert response.status_code == 201
    return response.json()["cart_id"]


def _add_roses(client, cart_id):
    response = client.post(
        f"/carts/{cart_id}/items",
        json={"product_id": "rose-bouquet", "name": "Classic Rose Bouquet", "price": 49.99},
    )
    assert response.status_code == 200
    return response.json()


class TestCartEndpoints:
    def test_add_items_merges_lines(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        body = _add_roses(client, cart_id)
        assert body["item_count"] == 2
        assert len(body["items"]) == 1
        assert body["subtotal"] == 99.98

    def test_update_quantity(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        response = client.put(f"/carts/{cart_id}/items/rose-bouquet/quantity", json={"quantity": 3})
        assert response.json()["item_count"] == 3

    def test_gift_message(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        response = client.put(f"/carts/{cart_id}/items/rose-bouquet/gift-message", json={"gift_message": "Love you"})
        assert response.json()["items"][0]["gift_message"] == "Love you"

    def test_gift_message_too_long(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        response = client.put(f"/carts/{cart_id}/items/rose-bouquet/gift-message", json={"gift_message": "x" * 201})
        assert response.status_code == 400

    def test_remove_item(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        response = client.delete(f"/carts/{cart_id}/items/rose-bouquet")
        assert response.json()["items"] == []

    def test_delivery(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        response = client.put(
            f"/carts/{cart_id}/delivery",
            json={"delivery_date": "2026-10-20", "delivery_type": "scheduled", "delivery_fee": 5.99},
        )
        body = response.json()
        assert body["delivery_fee"] == 5.99
        assert body["total"] == 55.98

    @pytest.mark.parametrize(
        "delivery",
        [{"delivery_type": "teleport", "delivery_fee": 1}, {"delivery_date": "soon", "delivery_fee": 1}],
    )
    def test_invalid_delivery(self, client, delivery):
        cart_id = _create_cart(client)
        assert client.put(f"/carts/{cart_id}/delivery", json=delivery).status_code == 400

    def test_unknown_coupon(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        assert client.put(f"/carts/{cart_id}/coupon", json={"coupon_code": "NOPE"}).status_code == 400

    def test_clear(self, client):
        cart_id = _create_cart(client)
        _add_roses(client, cart_id)
        assert client.delete(f"/carts/{cart_id}").json() == {"status": "cleared"}
        assert client.get(f"/carts/{cart_id}").json()["items"] == []

    def test_unknown_cart(self, client):
        assert client.get("/carts/does-not-exist").status_code == 404
