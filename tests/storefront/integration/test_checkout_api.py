"""Integration tests for POST /checkout via TestClient."""

from storefront.checkout.metadata import decode_metadata


def _cart_body(quantity=2):
    return {
        "version": 1,
        "items": [{"product_id": "rose-bouquet", "name": "Classic Rose Bouquet", "price": 49.99, "quantity": quantity}],
        "delivery_fee": 0.0,
    }


class TestCheckoutEndpoint:
    def test_inline_cart(self, client, gateway):
        response = client.post(
            "/checkout",
            json={"cart": _cart_body(), "billing_name": "Ada Bloom", "billing_email": "ada@example.com"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["session_id"].startswith("cs_fake_")
        assert body["url"].endswith(body["session_id"])

    def test_stored_cart(self, client, gateway):
        cart_id = client.post("/carts", json={"session_id": "sess-001"}).json()["cart_id"]
        client.post(f"/carts/{cart_id}/items", json={"product_id": "tulips", "name": "Tulips", "price": 25.0})

        response = client.post(
            "/checkout",
            json={"cart_id": cart_id, "billing_name": "Ada Bloom", "billing_email": "ada@example.com"},
        )
        assert response.status_code == 200
        request = gateway.calls_to("create_checkout_session")[0]["request"]
        assert decode_metadata(request.metadata).subtotal == 2500

    def test_cart_required(self, client):
        response = client.post("/checkout", json={"billing_name": "Ada", "billing_email": "ada@example.com"})
        assert response.status_code == 400

    def test_empty_cart(self, client):
        response = client.post(
            "/checkout",
            json={"cart": {"version": 1, "items": []}, "billing_name": "Ada", "billing_email": "ada@example.com"},
        )
        assert response.status_code == 400

    def test_invalid_email(self, client):
        response = client.post(
            "/checkout",
            json={"cart": _cart_body(), "billing_name": "Ada", "billing_email": "ada@"},
        )
        assert response.status_code == 400

    def test_processor_failure_hides_detail(self, client, gateway):
        gateway.configure(should_succeed=False, failure_reason="secret upstream detail")
        response = client.post(
            "/checkout",
            json={"cart": _cart_body(), "billing_name": "Ada", "billing_email": "ada@example.com"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong, please try again"}

    def test_address_beyond_order_limits_rejected_before_payment(self, client, gateway):
        response = client.post(
            "/checkout",
            json={
                "cart": _cart_body(),
                "billing_name": "Ada",
                "billing_email": "ada@example.com",
                "delivery_address": {
                    "line1": "1 Flower Lane",
                    "city": "London",
                    "postcode": "SW1A 1AA",
                    "country": "United Kingdom",
                },
            },
        )
        assert response.status_code == 422
        assert gateway.calls == []
