"""Integration tests for the gift card endpoints."""

from protean import current_domain

from storefront.giftcard.ledger import DeactivateGiftCard, IssueGiftCard, find_gift_card


def _issue(amount=20.0):
    return current_domain.process(
        IssueGiftCard(amount=amount, sender_name="Bea", sender_email="bea@example.com"), asynchronous=False
    )


class TestGiftCardCheckout:
    def test_checkout(self, client):
        response = client.post(
            "/gift-cards/checkout",
            json={"amount": 25, "sender_name": "Ada Bloom", "sender_email": "ada@example.com"},
        )
        assert response.status_code == 200
        assert response.json()["session_id"]

    def test_amount_out_of_range(self, client):
        response = client.post(
            "/gift-cards/checkout",
            json={"amount": 501, "sender_name": "Ada Bloom", "sender_email": "ada@example.com"},
        )
        assert response.status_code == 400


class TestValidate:
    def test_valid_card(self, client):
        code = _issue()
        response = client.post("/gift-cards/validate", json={"code": code.lower()})
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["code"] == code
        assert body["balance"] == 20.0

    def test_unknown_card(self, client):
        response = client.post("/gift-cards/validate", json={"code": "LB-NOPE-NOPE"})
        assert response.status_code == 404
        assert response.json() == {"error": "Gift card not found"}

    def test_inactive_card(self, client):
        code = _issue()
        current_domain.process(DeactivateGiftCard(gift_card_id=str(find_gift_card(code).id)), asynchronous=False)
        response = client.post("/gift-cards/validate", json={"code": code})
        assert response.status_code == 409


class TestRedeem:
    def test_clamped_redemption(self, client):
        code = _issue(20.0)
        response = client.post("/gift-cards/redeem", json={"code": code, "amount": 30})
        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "code": code,
            "requested": 30.0,
            "deducted": 20.0,
            "remaining_balance": 0.0,
            "insufficient_balance": True,
        }

    def test_strict_redemption_reports_shortfall(self, client):
        code = _issue(20.0)
        response = client.post("/gift-cards/redeem", json={"code": code, "amount": 30, "allow_partial": False})
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert body["deducted"] == 0.0
        assert body["remaining_balance"] == 20.0
        assert find_gift_card(code).current_balance == 20.0

    def test_non_positive_amount(self, client):
        code = _issue()
        response = client.post("/gift-cards/redeem", json={"code": code, "amount": 0})
        assert response.status_code == 422
