"""Integration tests for POST /webhooks/payment."""

import json

from protean import current_domain

from storefront.checkout.metadata import (
    ContactPayload,
    GiftCardPayload,
    ItemPayload,
    OrderPayload,
    SubscriptionPayload,
    encode_metadata,
)
from storefront.giftcard.giftcard import GiftCard
from storefront.order.order import Order
from storefront.subscription.lifecycle import StartSubscription
from storefront.subscription.subscription import Subscription, SubscriptionStatus


def _metadata():
    return encode_metadata(
        OrderPayload(
            items=[ItemPayload(product_id="rose-bouquet", name="Classic Rose Bouquet", unit_price=4999, quantity=2)],
            subtotal=9998,
            delivery_fee=0,
            discount=999,
            billing=ContactPayload(name="Ada Bloom", email="ada@example.com"),
        )
    )


class TestPaymentWebhook:
    def test_signed_delivery_records_order(self, client, completed_session, signed):
        event = completed_session("cs_test_123", _metadata(), amount_total=8999, amount_discount=999)
        payload, signature = signed(event)
        response = client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": signature})
        assert response.status_code == 200
        assert response.json() == {"received": True}

        orders = current_domain.repository_for(Order)._dao.query.all().items
        assert len(orders) == 1
        assert orders[0].total == 89.99

    def test_redelivery_is_acknowledged(self, client, completed_session, signed):
        event = completed_session("cs_test_123", _metadata(), amount_total=8999, amount_discount=999)
        payload, signature = signed(event)
        for _ in range(2):
            response = client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": signature})
            assert response.status_code == 200
        assert len(current_domain.repository_for(Order)._dao.query.all().items) == 1

    def test_bad_signature_is_unauthorized(self, client, completed_session):
        payload = json.dumps(completed_session("cs_test_123", _metadata(), amount_total=8999, amount_discount=999))
        response = client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": "t=1,v1=bad"})
        assert response.status_code == 401
        assert current_domain.repository_for(Order)._dao.query.all().items == []

    def test_missing_signature_is_unauthorized(self, client, completed_session):
        payload = json.dumps(completed_session("cs_test_123", _metadata(), amount_total=8999))
        response = client.post("/webhooks/payment", content=payload)
        assert response.status_code == 401

    def test_reconciliation_failure_is_a_client_error(self, client, completed_session, signed):
        payload, signature = signed(completed_session("cs_test_123", _metadata(), amount_total=1, amount_discount=999))
        response = client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": signature})
        assert response.status_code == 400


class TestUnverifiedDeliveriesChangeNothing:
    def _post_unsigned(self, client, event):
        return client.post("/webhooks/payment", content=json.dumps(event), headers={"Stripe-Signature": "t=1,v1=bad"})

    def test_gift_card_session(self, client, completed_session):
        payload = GiftCardPayload(amount=2500, sender_name="Ada Bloom", sender_email="ada@example.com")
        metadata = encode_metadata(payload)
        response = self._post_unsigned(client, completed_session("cs_gift_1", metadata, amount_total=2500))
        assert response.status_code == 401
        assert current_domain.repository_for(GiftCard)._dao.query.all().items == []

    def test_subscription_session(self, client, completed_session):
        metadata = encode_metadata(
            SubscriptionPayload(
                plan_id="seasonal-posy",
                plan_name="Seasonal Posy",
                frequency="monthly",
                price=3499,
                customer_email="ada@example.com",
            )
        )
        event = completed_session("cs_sub_1", metadata, amount_total=3499, mode="subscription", subscription="sub_123")
        response = self._post_unsigned(client, event)
        assert response.status_code == 401
        assert current_domain.repository_for(Subscription)._dao.query.all().items == []

    def test_subscription_deletion(self, client):
        subscription_id = current_domain.process(
            StartSubscription(
                plan_id="seasonal-posy",
                frequency="monthly",
                price=34.99,
                customer_email="ada@example.com",
                external_ref="sub_123",
            ),
            asynchronous=False,
        )
        deleted = {"id": "evt_del", "type": "customer.subscription.deleted", "data": {"object": {"id": "sub_123"}}}
        response = self._post_unsigned(client, deleted)

        assert response.status_code == 401
        subscription = current_domain.repository_for(Subscription).get(subscription_id)
        assert subscription.status == SubscriptionStatus.ACTIVE.value

    def test_signature_for_another_body(self, client, completed_session, signed):
        _, signature = signed(completed_session("cs_other", _metadata(), amount_total=8999, amount_discount=999))
        payload = json.dumps(completed_session("cs_test_123", _metadata(), amount_total=8999, amount_discount=999))
        response = client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": signature})
        assert response.status_code == 401
        assert current_domain.repository_for(Order)._dao.query.all().items == []
