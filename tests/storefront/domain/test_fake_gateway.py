"""Tests for the fake payment gateway's signing and failure switches."""

import json
import time

import pytest
from protean.exceptions import ValidationError

from storefront.exceptions import ConfigurationError, ExternalServiceError, InvalidSignatureError
from storefront.gateway.fake_adapter import FakeGateway
from storefront.gateway.port import CheckoutSessionRequest, LineItem

_EVENT = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}})


def _request():
    return CheckoutSessionRequest(
        mode="payment",
        line_items=[LineItem(name="Roses", unit_amount=4999)],
        customer_email="ada@example.com",
        success_url="https://shop.test/ok",
        cancel_url="https://shop.test/cancel",
    )


class TestCheckout:
    def test_session_has_id_and_url(self):
        session = FakeGateway().create_checkout_session(_request())
        assert session.session_id.startswith("cs_fake_")
        assert session.url.endswith(session.session_id)

    def test_calls_are_recorded(self):
        gateway = FakeGateway()
        gateway.create_one_time_discount(999, "gbp", "SPRING10")
        call = gateway.calls_to("create_one_time_discount")[0]
        assert call["amount"] == 999
        assert call["duration"] == "once"
        assert call["max_redemptions"] == 1

    def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Card network down")
        with pytest.raises(ExternalServiceError) as exc:
            gateway.create_checkout_session(_request())
        assert exc.value.detail == "Card network down"


class TestSignatures:
    def test_signed_event_is_accepted(self):
        gateway = FakeGateway()
        event = gateway.construct_event(_EVENT.encode(), gateway.sign(_EVENT))
        assert event.type == "checkout.session.completed"
        assert event.data["id"] == "cs_1"

    def test_missing_signature_rejected(self):
        with pytest.raises(InvalidSignatureError):
            FakeGateway().construct_event(_EVENT.encode(), None)

    def test_malformed_signature_rejected(self):
        with pytest.raises(InvalidSignatureError):
            FakeGateway().construct_event(_EVENT.encode(), "not-a-signature")

    def test_signature_from_other_secret_rejected(self):
        other = FakeGateway(webhook_secret="whsec_someone_else")
        with pytest.raises(InvalidSignatureError):
            FakeGateway().construct_event(_EVENT.encode(), other.sign(_EVENT))

    def test_tampered_payload_rejected(self):
        gateway = FakeGateway()
        signature = gateway.sign(_EVENT)
        with pytest.raises(InvalidSignatureError):
            gateway.construct_event(_EVENT.replace("cs_1", "cs_2").encode(), signature)

    def test_stale_timestamp_rejected(self):
        gateway = FakeGateway()
        signature = gateway.sign(_EVENT, timestamp=int(time.time()) - 3600)
        with pytest.raises(InvalidSignatureError):
            gateway.construct_event(_EVENT.encode(), signature)

    def test_signed_garbage_is_a_validation_error(self):
        gateway = FakeGateway()
        with pytest.raises(ValidationError):
            gateway.construct_event(b"not json", gateway.sign(b"not json"))

    def test_missing_secret_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            FakeGateway(webhook_secret=None).construct_event(_EVENT.encode(), "t=1,v1=abc")
