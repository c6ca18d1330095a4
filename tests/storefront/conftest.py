import json

import pytest
from protean.integrations.pytest import DomainFixture

from storefront.gateway import reset_gateway, set_gateway
from storefront.gateway.fake_adapter import FakeGateway
from storefront.identity import FakeIdentityProvider, reset_identity_provider, set_identity_provider


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def gateway():
    """A fresh fake payment gateway for every test."""
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def identity():
    provider = FakeIdentityProvider()
    set_identity_provider(provider)
    yield provider
    reset_identity_provider()


@pytest.fixture()
def completed_session():
    """Build a ``checkout.session.completed`` event body."""

    def _build(session_id, metadata, amount_total, amount_discount=0, mode="payment", **session_fields):
        session = {
            "id": session_id,
            "object": "checkout.session",
            "mode": mode,
            "amount_total": amount_total,
            "currency": "gbp",
            "payment_intent": f"pi_{session_id}",
            "total_details": {"amount_discount": amount_discount},
            "customer_details": {"email": "ada@example.com", "name": "Ada Bloom"},
            "metadata": metadata,
        }
        session.update(session_fields)
        return {"id": f"evt_{session_id}", "type": "checkout.session.completed", "data": {"object": session}}

    return _build


@pytest.fixture()
def signed(gateway):
    """Serialize an event body and sign it the way the processor would."""

    def _sign(event):
        payload = json.dumps(event).encode("utf-8")
        return payload, gateway.sign(payload)

    return _sign
