"""Configurable fake payment gateway for development and testing.

Simulates the hosted-checkout processor without any external calls:

- checkout sessions and discounts get generated ids and are recorded in
  ``calls`` so tests can inspect exactly what would have been sent,
- remote operations can be switched to fail with ``configure()``,
- notifications are signed with HMAC-SHA256 in the same ``t=...,v1=...``
  header format Stripe uses, so the signature path is exercised end to end.
"""

import hashlib
import hmac
import json
import time
from uuid import uuid4

from protean.exceptions import ValidationError

from storefront.exceptions import ConfigurationError, ExternalServiceError, InvalidSignatureError
from storefront.gateway.port import CheckoutSession, CheckoutSessionRequest, PaymentEvent, PaymentGateway

DEFAULT_WEBHOOK_SECRET = "whsec_fake_storefront"
SIGNATURE_TOLERANCE_SECONDS = 300


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = int(value)
        elif key == "v1":
            signatures.append(value)
    if timestamp is None or not signatures:
        raise ValueError("Malformed signature header")
    return timestamp, signatures


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret: str | None = DEFAULT_WEBHOOK_SECRET) -> None:
        self.webhook_secret = webhook_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Processor unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Processor unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise ExternalServiceError("fake-gateway", self.failure_reason)

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        self.calls.append({"method": "create_checkout_session", "request": request})
        self._fail_if_configured()

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.fake/pay/{session_id}")

    def create_one_time_discount(self, amount: int, currency: str, name: str) -> str:
        self.calls.append(
            {
                "method": "create_one_time_discount",
                "amount": amount,
                "currency": currency,
                "name": name,
                "duration": "once",
                "max_redemptions": 1,
            }
        )
        self._fail_if_configured()
        return f"coupon_fake_{uuid4().hex[:12]}"

    def cancel_subscription(self, subscription_ref: str) -> None:
        self.calls.append({"method": "cancel_subscription", "subscription_ref": subscription_ref})
        self._fail_if_configured()

    def pause_subscription(self, subscription_ref: str) -> None:
        self.calls.append({"method": "pause_subscription", "subscription_ref": subscription_ref})
        self._fail_if_configured()

    def resume_subscription(self, subscription_ref: str) -> None:
        self.calls.append({"method": "resume_subscription", "subscription_ref": subscription_ref})
        self._fail_if_configured()

    # -------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------
    def sign(self, payload: bytes | str, timestamp: int | None = None) -> str:
        """Produce a signature header for ``payload`` (used by tests and local tooling)."""
        if self.webhook_secret is None:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET")
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f"{timestamp}.".encode() + payload
        digest = hmac.new(self.webhook_secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    def construct_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        if self.webhook_secret is None:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET")
        if not signature:
            raise InvalidSignatureError("Missing webhook signature")

        try:
            timestamp, candidates = _parse_signature_header(signature)
        except ValueError as exc:
            raise InvalidSignatureError("Malformed webhook signature") from exc

        expected = self.sign(payload, timestamp=timestamp).split("v1=", 1)[1]
        if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
            raise InvalidSignatureError()
        if abs(time.time() - timestamp) > SIGNATURE_TOLERANCE_SECONDS:
            raise InvalidSignatureError("Webhook signature timestamp outside tolerance")

        try:
            body = json.loads(payload)
        except ValueError as exc:
            raise ValidationError({"payload": ["Webhook payload is not valid JSON"]}) from exc

        return PaymentEvent(
            event_id=body.get("id", ""),
            type=body.get("type", ""),
            data=body.get("data", {}).get("object", {}),
        )
