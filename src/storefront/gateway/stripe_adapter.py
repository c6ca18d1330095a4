"""Stripe payment gateway adapter.

Uses the stripe-python SDK with a per-call API key, so several adapters
(e.g. live and test keys) can coexist in one process. Every SDK failure is
logged with its detail and re-raised as ``ExternalServiceError``. Shoppers
only ever see the generic message.
"""

import json

import stripe
import structlog
from protean.exceptions import ValidationError

from storefront.exceptions import ConfigurationError, ExternalServiceError, InvalidSignatureError
from storefront.gateway.port import CheckoutSession, CheckoutSessionRequest, PaymentEvent, PaymentGateway

logger = structlog.get_logger(__name__)


def _price_data(item, currency: str) -> dict:
    product_data = {"name": item.name}
    if item.image_url:
        product_data["images"] = [item.image_url]
    if item.description:
        product_data["description"] = item.description

    price_data = {
        "currency": currency,
        "product_data": product_data,
        "unit_amount": item.unit_amount,
    }
    if item.recurring_interval:
        price_data["recurring"] = {
            "interval": item.recurring_interval,
            "interval_count": item.interval_count,
        }
    return price_data


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str | None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def _failed(self, operation: str, exc: stripe.StripeError) -> ExternalServiceError:
        logger.error(
            "Stripe call failed",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return ExternalServiceError("stripe", str(exc))

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        params = {
            "mode": request.mode,
            "payment_method_types": ["card"],
            "line_items": [
                {"price_data": _price_data(item, request.currency), "quantity": item.quantity}
                for item in request.line_items
            ],
            "customer_email": request.customer_email,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "metadata": dict(request.metadata),
        }
        if request.discount_id:
            params["discounts"] = [{"coupon": request.discount_id}]
        if request.mode == "subscription":
            params["subscription_data"] = {"metadata": dict(request.metadata)}

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            raise self._failed("checkout.Session.create", exc) from exc

        logger.info("Checkout session created", session_id=session.id, mode=request.mode)
        return CheckoutSession(session_id=session.id, url=session.url)

    def create_one_time_discount(self, amount: int, currency: str, name: str) -> str:
        try:
            coupon = stripe.Coupon.create(
                api_key=self.api_key,
                amount_off=amount,
                currency=currency,
                duration="once",
                max_redemptions=1,
                name=name,
            )
        except stripe.StripeError as exc:
            raise self._failed("Coupon.create", exc) from exc
        return coupon.id

    def cancel_subscription(self, subscription_ref: str) -> None:
        try:
            stripe.Subscription.cancel(subscription_ref, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise self._failed("Subscription.cancel", exc) from exc

    def pause_subscription(self, subscription_ref: str) -> None:
        try:
            stripe.Subscription.modify(
                subscription_ref,
                api_key=self.api_key,
                pause_collection={"behavior": "void"},
            )
        except stripe.StripeError as exc:
            raise self._failed("Subscription.modify(pause)", exc) from exc

    def resume_subscription(self, subscription_ref: str) -> None:
        try:
            stripe.Subscription.modify(subscription_ref, api_key=self.api_key, pause_collection="")
        except stripe.StripeError as exc:
            raise self._failed("Subscription.modify(resume)", exc) from exc

    def construct_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET")
        if not signature:
            raise InvalidSignatureError("Missing webhook signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError() from exc
        except ValueError as exc:
            raise ValidationError({"payload": ["Webhook payload is not valid JSON"]}) from exc

        # Verified; re-read the raw JSON to work with plain dicts
        body = json.loads(payload)
        return PaymentEvent(
            event_id=body.get("id", ""),
            type=body.get("type", ""),
            data=body.get("data", {}).get("object", {}),
        )
