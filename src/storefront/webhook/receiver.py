"""Payment event receiver.

Entry point for the processor's notifications. The signature is verified
before anything in the body is read; a notification that fails
verification changes nothing.

``checkout.session.completed`` records an order, a gift card or a
subscription depending on the metadata ``kind`` (falling back to the
session mode for subscriptions). Deliveries of the same session are
serialized by a per-session lock and are idempotent: a redelivery returns
success without creating anything.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.checkout.metadata import (
    GiftCardPayload,
    MetadataError,
    SubscriptionPayload,
    decode_metadata,
    metadata_kind,
)
from storefront.exceptions import ReconciliationError
from storefront.gateway import get_gateway
from storefront.giftcard.ledger import IssueGiftCard, gift_card_for_session
from storefront.order.materialization import record_paid_order
from storefront.order.refunds import MarkOrderRefunded
from storefront.shared.money import from_minor
from storefront.subscription.lifecycle import (
    EndSubscriptionFromProcessor,
    StartSubscription,
    subscription_for_session,
)
from storefront.utils.locks import KeyedLock
from storefront.utils.logging import add_context, remove_context

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
CHARGE_REFUNDED = "charge.refunded"

_session_locks = KeyedLock()
_EVENT_CONTEXT_KEYS = ("event_id", "event_type", "payment_session_id", "kind")


def receive_payment_event(payload: bytes, signature: str | None) -> dict:
    """Verify, then act on, one processor notification."""
    event = get_gateway().construct_event(payload, signature)

    add_context(event_id=event.event_id, event_type=event.type)
    try:
        logger.info("Payment event received")
        if event.type == CHECKOUT_COMPLETED:
            if not event.data.get("id"):
                raise ValidationError({"id": ["Checkout session id is missing"]})
            with _session_locks.hold(event.data["id"]):
                handle_checkout_completed(event.data)
        elif event.type == SUBSCRIPTION_DELETED:
            current_domain.process(EndSubscriptionFromProcessor(external_ref=event.data["id"]), asynchronous=False)
        elif event.type == CHARGE_REFUNDED:
            handle_charge_refunded(event.data)
        else:
            logger.info("Ignoring payment event")
    except ReconciliationError as exc:
        logger.error("Checkout amounts do not reconcile", details=exc.details)
        raise
    finally:
        remove_context(*_EVENT_CONTEXT_KEYS)

    return {"received": True}


def handle_checkout_completed(session: dict) -> str | None:
    metadata = session.get("metadata") or {}
    kind = metadata_kind(metadata)
    add_context(payment_session_id=session["id"], kind=kind or session.get("mode"))

    if kind == "gift_card":
        return _issue_gift_card(session, metadata)
    if kind == "subscription" or session.get("mode") == "subscription":
        return _start_subscription(session, metadata)
    return record_paid_order(session)


def handle_charge_refunded(charge: dict) -> str | None:
    if not charge.get("payment_intent"):
        logger.warning("Refunded charge has no payment intent", charge_id=charge.get("id"))
        return None
    command = MarkOrderRefunded(
        payment_intent_id=charge["payment_intent"],
        amount_refunded=from_minor(charge.get("amount_refunded") or 0),
        fully_refunded=bool(charge.get("refunded")),
    )
    return current_domain.process(command, asynchronous=False)


def _process_once(command, session_id, find_existing):
    """Process ``command``, absorbing a store-level duplicate of the same session."""
    try:
        return current_domain.process(command, asynchronous=False)
    except ValidationError:
        existing = find_existing(session_id)
        if existing is None:
            raise
        logger.info("Concurrent delivery already recorded session")
        return str(existing.id)


def _issue_gift_card(session: dict, metadata: dict) -> str:
    try:
        payload = decode_metadata(metadata)
        if not isinstance(payload, GiftCardPayload):
            raise MetadataError(f"Expected a gift card payload, got {payload.kind}")
    except MetadataError as exc:
        logger.error("Unreadable gift card metadata", error=str(exc))
        raise ValidationError({"metadata": [str(exc)]}) from exc

    amount_total = session.get("amount_total") or 0
    if amount_total != payload.amount:
        raise ReconciliationError(session["id"], {"total": {"expected": payload.amount, "reported": amount_total}})

    command = IssueGiftCard(
        amount=from_minor(payload.amount),
        sender_name=payload.sender_name,
        sender_email=payload.sender_email,
        recipient_name=payload.recipient_name,
        recipient_email=payload.recipient_email,
        message=payload.message,
        payment_session_id=session["id"],
    )
    return _process_once(command, session["id"], gift_card_for_session)


def _start_subscription(session: dict, metadata: dict) -> str | None:
    try:
        payload = decode_metadata(metadata)
        if not isinstance(payload, SubscriptionPayload):
            raise MetadataError(f"Expected a subscription payload, got {payload.kind}")
    except MetadataError as exc:
        # Without the plan there is nothing to record; staff reconcile from the processor's dashboard.
        logger.error(
            "Unreadable subscription metadata, no subscription recorded",
            external_ref=session.get("subscription"),
            error=str(exc),
            metadata=json.dumps(metadata)[:500],
        )
        return None

    command = StartSubscription(
        plan_id=payload.plan_id,
        plan_name=payload.plan_name,
        frequency=payload.frequency,
        price=from_minor(payload.price),
        customer_email=payload.customer_email,
        customer_name=payload.customer_name,
        user_id=payload.user_id,
        external_ref=session.get("subscription"),
        payment_session_id=session["id"],
    )
    return _process_once(command, session["id"], subscription_for_session)
