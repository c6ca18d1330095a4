"""Turning a completed checkout into an Order.

``materialize_order`` is a pure mapping from the processor's completed
session and the order payload embedded in its metadata to the fields of a
new Order. It reconciles the payload's amounts against the line items and
against what the processor actually collected, in minor units and with
zero tolerance.

``MaterializeOrder`` persists the result exactly once per session. Any gift
card balance and coupon use carried by the payload are applied in the same
unit of work, so they happen only when the order is first created.
"""

import json
from contextlib import nullcontext

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain

from storefront.checkout.metadata import MetadataError, OrderPayload, decode_metadata
from storefront.coupon.management import coupon_by_code
from storefront.domain import storefront
from storefront.exceptions import ReconciliationError, StorefrontError
from storefront.giftcard.ledger import find_gift_card, redemption_lock
from storefront.order.numbering import allocate_order_number
from storefront.order.order import Order
from storefront.shared.money import from_minor

logger = structlog.get_logger(__name__)


def order_for_session(payment_session_id):
    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(payment_session_id=payment_session_id).all().items
    return matches[0] if matches else None


def _address(address):
    return address.model_dump() if address is not None else None


def materialize_order(
    payload: OrderPayload,
    payment_session_id: str,
    amount_total: int,
    amount_discount: int = 0,
    payment_intent_id: str | None = None,
    currency: str | None = None,
) -> dict:
    """Map a paid session and its order payload to ``Order.place`` keyword arguments.

    Raises ``ReconciliationError`` when the payload's subtotal disagrees with
    its items, or the expected total and discount disagree with what the
    processor reports. Gift card value travels inside the processor-side
    discount, so both are compared against ``discount + gift_card_amount``.
    """
    items = []
    subtotal_minor = 0
    for item in payload.items:
        line_minor = item.unit_price * item.quantity
        subtotal_minor += line_minor
        items.append(
            {
                "product_id": item.product_id,
                "variant_id": item.variant_id,
                "product_name": item.name,
                "product_image": item.image_url,
                "variant_name": item.variant_name,
                "quantity": item.quantity,
                "unit_price": from_minor(item.unit_price),
                "total_price": from_minor(line_minor),
                "gift_message": item.gift_message,
            }
        )

    gross_minor = payload.subtotal + payload.delivery_fee
    expected_discount = min(payload.discount + payload.gift_card_amount, gross_minor)
    expected_total = gross_minor - expected_discount

    mismatches = {}
    if subtotal_minor != payload.subtotal:
        mismatches["subtotal"] = {"items": subtotal_minor, "payload": payload.subtotal}
    if amount_total != expected_total:
        mismatches["total"] = {"expected": expected_total, "reported": amount_total}
    if (amount_discount or 0) != expected_discount:
        mismatches["discount"] = {"expected": expected_discount, "reported": amount_discount or 0}
    if mismatches:
        raise ReconciliationError(payment_session_id, mismatches)

    recipient = payload.recipient
    return {
        "items": items,
        "payment_session_id": payment_session_id,
        "payment_intent_id": payment_intent_id,
        "subtotal": from_minor(payload.subtotal),
        "delivery_fee": from_minor(payload.delivery_fee),
        "discount_amount": from_minor(payload.discount),
        "gift_card_code": payload.gift_card_code,
        "gift_card_amount": from_minor(payload.gift_card_amount),
        "total": from_minor(amount_total),
        "currency": (currency or "gbp").upper(),
        "delivery_type": payload.delivery_type,
        "delivery_date": payload.delivery_date,
        "billing_name": payload.billing.name,
        "billing_email": payload.billing.email.lower() if payload.billing.email else None,
        "billing_phone": payload.billing.phone,
        "billing_address": _address(payload.billing_address),
        "recipient_name": recipient.name if recipient else None,
        "recipient_phone": recipient.phone if recipient else None,
        "delivery_address": _address(payload.delivery_address),
        "delivery_instructions": payload.delivery_instructions,
        "coupon_code": payload.coupon_code,
        "loyalty_points_used": payload.loyalty_points_used,
        "loyalty_points_earned": amount_total // 100,
    }


def materialize_for_review(
    reason: str,
    payment_session_id: str,
    amount_total: int,
    payment_intent_id: str | None = None,
    currency: str | None = None,
    customer_email: str | None = None,
    customer_name: str | None = None,
) -> dict:
    """Order fields for a paid session whose payload could not be read or recorded.

    The payment happened, so an order is recorded regardless: no items, the
    amount actually collected, and a review flag for staff.
    """
    return {
        "items": [],
        "payment_session_id": payment_session_id,
        "payment_intent_id": payment_intent_id,
        "total": from_minor(amount_total),
        "currency": (currency or "gbp").upper(),
        "billing_name": customer_name,
        "billing_email": customer_email.lower() if customer_email else None,
        "loyalty_points_earned": amount_total // 100,
        "requires_review": True,
        "review_reason": reason[:500],
    }


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------
@storefront.command(part_of="Order")
class MaterializeOrder:
    payment_session_id = String(required=True, max_length=255)
    payment_intent_id = String(max_length=255)
    amount_total = Integer(required=True, min_value=0)
    amount_discount = Integer(default=0, min_value=0)
    currency = String(max_length=3)
    customer_email = String(max_length=254)
    customer_name = String(max_length=255)
    metadata = Text()  # JSON object, as received from the processor


@storefront.command_handler(part_of=Order)
class MaterializeOrderHandler:
    @handle(MaterializeOrder)
    def materialize(self, command):
        existing = order_for_session(command.payment_session_id)
        if existing is not None:
            logger.info(
                "Order already exists for session",
                payment_session_id=command.payment_session_id,
                order_number=existing.order_number,
            )
            return existing.order_number

        metadata = json.loads(command.metadata) if command.metadata else {}
        try:
            payload = decode_metadata(metadata)
            if not isinstance(payload, OrderPayload):
                raise MetadataError(f"Expected an order payload, got {payload.kind}")
        except MetadataError as exc:
            logger.error(
                "Unreadable order metadata, recording order for review",
                payment_session_id=command.payment_session_id,
                error=str(exc),
            )
            fields = materialize_for_review(
                str(exc),
                payment_session_id=command.payment_session_id,
                amount_total=command.amount_total,
                payment_intent_id=command.payment_intent_id,
                currency=command.currency,
                customer_email=command.customer_email,
                customer_name=command.customer_name,
            )
            payload = None
        else:
            fields = materialize_order(
                payload,
                payment_session_id=command.payment_session_id,
                amount_total=command.amount_total,
                amount_discount=command.amount_discount,
                payment_intent_id=command.payment_intent_id,
                currency=command.currency,
            )

        order_number = allocate_order_number()
        if payload is not None:
            review_notes = self._apply_gift_card(payload, order_number) + self._apply_coupon(payload, order_number)
            if review_notes:
                fields["requires_review"] = True
                fields["review_reason"] = "; ".join(review_notes)[:500]

        try:
            order = Order.place(order_number=order_number, **fields)
        except ValidationError as exc:
            # Payment is already taken; keep what was collected and let staff fix the details.
            logger.error(
                "Paid order details rejected, recording order for review",
                payment_session_id=command.payment_session_id,
                errors=exc.messages,
            )
            notes = [f"Order details rejected: {exc.messages}"]
            if fields.get("review_reason"):
                notes.append(fields["review_reason"])
            fields = materialize_for_review(
                "; ".join(notes),
                payment_session_id=command.payment_session_id,
                amount_total=command.amount_total,
                payment_intent_id=command.payment_intent_id,
                currency=command.currency,
                customer_email=command.customer_email,
                customer_name=command.customer_name,
            )
            order = Order.place(order_number=order_number, **fields)

        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order placed",
            order_number=order_number,
            payment_session_id=command.payment_session_id,
            total=order.total,
            requires_review=order.requires_review,
        )
        return order_number

    def _apply_gift_card(self, payload, order_number) -> list[str]:
        if not payload.gift_card_code or payload.gift_card_amount <= 0:
            return []

        card = find_gift_card(payload.gift_card_code)
        if card is None:
            logger.error("Gift card on paid order not found", code=payload.gift_card_code, order_number=order_number)
            return [f"Gift card {payload.gift_card_code} not found"]

        amount = from_minor(payload.gift_card_amount)
        try:
            result = card.redeem(amount, allow_partial=True, reference=order_number)
        except StorefrontError as exc:
            logger.error(
                "Gift card on paid order unusable", code=card.code, order_number=order_number, error=exc.message
            )
            return [f"Gift card {card.code}: {exc.message}"]

        current_domain.repository_for(type(card)).add(card)
        if result.insufficient_balance:
            logger.warning(
                "Gift card balance short on paid order",
                code=card.code,
                requested=result.requested,
                deducted=result.deducted,
                order_number=order_number,
            )
            return [f"Gift card {card.code} covered {result.deducted:.2f} of {result.requested:.2f}"]
        return []

    def _apply_coupon(self, payload, order_number) -> list[str]:
        if not payload.coupon_code:
            return []

        coupon = coupon_by_code(payload.coupon_code)
        if coupon is None:
            logger.warning("Coupon on paid order not found", code=payload.coupon_code, order_number=order_number)
            return []

        coupon.record_use(order_number)
        current_domain.repository_for(type(coupon)).add(coupon)
        return []


def _gift_card_code(metadata: dict) -> str | None:
    try:
        payload = decode_metadata(metadata)
    except MetadataError:
        return None
    return getattr(payload, "gift_card_code", None)


def record_paid_order(session: dict) -> str:
    """Persist the order for a completed checkout session. Returns its order number.

    Redelivery of the same session returns the existing order's number. The
    gift card named in the payload, if any, stays locked for the whole unit
    of work. A store-level unique violation on a race is re-checked and
    treated as a duplicate.
    """
    session_id = session["id"]
    metadata = session.get("metadata") or {}
    customer = session.get("customer_details") or {}
    command = MaterializeOrder(
        payment_session_id=session_id,
        payment_intent_id=session.get("payment_intent"),
        amount_total=session.get("amount_total") or 0,
        amount_discount=(session.get("total_details") or {}).get("amount_discount") or 0,
        currency=session.get("currency"),
        customer_email=customer.get("email") or session.get("customer_email"),
        customer_name=customer.get("name"),
        metadata=json.dumps(metadata),
    )

    code = _gift_card_code(metadata)
    with redemption_lock(code) if code else nullcontext():
        try:
            return current_domain.process(command, asynchronous=False)
        except ReconciliationError:
            raise
        except ValidationError:
            existing = order_for_session(session_id)
            if existing is None:
                raise
            logger.info("Concurrent delivery already recorded order", payment_session_id=session_id)
            return existing.order_number
