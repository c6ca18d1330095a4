"""Checkout session initiation: flower orders, gift cards and subscriptions.

Each command prices what the shopper is buying, asks the processor for a
hosted checkout page and returns its id and redirect URL. Nothing is
persisted here: orders, gift cards and subscriptions are only recorded once
the processor reports the payment completed (see ``storefront.webhook``).

Everything the webhook needs to build the record travels in the session's
metadata as a tagged, versioned payload (``storefront.checkout.metadata``).
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Integer, String, Text
from pydantic import ValidationError as PydanticValidationError

from storefront.cart.cart import Cart
from storefront.checkout.metadata import (
    AddressPayload,
    ContactPayload,
    GiftCardPayload,
    ItemPayload,
    OrderPayload,
    SubscriptionPayload,
    encode_metadata,
)
from storefront.config import get_settings
from storefront.coupon.management import coupon_by_code
from storefront.domain import storefront
from storefront.exceptions import ConflictError, EmptyCartError, InvalidContactError
from storefront.gateway import get_gateway
from storefront.gateway.port import CheckoutSessionRequest, LineItem
from storefront.giftcard.giftcard import GiftCard, check_amount
from storefront.giftcard.ledger import validate_gift_card
from storefront.order.order import Order
from storefront.shared.email import normalize_email
from storefront.shared.money import to_minor
from storefront.subscription.lifecycle import live_subscription
from storefront.subscription.subscription import BILLING_INTERVALS, Subscription

logger = structlog.get_logger(__name__)

DELIVERY_FEE_LABEL = "Delivery Fee"


def _load_json(raw, field):
    if not raw:
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError({field: ["Must be a JSON document"]}) from exc


def _address(raw, field) -> AddressPayload | None:
    data = _load_json(raw, field)
    if not data:
        return None
    try:
        return AddressPayload.model_validate(data)
    except PydanticValidationError as exc:
        missing = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        raise ValidationError({field: [f"Invalid address: {', '.join(missing) or 'malformed'}"]}) from exc


def _require_name(name, field):
    if not name or not name.strip():
        raise InvalidContactError(field=field, message="A name is required")
    return name.strip()


def _urls(kind: str) -> tuple[str, str]:
    site_url = get_settings().site_url
    success = f"{site_url}/{kind}/success?session_id={{CHECKOUT_SESSION_ID}}"
    cancel = f"{site_url}/{kind}/cancelled"
    return success, cancel


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="Order")
class StartCheckout:
    """Open a hosted checkout for the contents of a cart."""

    cart_snapshot = Text(required=True)  # JSON, as produced by Cart.to_snapshot()
    billing_name = String(max_length=255)
    billing_email = String(max_length=254)
    billing_phone = String(max_length=30)
    billing_address = Text()  # JSON object
    recipient_name = String(max_length=255)
    recipient_phone = String(max_length=30)
    delivery_address = Text()  # JSON object
    delivery_instructions = Text()
    coupon_code = String(max_length=50)
    gift_card_code = String(max_length=20)
    loyalty_points_used = Integer(default=0, min_value=0)


@storefront.command(part_of="GiftCard")
class StartGiftCardCheckout:
    amount = Float(required=True)
    sender_name = String(max_length=255)
    sender_email = String(max_length=254)
    recipient_name = String(max_length=255)
    recipient_email = String(max_length=254)
    message = Text()


@storefront.command(part_of="Subscription")
class StartSubscriptionCheckout:
    plan_id = String(required=True, max_length=100)
    plan_name = String(required=True, max_length=255)
    frequency = String(required=True, max_length=20)
    price = Float(required=True)
    customer_email = String(max_length=254)
    customer_name = String(max_length=255)
    user_id = String(max_length=255)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
@storefront.command_handler(part_of=Order)
class StartCheckoutHandler:
    @handle(StartCheckout)
    def start_checkout(self, command):
        cart = Cart.from_snapshot(_load_json(command.cart_snapshot, "cart_snapshot") or {})
        if not cart.items:
            raise EmptyCartError()

        billing_email = normalize_email(command.billing_email, field="billing_email")
        billing_name = _require_name(command.billing_name, "billing_name")
        billing_address = _address(command.billing_address, "billing_address")
        delivery_address = _address(command.delivery_address, "delivery_address")

        subtotal = cart.subtotal_minor
        delivery_fee = to_minor(cart.delivery_fee)

        # The catalogue, not the cart, decides what a coupon is worth.
        coupon_code = command.coupon_code or cart.coupon_code
        discount = 0
        if coupon_code:
            coupon = coupon_by_code(coupon_code)
            if coupon is None:
                raise ValidationError({"coupon_code": ["Coupon not found"]})
            discount = min(to_minor(coupon.validate(cart.subtotal, cart.delivery_fee)), subtotal + delivery_fee)
            coupon_code = coupon.code

        gift_card_code = None
        gift_card_amount = 0
        if command.gift_card_code:
            card = validate_gift_card(command.gift_card_code)
            gift_card_code = card.code
            gift_card_amount = min(to_minor(card.current_balance), subtotal + delivery_fee - discount)

        payload = OrderPayload(
            items=[
                ItemPayload(
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id) if item.variant_id else None,
                    name=item.name,
                    variant_name=item.variant_name,
                    image_url=item.image_url,
                    unit_price=to_minor(item.price),
                    quantity=item.quantity,
                    gift_message=item.gift_message,
                )
                for item in cart.items
            ],
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            discount=discount,
            gift_card_code=gift_card_code,
            gift_card_amount=gift_card_amount,
            coupon_code=coupon_code,
            billing=ContactPayload(name=billing_name, email=billing_email, phone=command.billing_phone),
            billing_address=billing_address,
            recipient=(
                ContactPayload(name=command.recipient_name, phone=command.recipient_phone)
                if command.recipient_name
                else None
            ),
            delivery_address=delivery_address,
            delivery_type=cart.delivery_type,
            delivery_date=cart.delivery_date,
            delivery_instructions=command.delivery_instructions,
            loyalty_points_used=command.loyalty_points_used or 0,
        )

        line_items = [
            LineItem(
                name=f"{item.name} - {item.variant_name}" if item.variant_name else item.name,
                unit_amount=to_minor(item.price),
                quantity=item.quantity,
                image_url=item.image_url,
                description=item.gift_message or None,
            )
            for item in cart.items
        ]
        if delivery_fee > 0:
            line_items.append(LineItem(name=DELIVERY_FEE_LABEL, unit_amount=delivery_fee))

        settings = get_settings()
        gateway = get_gateway()

        discount_id = None
        if discount + gift_card_amount > 0:
            labels = [label for label in (coupon_code, "Gift card" if gift_card_code else None) if label]
            discount_id = gateway.create_one_time_discount(
                amount=discount + gift_card_amount,
                currency=settings.currency,
                name=" + ".join(labels),
            )

        success_url, cancel_url = _urls("checkout")
        session = gateway.create_checkout_session(
            CheckoutSessionRequest(
                mode="payment",
                line_items=line_items,
                customer_email=billing_email,
                success_url=success_url,
                cancel_url=cancel_url,
                currency=settings.currency,
                metadata=encode_metadata(payload),
                discount_id=discount_id,
            )
        )
        logger.info(
            "Checkout session created",
            session_id=session.session_id,
            item_count=cart.item_count,
            expected_total=payload.total,
        )
        return session


@storefront.command_handler(part_of=GiftCard)
class StartGiftCardCheckoutHandler:
    @handle(StartGiftCardCheckout)
    def start_checkout(self, command):
        amount = check_amount(command.amount)
        sender_email = normalize_email(command.sender_email, field="sender_email")
        sender_name = _require_name(command.sender_name, "sender_name")
        recipient_email = (
            normalize_email(command.recipient_email, field="recipient_email") if command.recipient_email else None
        )

        payload = GiftCardPayload(
            amount=to_minor(amount),
            sender_name=sender_name,
            sender_email=sender_email,
            recipient_name=command.recipient_name,
            recipient_email=recipient_email,
            message=command.message,
        )

        settings = get_settings()
        success_url, cancel_url = _urls("gift-cards")
        session = get_gateway().create_checkout_session(
            CheckoutSessionRequest(
                mode="payment",
                line_items=[
                    LineItem(
                        name=f"Love Blooms Gift Card £{amount:.2f}",
                        unit_amount=to_minor(amount),
                        description=f"For {command.recipient_name}" if command.recipient_name else None,
                    )
                ],
                customer_email=sender_email,
                success_url=success_url,
                cancel_url=cancel_url,
                currency=settings.currency,
                metadata=encode_metadata(payload),
            )
        )
        logger.info("Gift card checkout session created", session_id=session.session_id, amount=amount)
        return session


@storefront.command_handler(part_of=Subscription)
class StartSubscriptionCheckoutHandler:
    @handle(StartSubscriptionCheckout)
    def start_checkout(self, command):
        if command.frequency not in BILLING_INTERVALS:
            raise ValidationError({"frequency": ["Frequency must be weekly, fortnightly or monthly"]})
        if command.price is None or command.price <= 0:
            raise ValidationError({"price": ["Price must be greater than zero"]})

        customer_email = normalize_email(command.customer_email, field="customer_email")
        if live_subscription(customer_email, command.plan_id) is not None:
            raise ConflictError("You already have an active subscription to this plan")

        interval, interval_count = BILLING_INTERVALS[command.frequency]
        payload = SubscriptionPayload(
            plan_id=command.plan_id,
            plan_name=command.plan_name,
            frequency=command.frequency,
            price=to_minor(command.price),
            customer_email=customer_email,
            customer_name=command.customer_name,
            user_id=command.user_id,
        )

        settings = get_settings()
        success_url, cancel_url = _urls("subscriptions")
        session = get_gateway().create_checkout_session(
            CheckoutSessionRequest(
                mode="subscription",
                line_items=[
                    LineItem(
                        name=command.plan_name,
                        unit_amount=to_minor(command.price),
                        description=f"Delivered {command.frequency}",
                        recurring_interval=interval,
                        interval_count=interval_count,
                    )
                ],
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
                currency=settings.currency,
                metadata=encode_metadata(payload),
            )
        )
        logger.info(
            "Subscription checkout session created",
            session_id=session.session_id,
            plan_id=command.plan_id,
            frequency=command.frequency,
        )
        return session
