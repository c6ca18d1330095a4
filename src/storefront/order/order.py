"""Order aggregate (CQRS): a paid checkout, created once per processor session.

Orders are never created by the storefront directly. They come into
existence from a verified "checkout completed" notification, already paid
and confirmed. Afterwards only status and payment status change.

State Machine:
    CONFIRMED → PREPARING → OUT_FOR_DELIVERY → DELIVERED
    CANCELLED (from any state except DELIVERED)

Payment status is tracked separately: PAID on creation, REFUNDED once the
processor reports the whole total refunded. Partial refunds only add to
``amount_refunded``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderDispatched,
    OrderPaymentRefunded,
    OrderPlaced,
    OrderPreparationStarted,
)
from storefront.shared.money import from_minor, to_minor


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class Address:
    """A postal address captured at checkout. Never updated afterwards."""

    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    county = String(max_length=100)
    postcode = String(required=True, max_length=10)
    country = String(max_length=2, default="GB")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A snapshot of a cart line at the moment of payment."""

    product_id = String(required=True, max_length=255)
    variant_id = String(max_length=255)
    product_name = String(required=True, max_length=255)
    product_image = String(max_length=1000)
    variant_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    gift_message = String(max_length=200)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    status = String(choices=OrderStatus, default=OrderStatus.CONFIRMED.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    payment_session_id = String(required=True, max_length=255, unique=True)
    payment_intent_id = String(max_length=255)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    gift_card_code = String(max_length=20)
    gift_card_amount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    amount_refunded = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="GBP")
    delivery_type = String(max_length=20)
    delivery_date = String(max_length=10)
    billing_name = String(max_length=255)
    billing_email = String(max_length=254)
    billing_phone = String(max_length=30)
    billing_address = ValueObject(Address)
    recipient_name = String(max_length=255)
    recipient_phone = String(max_length=30)
    delivery_address = ValueObject(Address)
    delivery_instructions = Text()
    coupon_code = String(max_length=50)
    loyalty_points_used = Integer(default=0, min_value=0)
    loyalty_points_earned = Integer(default=0, min_value=0)
    requires_review = Boolean(default=False)
    review_reason = String(max_length=500)
    cancellation_reason = String(max_length=500)
    customer_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, order_number, items, billing_address=None, delivery_address=None, **fields):
        """Create a paid, confirmed order.

        Args:
            order_number: A number already checked for uniqueness.
            items: List of dicts with the ``OrderItem`` fields.
            billing_address / delivery_address: Dicts with the ``Address`` fields, or None.
            **fields: Remaining scalar Order fields (amounts, contacts, references).
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            status=OrderStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PAID.value,
            items=[OrderItem(**item) for item in items],
            billing_address=Address(**billing_address) if billing_address else None,
            delivery_address=Address(**delivery_address) if delivery_address else None,
            created_at=now,
            updated_at=now,
            **fields,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                payment_session_id=order.payment_session_id,
                billing_email=order.billing_email,
                item_count=sum(item.quantity for item in order.items),
                total=order.total,
                currency=order.currency,
                requires_review=bool(order.requires_review),
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _move_to(self, target_status):
        self._assert_can_transition(target_status)
        self.status = target_status.value
        self.updated_at = datetime.now(UTC)

    def start_preparing(self):
        self._move_to(OrderStatus.PREPARING)
        self.raise_(OrderPreparationStarted(order_id=str(self.id), order_number=self.order_number))

    def dispatch(self):
        self._move_to(OrderStatus.OUT_FOR_DELIVERY)
        self.raise_(OrderDispatched(order_id=str(self.id), order_number=self.order_number))

    def mark_delivered(self):
        self._move_to(OrderStatus.DELIVERED)
        self.raise_(OrderDelivered(order_id=str(self.id), order_number=self.order_number))

    def cancel(self, reason=None):
        previous = self.status
        self._move_to(OrderStatus.CANCELLED)
        self.cancellation_reason = reason
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                reason=reason,
            )
        )

    def record_refund(self, amount_refunded=None, fully_refunded=False):
        """Record a refund against the payment.

        ``amount_refunded`` is the running total refunded on the charge, as
        the processor reports it. The payment only becomes ``refunded`` once
        the whole total is back with the shopper; a partial refund is noted
        and the order stays paid. Notices that add nothing new are ignored.
        """
        if self.payment_status == PaymentStatus.REFUNDED.value:
            return
        if self.payment_status != PaymentStatus.PAID.value:
            raise ValidationError({"payment_status": [f"Cannot refund a payment that is {self.payment_status}"]})

        refunded_minor = to_minor(amount_refunded or 0.0)
        fully_refunded = fully_refunded or (amount_refunded is not None and refunded_minor >= to_minor(self.total))
        if not fully_refunded and refunded_minor <= to_minor(self.amount_refunded):
            return

        self.amount_refunded = from_minor(max(refunded_minor, to_minor(self.amount_refunded)))
        if fully_refunded:
            self.payment_status = PaymentStatus.REFUNDED.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            OrderPaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                amount_refunded=self.amount_refunded,
                fully_refunded=fully_refunded,
            )
        )
