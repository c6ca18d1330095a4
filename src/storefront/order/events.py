"""Domain events for the Order aggregate."""

from protean.fields import Boolean, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A paid checkout was turned into an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    payment_session_id = String(required=True)
    billing_email = String()
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String()
    requires_review = Boolean(default=False)


@storefront.event(part_of="Order")
class OrderPreparationStarted:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)


@storefront.event(part_of="Order")
class OrderDispatched:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)


@storefront.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    reason = String()


@storefront.event(part_of="Order")
class OrderPaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount_refunded = Float()
    fully_refunded = Boolean(default=True)
