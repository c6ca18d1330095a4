"""Refunds reported by the payment processor."""

import structlog
from protean import handle
from protean.fields import Boolean, Float, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class MarkOrderRefunded:
    payment_intent_id = String(required=True, max_length=255)
    amount_refunded = Float()  # running total on the charge
    fully_refunded = Boolean(default=False)


@storefront.command_handler(part_of=Order)
class OrderRefundHandler:
    @handle(MarkOrderRefunded)
    def mark_refunded(self, command):
        repo = current_domain.repository_for(Order)
        matches = repo._dao.query.filter(payment_intent_id=command.payment_intent_id).all().items
        if not matches:
            logger.warning("Refund for unknown payment", payment_intent_id=command.payment_intent_id)
            return None

        order = matches[0]
        order.record_refund(amount_refunded=command.amount_refunded, fully_refunded=command.fully_refunded)
        repo.add(order)
        logger.info(
            "Refund recorded",
            order_number=order.order_number,
            amount_refunded=order.amount_refunded,
            payment_status=order.payment_status,
        )
        return order.order_number
