"""Tests for the Order aggregate: placement, fulfillment transitions and refunds."""

import pytest
from protean.exceptions import ValidationError

from storefront.order.events import OrderCancelled, OrderPaymentRefunded, OrderPlaced
from storefront.order.order import Order, OrderStatus, PaymentStatus


def _order(**overrides):
    defaults = {
        "order_number": "LB-20261018-ABCD",
        "items": [
            {
                "product_id": "rose-bouquet",
                "product_name": "Classic Rose Bouquet",
                "quantity": 2,
                "unit_price": 49.99,
                "total_price": 99.98,
            }
        ],
        "payment_session_id": "cs_test_123",
        "payment_intent_id": "pi_123",
        "subtotal": 99.98,
        "discount_amount": 9.99,
        "total": 89.99,
        "billing_email": "ada@example.com",
        "delivery_address": {"line1": "1 Flower Lane", "city": "London", "postcode": "SW1A 1AA"},
    }
    defaults.update(overrides)
    return Order.place(**defaults)


class TestPlace:
    def test_placed_order_is_confirmed_and_paid(self):
        order = _order()
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_items_and_address_are_built(self):
        order = _order()
        assert order.items[0].total_price == 99.98
        assert order.delivery_address.postcode == "SW1A 1AA"
        assert order.delivery_address.country == "GB"

    def test_order_placed_event(self):
        event = _order()._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.item_count == 2
        assert event.total == 89.99

    def test_order_without_items_is_allowed_for_review(self):
        order = _order(items=[], requires_review=True, review_reason="Unreadable metadata")
        assert order.items == []
        assert order.requires_review is True


class TestTransitions:
    def test_happy_path(self):
        order = _order()
        order.start_preparing()
        order.dispatch()
        order.mark_delivered()
        assert order.status == OrderStatus.DELIVERED.value

    def test_cannot_skip_preparation(self):
        order = _order()
        with pytest.raises(ValidationError):
            order.dispatch()

    @pytest.mark.parametrize("steps", [[], ["start_preparing"], ["start_preparing", "dispatch"]])
    def test_cancel_from_non_terminal_states(self, steps):
        order = _order()
        for step in steps:
            getattr(order, step)()
        order.cancel(reason="Customer request")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Customer request"
        assert isinstance(order._events[-1], OrderCancelled)

    def test_delivered_is_terminal(self):
        order = _order()
        order.start_preparing()
        order.dispatch()
        order.mark_delivered()
        with pytest.raises(ValidationError):
            order.cancel()

    def test_cancelled_is_terminal(self):
        order = _order()
        order.cancel()
        with pytest.raises(ValidationError):
            order.start_preparing()


class TestRefund:
    def test_refund_marks_payment_refunded(self):
        order = _order()
        order.record_refund(amount_refunded=89.99)
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert isinstance(order._events[-1], OrderPaymentRefunded)

    def test_repeated_refund_is_ignored(self):
        order = _order()
        order.record_refund(89.99)
        order.record_refund(89.99)
        assert len([e for e in order._events if isinstance(e, OrderPaymentRefunded)]) == 1

    def test_partial_refund_keeps_order_paid(self):
        order = _order()
        order.record_refund(amount_refunded=5.0)
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.amount_refunded == 5.0
        assert order._events[-1].fully_refunded is False

    def test_partial_refunds_accumulate_until_full(self):
        order = _order()
        order.record_refund(5.0)
        order.record_refund(5.0)
        order.record_refund(89.99)
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert len([e for e in order._events if isinstance(e, OrderPaymentRefunded)]) == 2

    def test_processor_full_refund_flag_wins(self):
        order = _order()
        order.record_refund(amount_refunded=80.0, fully_refunded=True)
        assert order.payment_status == PaymentStatus.REFUNDED.value
