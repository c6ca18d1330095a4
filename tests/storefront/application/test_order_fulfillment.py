"""Application tests for order fulfillment transitions and order history."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from storefront.order.fulfillment import CancelOrder, DispatchOrder, MarkOrderDelivered, StartPreparingOrder
from storefront.order.history import orders_for_email
from storefront.order.numbering import allocate_order_number, generate_order_number
from storefront.order.order import Order, OrderStatus


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _place(session_id="cs_test_123", email="ada@example.com", created_at=None):
    order = Order.place(
        order_number=allocate_order_number(),
        items=[
            {
                "product_id": "rose-bouquet",
                "product_name": "Classic Rose Bouquet",
                "quantity": 1,
                "unit_price": 49.99,
                "total_price": 49.99,
            }
        ],
        payment_session_id=session_id,
        total=49.99,
        billing_email=email,
    )
    if created_at is not None:
        order.created_at = created_at
    current_domain.repository_for(Order).add(order)
    return str(order.id)


def _status(order_id):
    return current_domain.repository_for(Order).get(order_id).status


class TestFulfillment:
    def test_happy_path(self):
        order_id = _place()
        _process(StartPreparingOrder(order_id=order_id))
        _process(DispatchOrder(order_id=order_id))
        _process(MarkOrderDelivered(order_id=order_id))
        assert _status(order_id) == OrderStatus.DELIVERED.value

    def test_cannot_skip_preparation(self):
        order_id = _place()
        with pytest.raises(ValidationError):
            _process(DispatchOrder(order_id=order_id))
        assert _status(order_id) == OrderStatus.CONFIRMED.value

    def test_cancel_records_reason(self):
        order_id = _place()
        _process(CancelOrder(order_id=order_id, reason="Recipient away"))
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Recipient away"

    def test_delivered_order_cannot_be_cancelled(self):
        order_id = _place()
        _process(StartPreparingOrder(order_id=order_id))
        _process(DispatchOrder(order_id=order_id))
        _process(MarkOrderDelivered(order_id=order_id))
        with pytest.raises(ValidationError):
            _process(CancelOrder(order_id=order_id))


class TestOrderNumbers:
    def test_format(self):
        number = generate_order_number(datetime(2026, 10, 18, tzinfo=UTC))
        assert number.startswith("LB-20261018-")
        assert len(number) == len("LB-20261018-ABCD")

    def test_allocation_retries_then_gives_up(self, monkeypatch):
        monkeypatch.setattr("storefront.order.numbering.order_number_taken", lambda number: True)
        with pytest.raises(ValidationError):
            allocate_order_number()


class TestHistory:
    def test_only_own_orders_newest_first(self):
        now = datetime.now(UTC)
        older = _place("cs_1", created_at=now - timedelta(days=2))
        newer = _place("cs_2", created_at=now - timedelta(days=1))
        _place("cs_3", email="bea@example.com")

        orders = orders_for_email("ADA@example.com ")
        assert [str(order.id) for order in orders] == [newer, older]

    def test_limit(self):
        for index in range(3):
            _place(f"cs_{index}")
        assert len(orders_for_email("ada@example.com", limit=2)) == 2
