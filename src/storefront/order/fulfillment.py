"""Order fulfillment: commands and handler for the shop's staff.

Moves a paid order through the florist's workflow: preparing the
arrangement, sending it out with a driver, and recording delivery.
Cancellation is possible until the order has been delivered.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class StartPreparingOrder:
    """The florist has started making up the arrangement."""

    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class DispatchOrder:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class MarkOrderDelivered:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(StartPreparingOrder)
    def start_preparing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.start_preparing()
        repo.add(order)

    @handle(DispatchOrder)
    def dispatch(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.dispatch()
        repo.add(order)

    @handle(MarkOrderDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered()
        repo.add(order)

    @handle(CancelOrder)
    def cancel(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason)
        repo.add(order)
