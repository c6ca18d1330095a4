"""Cart delivery selection: command and handler.

When no fee is supplied the fee is quoted from the delivery zone covering
the postcode.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.delivery.zone import quote_delivery
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class SetCartDelivery:
    cart_id = Identifier(required=True)
    delivery_date = String(max_length=10)
    delivery_type = String(max_length=20)
    delivery_postcode = String(max_length=10)
    delivery_fee = Float(min_value=0.0)


@storefront.command_handler(part_of=Cart)
class SetCartDeliveryHandler:
    @handle(SetCartDelivery)
    def set_delivery(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        fee = command.delivery_fee
        if fee is None:
            fee = (
                quote_delivery(command.delivery_postcode, command.delivery_type, cart.subtotal)
                if command.delivery_postcode
                else 0.0
            )

        cart.set_delivery(
            delivery_date=command.delivery_date,
            delivery_type=command.delivery_type,
            postcode=command.delivery_postcode,
            fee=fee,
        )
        repo.add(cart)
        return cart.delivery_fee
