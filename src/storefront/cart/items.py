"""Cart line items: commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddCartItem:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(required=True, max_length=255)
    variant_name = String(max_length=255)
    price = Float(required=True, min_value=0.0)
    image_url = String(max_length=1000)
    slug = String(max_length=255)


@storefront.command(part_of="Cart")
class RemoveCartItem:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()


@storefront.command(part_of="Cart")
class UpdateCartItemQuantity:
    """Set a line's quantity. Zero or less removes the line."""

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@storefront.command(part_of="Cart")
class SetCartGiftMessage:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    gift_message = String(max_length=1000)  # length rule enforced by the aggregate


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            name=command.name,
            variant_name=command.variant_name,
            price=command.price,
            image_url=command.image_url,
            slug=command.slug,
        )
        repo.add(cart)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(product_id=command.product_id, variant_id=command.variant_id)
        repo.add(cart)

    @handle(UpdateCartItemQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            variant_id=command.variant_id,
        )
        repo.add(cart)

    @handle(SetCartGiftMessage)
    def set_gift_message(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.set_gift_message(
            product_id=command.product_id,
            message=command.gift_message,
            variant_id=command.variant_id,
        )
        repo.add(cart)
