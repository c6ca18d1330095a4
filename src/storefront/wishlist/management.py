"""Wishlist commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.wishlist.wishlist import Wishlist


@storefront.command(part_of="Wishlist")
class CreateWishlist:
    session_id = String(max_length=255)
    customer_id = Identifier()


@storefront.command(part_of="Wishlist")
class AddToWishlist:
    wishlist_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(min_value=0.0)
    image_url = String(max_length=1000)
    slug = String(max_length=255)


@storefront.command(part_of="Wishlist")
class ToggleWishlistItem:
    wishlist_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(min_value=0.0)
    image_url = String(max_length=1000)
    slug = String(max_length=255)


@storefront.command(part_of="Wishlist")
class RemoveFromWishlist:
    wishlist_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="Wishlist")
class ClearWishlist:
    wishlist_id = Identifier(required=True)


@storefront.command_handler(part_of=Wishlist)
class ManageWishlistHandler:
    @handle(CreateWishlist)
    def create_wishlist(self, command):
        wishlist = Wishlist.create(session_id=command.session_id, customer_id=command.customer_id)
        current_domain.repository_for(Wishlist).add(wishlist)
        return str(wishlist.id)

    @handle(AddToWishlist)
    def add_to_wishlist(self, command):
        repo = current_domain.repository_for(Wishlist)
        wishlist = repo.get(command.wishlist_id)
        wishlist.add(
            product_id=command.product_id,
            name=command.name,
            price=command.price,
            image_url=command.image_url,
            slug=command.slug,
        )
        repo.add(wishlist)

    @handle(ToggleWishlistItem)
    def toggle_item(self, command):
        repo = current_domain.repository_for(Wishlist)
        wishlist = repo.get(command.wishlist_id)
        saved = wishlist.toggle(
            product_id=command.product_id,
            name=command.name,
            price=command.price,
            image_url=command.image_url,
            slug=command.slug,
        )
        repo.add(wishlist)
        return saved

    @handle(RemoveFromWishlist)
    def remove_from_wishlist(self, command):
        repo = current_domain.repository_for(Wishlist)
        wishlist = repo.get(command.wishlist_id)
        wishlist.remove(command.product_id)
        repo.add(wishlist)

    @handle(ClearWishlist)
    def clear_wishlist(self, command):
        repo = current_domain.repository_for(Wishlist)
        wishlist = repo.get(command.wishlist_id)
        wishlist.clear()
        repo.add(wishlist)
