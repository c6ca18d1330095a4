"""Wishlist aggregate: the set of products a shopper has saved for later.

Each product appears at most once. Adding a product that is already saved
is a no-op.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, HasMany, Identifier, String

from storefront.domain import storefront
from storefront.wishlist.events import WishlistCleared, WishlistItemAdded, WishlistItemRemoved


@storefront.entity(part_of="Wishlist")
class WishlistItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(min_value=0.0)
    image_url = String(max_length=1000)
    slug = String(max_length=255)
    added_at = DateTime()


@storefront.aggregate
class Wishlist:
    session_id = String(max_length=255)
    customer_id = Identifier()
    items = HasMany(WishlistItem)
    updated_at = DateTime()

    @classmethod
    def create(cls, session_id=None, customer_id=None):
        return cls(session_id=session_id, customer_id=customer_id, updated_at=datetime.now(UTC))

    def _find(self, product_id):
        return next((item for item in self.items if str(item.product_id) == str(product_id)), None)

    def contains(self, product_id) -> bool:
        return self._find(product_id) is not None

    def add(self, product_id, name, price=None, image_url=None, slug=None):
        if self.contains(product_id):
            return

        now = datetime.now(UTC)
        self.add_items(
            WishlistItem(
                product_id=product_id,
                name=name,
                price=price,
                image_url=image_url,
                slug=slug,
                added_at=now,
            )
        )
        self.updated_at = now
        self.raise_(WishlistItemAdded(wishlist_id=str(self.id), product_id=str(product_id)))

    def remove(self, product_id):
        item = self._find(product_id)
        if item is None:
            return

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(WishlistItemRemoved(wishlist_id=str(self.id), product_id=str(product_id)))

    def toggle(self, product_id, name, price=None, image_url=None, slug=None) -> bool:
        """Add the product if absent, remove it if present. Returns whether it is now saved."""
        if self.contains(product_id):
            self.remove(product_id)
            return False
        self.add(product_id, name, price=price, image_url=image_url, slug=slug)
        return True

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(WishlistCleared(wishlist_id=str(self.id)))
