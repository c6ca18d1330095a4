"""Tests for the Wishlist aggregate."""

from storefront.wishlist.events import WishlistItemAdded
from storefront.wishlist.wishlist import Wishlist


def _wishlist():
    return Wishlist.create(session_id="sess-001")


class TestWishlist:
    def test_add_saves_product(self):
        wishlist = _wishlist()
        wishlist.add("peonies", "Pink Peonies", price=45.0)
        assert wishlist.contains("peonies")

    def test_adding_twice_keeps_one_entry(self):
        wishlist = _wishlist()
        wishlist.add("peonies", "Pink Peonies")
        wishlist.add("peonies", "Pink Peonies")
        assert len(wishlist.items) == 1
        assert len([e for e in wishlist._events if isinstance(e, WishlistItemAdded)]) == 1

    def test_toggle_adds_then_removes(self):
        wishlist = _wishlist()
        assert wishlist.toggle("peonies", "Pink Peonies") is True
        assert wishlist.toggle("peonies", "Pink Peonies") is False
        assert not wishlist.contains("peonies")

    def test_remove_missing_is_noop(self):
        wishlist = _wishlist()
        wishlist.remove("peonies")
        assert wishlist.items == []

    def test_clear(self):
        wishlist = _wishlist()
        wishlist.add("peonies", "Pink Peonies")
        wishlist.add("lilies", "White Lilies")
        wishlist.clear()
        assert wishlist.items == []
