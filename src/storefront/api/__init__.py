"""Storefront API package."""

from storefront.api.errors import register_storefront_exception_handlers
from storefront.api.routes import (
    cart_router,
    checkout_router,
    gift_card_router,
    order_router,
    subscription_router,
    webhook_router,
    wishlist_router,
)

__all__ = [
    "cart_router",
    "checkout_router",
    "gift_card_router",
    "order_router",
    "register_storefront_exception_handlers",
    "subscription_router",
    "webhook_router",
    "wishlist_router",
]
