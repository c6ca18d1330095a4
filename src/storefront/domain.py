"""Storefront bounded context: carts, checkout, orders, gift cards and subscriptions.

Orders, gift cards and subscriptions are only ever created from verified
payment notifications. Carts and wishlists are plain CQRS aggregates owned by
a shopper session.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
