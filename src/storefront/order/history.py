"""Read side for a shopper's own orders."""

from protean.utils.globals import current_domain

from storefront.order.order import Order

ORDER_HISTORY_LIMIT = 50


def orders_for_email(email: str, limit: int = ORDER_HISTORY_LIMIT) -> list[Order]:
    """Orders billed to ``email``, newest first."""
    repo = current_domain.repository_for(Order)
    return (
        repo._dao.query.filter(billing_email=email.strip().lower())
        .order_by("-created_at")
        .limit(limit)
        .all()
        .items
    )
