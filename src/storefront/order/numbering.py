"""Human-readable order numbers: ``LB-YYYYMMDD-XXXX``."""

import secrets
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.order.order import Order

SUFFIX_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_ATTEMPTS = 10


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(4))
    return f"LB-{now:%Y%m%d}-{suffix}"


def order_number_taken(order_number: str) -> bool:
    repo = current_domain.repository_for(Order)
    return bool(repo._dao.query.filter(order_number=order_number).all().items)


def allocate_order_number(now: datetime | None = None) -> str:
    """Return a number no stored order uses yet.

    The unique field on ``Order.order_number`` still guards the narrow window
    between this check and the commit.
    """
    for _ in range(MAX_ATTEMPTS):
        candidate = generate_order_number(now)
        if not order_number_taken(candidate):
            return candidate
    raise ValidationError({"order_number": ["Could not allocate a unique order number"]})
