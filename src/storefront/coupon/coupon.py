"""Coupon aggregate: promotional codes applied to carts at checkout time.

A coupon is looked up by its upper-cased code. ``validate`` checks that it
can be used against an order of a given value and returns the discount it
grants; ``record_use`` counts a redemption once the paid order exists.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from storefront.coupon.events import CouponCreated, CouponDeactivated, CouponUsed
from storefront.domain import storefront
from storefront.shared.money import from_minor, round_money, to_minor


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_DELIVERY = "free_delivery"


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    description = String(max_length=500)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(default=0.0, min_value=0.0)
    minimum_order = Float(default=0.0, min_value=0.0)
    max_uses = Integer(min_value=1)
    times_used = Integer(default=0, min_value=0)
    starts_at = DateTime()
    expires_at = DateTime()
    is_active = Boolean(default=True)
    created_at = DateTime()

    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value=0.0,
        description=None,
        minimum_order=0.0,
        max_uses=None,
        starts_at=None,
        expires_at=None,
    ):
        if discount_type == DiscountType.PERCENTAGE.value and not 0 < (discount_value or 0) <= 100:
            raise ValidationError({"discount_value": ["Percentage discounts must be between 0 and 100"]})

        coupon = cls(
            code=code.strip().upper(),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value or 0.0,
            minimum_order=minimum_order or 0.0,
            max_uses=max_uses,
            times_used=0,
            starts_at=starts_at,
            expires_at=expires_at,
            is_active=True,
            created_at=datetime.now(UTC),
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
            )
        )
        return coupon

    def validate(self, order_subtotal, delivery_fee=0.0, now=None) -> float:
        """Return the discount this coupon grants, or raise ``ValidationError``."""
        now = now or datetime.now(UTC)

        if not self.is_active:
            raise ValidationError({"coupon_code": ["Coupon is no longer active"]})
        if self.max_uses and (self.times_used or 0) >= self.max_uses:
            raise ValidationError({"coupon_code": ["Coupon has reached maximum uses"]})
        if self.starts_at and _aware(self.starts_at) > now:
            raise ValidationError({"coupon_code": ["Coupon is not active yet"]})
        if self.expires_at and _aware(self.expires_at) < now:
            raise ValidationError({"coupon_code": ["Coupon has expired"]})
        if self.minimum_order and order_subtotal < self.minimum_order:
            raise ValidationError({"coupon_code": [f"Minimum order of £{self.minimum_order:.2f} required"]})

        return self.discount_for(order_subtotal, delivery_fee)

    def discount_for(self, order_subtotal, delivery_fee=0.0) -> float:
        subtotal_minor = to_minor(order_subtotal)
        if self.discount_type == DiscountType.PERCENTAGE.value:
            return round_money(from_minor(subtotal_minor) * self.discount_value / 100)
        if self.discount_type == DiscountType.FIXED_AMOUNT.value:
            return from_minor(min(to_minor(self.discount_value), subtotal_minor))
        return round_money(delivery_fee)

    def record_use(self, order_number=None):
        self.times_used = (self.times_used or 0) + 1
        self.raise_(
            CouponUsed(
                coupon_id=str(self.id),
                code=self.code,
                order_number=order_number,
                times_used=self.times_used,
            )
        )

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))
