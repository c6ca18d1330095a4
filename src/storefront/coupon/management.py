"""Coupon management: commands, handler and lookup by code."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.domain import storefront


def coupon_by_code(code):
    """Return the coupon with this code (case-insensitive), or None."""
    if not code:
        return None
    repo = current_domain.repository_for(Coupon)
    matches = repo._dao.query.filter(code=code.strip().upper()).all().items
    return matches[0] if matches else None


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, max_length=20)
    discount_value = Float(default=0.0)
    description = String(max_length=500)
    minimum_order = Float(default=0.0)
    max_uses = Integer()
    starts_at = DateTime()
    expires_at = DateTime()


@storefront.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        if coupon_by_code(command.code) is not None:
            raise ValidationError({"code": ["A coupon with this code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            description=command.description,
            minimum_order=command.minimum_order,
            max_uses=command.max_uses,
            starts_at=command.starts_at,
            expires_at=command.expires_at,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.deactivate()
        repo.add(coupon)
