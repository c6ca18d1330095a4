"""Cart coupons: apply a code from the coupon catalogue, or remove it."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.coupon.management import coupon_by_code
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class ApplyCartCoupon:
    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class RemoveCartCoupon:
    cart_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class CartCouponHandler:
    @handle(ApplyCartCoupon)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        coupon = coupon_by_code(command.coupon_code)
        if coupon is None:
            raise ValidationError({"coupon_code": ["Coupon not found"]})
        discount = coupon.validate(cart.subtotal, delivery_fee=cart.delivery_fee)

        cart.apply_coupon(coupon.code, discount)
        repo.add(cart)
        return discount

    @handle(RemoveCartCoupon)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_coupon()
        repo.add(cart)
