"""Cart aggregate (CQRS): a shopper's line items, delivery choice and discount.

One cart per shopper session. Lines are keyed by (product_id, variant_id):
adding the same pair again bumps the quantity, a quantity of zero or less
removes the line. Totals are derived, never stored:

    subtotal = sum(price * quantity)
    total    = max(0, subtotal + delivery_fee - discount_amount)

A cart can be exported to and restored from a versioned snapshot dict, the
form it takes when handed to checkout.
"""

from datetime import UTC, date, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    DeliverySelected,
    GiftMessageSet,
)
from storefront.domain import storefront
from storefront.shared.money import from_minor, round_money, to_minor

SNAPSHOT_VERSION = 1
GIFT_MESSAGE_MAX_LENGTH = 200


class DeliveryType(Enum):
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    SCHEDULED = "scheduled"


def _coerce_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError({"quantity": ["Quantity must be a whole number"]})
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError({"quantity": ["Quantity must be a whole number"]})
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError({"quantity": ["Quantity must be a whole number"]}) from exc


def _variant_key(variant_id) -> str | None:
    return str(variant_id) if variant_id else None


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(required=True, max_length=255)
    variant_name = String(max_length=255)
    price = Float(required=True, min_value=0.0)
    image_url = String(max_length=1000)
    slug = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    gift_message = String(max_length=GIFT_MESSAGE_MAX_LENGTH)

    @property
    def line_total(self) -> float:
        return from_minor(to_minor(self.price) * self.quantity)

    def matches(self, product_id, variant_id=None) -> bool:
        return str(self.product_id) == str(product_id) and _variant_key(self.variant_id) == _variant_key(variant_id)


@storefront.aggregate
class Cart:
    session_id = String(max_length=255)
    customer_id = Identifier()
    items = HasMany(CartItem)
    delivery_date = String(max_length=10)  # ISO date
    delivery_type = String(choices=DeliveryType)
    delivery_postcode = String(max_length=10)
    delivery_fee = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=50)
    discount_amount = Float(default=0.0, min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id=None, customer_id=None):
        now = datetime.now(UTC)
        return cls(
            session_id=session_id,
            customer_id=customer_id,
            delivery_fee=0.0,
            discount_amount=0.0,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived totals
    # -------------------------------------------------------------------
    @property
    def subtotal_minor(self) -> int:
        return sum(to_minor(item.price) * item.quantity for item in self.items)

    @property
    def subtotal(self) -> float:
        return from_minor(self.subtotal_minor)

    @property
    def total(self) -> float:
        total = self.subtotal_minor + to_minor(self.delivery_fee) - to_minor(self.discount_amount)
        return from_minor(max(0, total))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_item(self, product_id, variant_id=None):
        return next((item for item in self.items if item.matches(product_id, variant_id)), None)

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------
    def add_item(self, product_id, name, price, variant_id=None, variant_name=None, image_url=None, slug=None):
        """Add one unit of a product, merging with an identical product/variant line."""
        existing = self.find_item(product_id, variant_id)
        if existing:
            existing.quantity += 1
            quantity = existing.quantity
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    variant_id=variant_id,
                    name=name,
                    variant_name=variant_name,
                    price=round_money(price),
                    image_url=image_url,
                    slug=slug,
                    quantity=1,
                )
            )
            quantity = 1

        self._touch()
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=_variant_key(variant_id),
                quantity=quantity,
            )
        )

    def remove_item(self, product_id, variant_id=None):
        """Remove a line. Removing a line that is not in the cart does nothing."""
        item = self.find_item(product_id, variant_id)
        if item is None:
            return

        self.remove_items(item)
        self._touch()
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=_variant_key(variant_id),
            )
        )

    def update_quantity(self, product_id, quantity, variant_id=None):
        quantity = _coerce_quantity(quantity)
        item = self.find_item(product_id, variant_id)
        if item is None:
            return

        if quantity <= 0:
            self.remove_item(product_id, variant_id)
            return

        previous = item.quantity
        item.quantity = quantity
        self._touch()
        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=_variant_key(variant_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def set_gift_message(self, product_id, message, variant_id=None):
        message = (message or "").strip() or None
        if message and len(message) > GIFT_MESSAGE_MAX_LENGTH:
            raise ValidationError(
                {"gift_message": [f"Gift message must be at most {GIFT_MESSAGE_MAX_LENGTH} characters"]}
            )

        item = self.find_item(product_id, variant_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})

        item.gift_message = message
        self._touch()
        self.raise_(
            GiftMessageSet(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=_variant_key(variant_id),
                gift_message=message,
            )
        )

    # -------------------------------------------------------------------
    # Delivery and discount
    # -------------------------------------------------------------------
    def set_delivery(self, delivery_date, delivery_type, postcode, fee):
        """Replace date, type, postcode and fee together."""
        errors = {}
        if delivery_date:
            try:
                date.fromisoformat(str(delivery_date))
            except ValueError:
                errors["delivery_date"] = ["Delivery date must be an ISO date (YYYY-MM-DD)"]
        if delivery_type and delivery_type not in {t.value for t in DeliveryType}:
            errors["delivery_type"] = ["Delivery type must be same_day, next_day or scheduled"]
        if fee is None or fee < 0:
            errors["delivery_fee"] = ["Delivery fee must be zero or more"]
        if errors:
            raise ValidationError(errors)

        self.delivery_date = str(delivery_date) if delivery_date else None
        self.delivery_type = delivery_type or None
        self.delivery_postcode = postcode.strip().upper() if postcode else None
        self.delivery_fee = round_money(fee)
        self._touch()
        self.raise_(
            DeliverySelected(
                cart_id=str(self.id),
                delivery_date=self.delivery_date,
                delivery_type=self.delivery_type,
                delivery_postcode=self.delivery_postcode,
                delivery_fee=self.delivery_fee,
            )
        )

    def apply_coupon(self, code, discount):
        """Replace any existing coupon and discount with this one."""
        if not code:
            raise ValidationError({"coupon_code": ["Coupon code is required"]})
        if discount is None or discount < 0:
            raise ValidationError({"discount_amount": ["Discount must be zero or more"]})

        self.coupon_code = code.strip().upper()
        self.discount_amount = round_money(discount)
        self._touch()
        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=self.coupon_code,
                discount_amount=self.discount_amount,
            )
        )

    def remove_coupon(self):
        previous = self.coupon_code
        self.coupon_code = None
        self.discount_amount = 0.0
        self._touch()
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=previous))

    def clear(self):
        """Empty the cart and reset delivery and discount."""
        for item in list(self.items):
            self.remove_items(item)
        self.delivery_date = None
        self.delivery_type = None
        self.delivery_postcode = None
        self.delivery_fee = 0.0
        self.coupon_code = None
        self.discount_amount = 0.0
        self._touch()
        self.raise_(CartCleared(cart_id=str(self.id)))

    # -------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------
    def to_snapshot(self) -> dict:
        return {
            "version": SNAPSHOT_VERSION,
            "items": [
                {
                    "product_id": str(item.product_id),
                    "variant_id": _variant_key(item.variant_id),
                    "name": item.name,
                    "variant_name": item.variant_name,
                    "price": item.price,
                    "image_url": item.image_url,
                    "slug": item.slug,
                    "quantity": item.quantity,
                    "gift_message": item.gift_message,
                }
                for item in self.items
            ],
            "delivery_date": self.delivery_date,
            "delivery_type": self.delivery_type,
            "delivery_postcode": self.delivery_postcode,
            "delivery_fee": self.delivery_fee,
            "coupon_code": self.coupon_code,
            "discount_amount": self.discount_amount,
        }

    @classmethod
    def from_snapshot(cls, snapshot: dict, session_id=None):
        """Rebuild a (transient) cart from a snapshot produced by ``to_snapshot``."""
        version = snapshot.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValidationError({"version": [f"Unsupported cart snapshot version: {version!r}"]})

        cart = cls.create(session_id=session_id)
        for line in snapshot.get("items", []):
            cart.add_items(
                CartItem(
                    product_id=line["product_id"],
                    variant_id=line.get("variant_id"),
                    name=line["name"],
                    variant_name=line.get("variant_name"),
                    price=round_money(line["price"]),
                    image_url=line.get("image_url"),
                    slug=line.get("slug"),
                    quantity=_coerce_quantity(line["quantity"]),
                    gift_message=line.get("gift_message"),
                )
            )
        cart.delivery_date = snapshot.get("delivery_date")
        cart.delivery_type = snapshot.get("delivery_type")
        cart.delivery_postcode = snapshot.get("delivery_postcode")
        cart.delivery_fee = round_money(snapshot.get("delivery_fee") or 0)
        cart.coupon_code = snapshot.get("coupon_code")
        cart.discount_amount = round_money(snapshot.get("discount_amount") or 0)
        return cart
