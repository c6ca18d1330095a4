"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Money crosses this boundary in pounds.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    line1: str = Field(min_length=1, max_length=255)
    line2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    county: str | None = Field(default=None, max_length=100)
    postcode: str = Field(min_length=1, max_length=10)
    country: str = Field(default="GB", min_length=2, max_length=2, description="ISO 3166-1 alpha-2 code")


class CartLineSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str
    variant_name: str | None = None
    price: float = Field(ge=0)
    image_url: str | None = None
    slug: str | None = None
    quantity: int = Field(ge=1)
    gift_message: str | None = Field(default=None, max_length=200)


class CartSnapshotSchema(BaseModel):
    version: int = 1
    items: list[CartLineSchema] = []
    delivery_date: str | None = None
    delivery_type: str | None = None
    delivery_postcode: str | None = None
    delivery_fee: float = Field(default=0.0, ge=0)
    coupon_code: str | None = None
    discount_amount: float = Field(default=0.0, ge=0)


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    """Either ``cart_id`` of a stored cart or an inline ``cart`` snapshot."""

    cart_id: str | None = None
    cart: CartSnapshotSchema | None = None
    billing_name: str | None = Field(default=None, max_length=255)
    billing_email: str | None = Field(default=None, max_length=254)
    billing_phone: str | None = Field(default=None, max_length=30)
    billing_address: AddressSchema | None = None
    recipient_name: str | None = Field(default=None, max_length=255)
    recipient_phone: str | None = Field(default=None, max_length=30)
    delivery_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    coupon_code: str | None = None
    gift_card_code: str | None = None
    loyalty_points_used: int = Field(default=0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart": {
                        "version": 1,
                        "items": [
                            {
                                "product_id": "rose-bouquet",
                                "name": "Classic Rose Bouquet",
                                "price": 49.99,
                                "quantity": 2,
                            }
                        ],
                        "delivery_fee": 0.0,
                    },
                    "billing_name": "Ada Bloom",
                    "billing_email": "ada@example.com",
                    "coupon_code": "SPRING10",
                }
            ]
        }
    }


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str


# ---------------------------------------------------------------------------
# Gift cards
# ---------------------------------------------------------------------------
class GiftCardCheckoutRequest(BaseModel):
    amount: float
    sender_name: str | None = None
    sender_email: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    message: str | None = Field(default=None, max_length=1000)


class GiftCardCodeRequest(BaseModel):
    code: str = Field(min_length=1)


class GiftCardValidationResponse(BaseModel):
    valid: bool = True
    code: str
    balance: float
    expires_at: datetime | None = None


class RedeemGiftCardRequest(BaseModel):
    code: str = Field(min_length=1)
    amount: float = Field(gt=0)
    allow_partial: bool = True
    reference: str | None = None


class RedeemGiftCardResponse(BaseModel):
    valid: bool
    code: str
    requested: float
    deducted: float
    remaining_balance: float
    insufficient_balance: bool


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
class SubscriptionCheckoutRequest(BaseModel):
    plan_id: str
    plan_name: str
    frequency: str  # weekly, fortnightly, monthly
    price: float = Field(gt=0)
    customer_email: str | None = None
    customer_name: str | None = None
    user_id: str | None = None


class SubscriptionActionRequest(BaseModel):
    subscription_id: str


class SubscriptionIdResponse(BaseModel):
    subscription_id: str
    status: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    product_name: str
    product_image: str | None = None
    variant_name: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    gift_message: str | None = None


class OrderSchema(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str
    items: list[OrderItemSchema]
    subtotal: float
    delivery_fee: float
    discount_amount: float
    gift_card_amount: float
    total: float
    amount_refunded: float = 0.0
    currency: str
    delivery_type: str | None = None
    delivery_date: str | None = None
    recipient_name: str | None = None
    loyalty_points_earned: int = 0
    created_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    session_id: str | None = None
    customer_id: str | None = None


class CartIdResponse(BaseModel):
    cart_id: str


class AddCartItemRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str
    variant_name: str | None = None
    price: float = Field(ge=0)
    image_url: str | None = None
    slug: str | None = None


class UpdateCartQuantityRequest(BaseModel):
    quantity: int


class GiftMessageRequest(BaseModel):
    gift_message: str | None = None


class CartDeliveryRequest(BaseModel):
    delivery_date: str | None = None
    delivery_type: str | None = None
    delivery_postcode: str | None = None
    delivery_fee: float | None = Field(default=None, ge=0)


class ApplyCartCouponRequest(BaseModel):
    coupon_code: str = Field(min_length=1)


class CartView(BaseModel):
    cart_id: str
    items: list[CartLineSchema]
    item_count: int
    subtotal: float
    delivery_date: str | None = None
    delivery_type: str | None = None
    delivery_postcode: str | None = None
    delivery_fee: float
    coupon_code: str | None = None
    discount_amount: float
    total: float


# ---------------------------------------------------------------------------
# Wishlists
# ---------------------------------------------------------------------------
class CreateWishlistRequest(BaseModel):
    session_id: str | None = None
    customer_id: str | None = None


class WishlistIdResponse(BaseModel):
    wishlist_id: str


class WishlistItemRequest(BaseModel):
    product_id: str
    name: str
    price: float | None = Field(default=None, ge=0)
    image_url: str | None = None
    slug: str | None = None


class WishlistToggleResponse(BaseModel):
    product_id: str
    saved: bool


class WishlistItemSchema(BaseModel):
    product_id: str
    name: str
    price: float | None = None
    image_url: str | None = None
    slug: str | None = None


class WishlistView(BaseModel):
    wishlist_id: str
    items: list[WishlistItemSchema]
