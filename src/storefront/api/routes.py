"""FastAPI routes for the Storefront: checkout, payments, orders, carts and wishlists."""

import json

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.api.deps import current_identity
from storefront.api.schemas import (
    AddCartItemRequest,
    ApplyCartCouponRequest,
    CartDeliveryRequest,
    CartIdResponse,
    CartLineSchema,
    CartView,
    CheckoutRequest,
    CheckoutSessionResponse,
    CreateCartRequest,
    CreateWishlistRequest,
    GiftCardCheckoutRequest,
    GiftCardCodeRequest,
    GiftCardValidationResponse,
    GiftMessageRequest,
    OrderItemSchema,
    OrderListResponse,
    OrderSchema,
    RedeemGiftCardRequest,
    RedeemGiftCardResponse,
    StatusResponse,
    SubscriptionActionRequest,
    SubscriptionCheckoutRequest,
    SubscriptionIdResponse,
    UpdateCartQuantityRequest,
    WishlistIdResponse,
    WishlistItemRequest,
    WishlistItemSchema,
    WishlistToggleResponse,
    WishlistView,
)
from storefront.cart.cart import Cart
from storefront.cart.coupons import ApplyCartCoupon, RemoveCartCoupon
from storefront.cart.delivery import SetCartDelivery
from storefront.cart.items import AddCartItem, RemoveCartItem, SetCartGiftMessage, UpdateCartItemQuantity
from storefront.cart.management import ClearCart, CreateCart
from storefront.checkout.sessions import StartCheckout, StartGiftCardCheckout, StartSubscriptionCheckout
from storefront.exceptions import InsufficientBalanceError
from storefront.giftcard.ledger import redeem_gift_card, validate_gift_card
from storefront.identity import VerifiedIdentity
from storefront.order.history import orders_for_email
from storefront.subscription.lifecycle import CancelSubscription, PauseSubscription, ResumeSubscription
from storefront.subscription.subscription import Subscription
from storefront.webhook.receiver import receive_payment_event
from storefront.wishlist.management import (
    AddToWishlist,
    ClearWishlist,
    CreateWishlist,
    RemoveFromWishlist,
    ToggleWishlistItem,
)
from storefront.wishlist.wishlist import Wishlist


def _session_response(session) -> CheckoutSessionResponse:
    return CheckoutSessionResponse(session_id=session.session_id, url=session.url)


def _dump(model) -> str | None:
    return model.model_dump_json() if model is not None else None


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", response_model=CheckoutSessionResponse)
def start_checkout(body: CheckoutRequest) -> CheckoutSessionResponse:
    """Open a hosted checkout for a stored cart or an inline cart snapshot."""
    if body.cart_id:
        snapshot = current_domain.repository_for(Cart).get(body.cart_id).to_snapshot()
    elif body.cart is not None:
        snapshot = body.cart.model_dump()
    else:
        raise ValidationError({"cart": ["A cart_id or cart snapshot is required"]})

    command = StartCheckout(
        cart_snapshot=json.dumps(snapshot),
        billing_name=body.billing_name,
        billing_email=body.billing_email,
        billing_phone=body.billing_phone,
        billing_address=_dump(body.billing_address),
        recipient_name=body.recipient_name,
        recipient_phone=body.recipient_phone,
        delivery_address=_dump(body.delivery_address),
        delivery_instructions=body.delivery_instructions,
        coupon_code=body.coupon_code,
        gift_card_code=body.gift_card_code,
        loyalty_points_used=body.loyalty_points_used,
    )
    session = current_domain.process(command, asynchronous=False)
    return _session_response(session)


# ---------------------------------------------------------------------------
# Gift Card Router
# ---------------------------------------------------------------------------
gift_card_router = APIRouter(prefix="/gift-cards", tags=["gift-cards"])


@gift_card_router.post("/checkout", response_model=CheckoutSessionResponse)
def start_gift_card_checkout(body: GiftCardCheckoutRequest) -> CheckoutSessionResponse:
    command = StartGiftCardCheckout(
        amount=body.amount,
        sender_name=body.sender_name,
        sender_email=body.sender_email,
        recipient_name=body.recipient_name,
        recipient_email=body.recipient_email,
        message=body.message,
    )
    session = current_domain.process(command, asynchronous=False)
    return _session_response(session)


@gift_card_router.post("/validate", response_model=GiftCardValidationResponse)
def validate(body: GiftCardCodeRequest) -> GiftCardValidationResponse:
    card = validate_gift_card(body.code)
    return GiftCardValidationResponse(code=card.code, balance=card.current_balance, expires_at=card.expires_at)


@gift_card_router.post("/redeem", response_model=RedeemGiftCardResponse)
def redeem(body: RedeemGiftCardRequest) -> RedeemGiftCardResponse:
    """Deduct from a card. A short balance is reported in the body, not as an error status."""
    try:
        result = redeem_gift_card(body.code, body.amount, allow_partial=body.allow_partial, reference=body.reference)
    except InsufficientBalanceError as exc:
        return RedeemGiftCardResponse(
            valid=False,
            code=exc.code,
            requested=exc.requested,
            deducted=exc.deducted,
            remaining_balance=exc.remaining_balance,
            insufficient_balance=True,
        )

    return RedeemGiftCardResponse(
        valid=True,
        code=result.code,
        requested=result.requested,
        deducted=result.deducted,
        remaining_balance=result.remaining_balance,
        insufficient_balance=result.insufficient_balance,
    )


# ---------------------------------------------------------------------------
# Subscription Router
# ---------------------------------------------------------------------------
subscription_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _subscription_response(subscription_id) -> SubscriptionIdResponse:
    subscription = current_domain.repository_for(Subscription).get(subscription_id)
    return SubscriptionIdResponse(subscription_id=str(subscription.id), status=subscription.status)


@subscription_router.post("/checkout", response_model=CheckoutSessionResponse)
def start_subscription_checkout(body: SubscriptionCheckoutRequest) -> CheckoutSessionResponse:
    command = StartSubscriptionCheckout(
        plan_id=body.plan_id,
        plan_name=body.plan_name,
        frequency=body.frequency,
        price=body.price,
        customer_email=body.customer_email,
        customer_name=body.customer_name,
        user_id=body.user_id,
    )
    session = current_domain.process(command, asynchronous=False)
    return _session_response(session)


@subscription_router.post("/cancel", response_model=SubscriptionIdResponse)
def cancel_subscription(body: SubscriptionActionRequest) -> SubscriptionIdResponse:
    subscription_id = current_domain.process(
        CancelSubscription(subscription_id=body.subscription_id), asynchronous=False
    )
    return _subscription_response(subscription_id)


@subscription_router.post("/pause", response_model=SubscriptionIdResponse)
def pause_subscription(body: SubscriptionActionRequest) -> SubscriptionIdResponse:
    command = PauseSubscription(subscription_id=body.subscription_id)
    subscription_id = current_domain.process(command, asynchronous=False)
    return _subscription_response(subscription_id)


@subscription_router.post("/resume", response_model=SubscriptionIdResponse)
def resume_subscription(body: SubscriptionActionRequest) -> SubscriptionIdResponse:
    subscription_id = current_domain.process(
        ResumeSubscription(subscription_id=body.subscription_id), asynchronous=False
    )
    return _subscription_response(subscription_id)


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/payment")
async def payment_webhook(request: Request, stripe_signature: str | None = Header(default=None)) -> dict:
    """Processor notifications. The raw body is needed to verify the signature.

    Reading the body is the only async step; processing blocks on the
    per-session lock and the store, so it runs in the threadpool.
    """
    payload = await request.body()
    return await run_in_threadpool(receive_payment_event, payload, stripe_signature)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_schema(order) -> OrderSchema:
    return OrderSchema(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        items=[
            OrderItemSchema(
                product_id=item.product_id,
                variant_id=item.variant_id,
                product_name=item.product_name,
                product_image=item.product_image,
                variant_name=item.variant_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                gift_message=item.gift_message,
            )
            for item in order.items
        ],
        subtotal=order.subtotal or 0.0,
        delivery_fee=order.delivery_fee or 0.0,
        discount_amount=order.discount_amount or 0.0,
        gift_card_amount=order.gift_card_amount or 0.0,
        total=order.total or 0.0,
        amount_refunded=order.amount_refunded or 0.0,
        currency=order.currency,
        delivery_type=order.delivery_type,
        delivery_date=order.delivery_date,
        recipient_name=order.recipient_name,
        loyalty_points_earned=order.loyalty_points_earned or 0,
        created_at=order.created_at,
    )


@order_router.get("", response_model=OrderListResponse)
def my_orders(identity: VerifiedIdentity = Depends(current_identity)) -> OrderListResponse:
    """The caller's own orders, newest first."""
    return OrderListResponse(orders=[_order_schema(order) for order in orders_for_email(identity.email)])


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def _cart_view(cart_id) -> CartView:
    cart = current_domain.repository_for(Cart).get(cart_id)
    snapshot = cart.to_snapshot()
    return CartView(
        cart_id=str(cart.id),
        items=[CartLineSchema(**line) for line in snapshot["items"]],
        item_count=cart.item_count,
        subtotal=cart.subtotal,
        delivery_date=cart.delivery_date,
        delivery_type=cart.delivery_type,
        delivery_postcode=cart.delivery_postcode,
        delivery_fee=cart.delivery_fee or 0.0,
        coupon_code=cart.coupon_code,
        discount_amount=cart.discount_amount or 0.0,
        total=cart.total,
    )


@cart_router.post("", status_code=201, response_model=CartIdResponse)
def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(session_id=body.session_id, customer_id=body.customer_id)
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartView)
def get_cart(cart_id: str) -> CartView:
    return _cart_view(cart_id)


@cart_router.post("/{cart_id}/items", response_model=CartView)
def add_cart_item(cart_id: str, body: AddCartItemRequest) -> CartView:
    command = AddCartItem(
        cart_id=cart_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        name=body.name,
        variant_name=body.variant_name,
        price=body.price,
        image_url=body.image_url,
        slug=body.slug,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.put("/{cart_id}/items/{product_id}/quantity", response_model=CartView)
def update_cart_quantity(
    cart_id: str, product_id: str, body: UpdateCartQuantityRequest, variant_id: str | None = None
) -> CartView:
    command = UpdateCartItemQuantity(
        cart_id=cart_id,
        product_id=product_id,
        variant_id=variant_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.put("/{cart_id}/items/{product_id}/gift-message", response_model=CartView)
def set_gift_message(
    cart_id: str, product_id: str, body: GiftMessageRequest, variant_id: str | None = None
) -> CartView:
    command = SetCartGiftMessage(
        cart_id=cart_id,
        product_id=product_id,
        variant_id=variant_id,
        gift_message=body.gift_message,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=CartView)
def remove_cart_item(cart_id: str, product_id: str, variant_id: str | None = None) -> CartView:
    command = RemoveCartItem(cart_id=cart_id, product_id=product_id, variant_id=variant_id)
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.put("/{cart_id}/delivery", response_model=CartView)
def set_delivery(cart_id: str, body: CartDeliveryRequest) -> CartView:
    command = SetCartDelivery(
        cart_id=cart_id,
        delivery_date=body.delivery_date,
        delivery_type=body.delivery_type,
        delivery_postcode=body.delivery_postcode,
        delivery_fee=body.delivery_fee,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.put("/{cart_id}/coupon", response_model=CartView)
def apply_coupon(cart_id: str, body: ApplyCartCouponRequest) -> CartView:
    command = ApplyCartCoupon(cart_id=cart_id, coupon_code=body.coupon_code)
    current_domain.process(command, asynchronous=False)
    return _cart_view(cart_id)


@cart_router.delete("/{cart_id}/coupon", response_model=CartView)
def remove_coupon(cart_id: str) -> CartView:
    current_domain.process(RemoveCartCoupon(cart_id=cart_id), asynchronous=False)
    return _cart_view(cart_id)


@cart_router.delete("/{cart_id}", response_model=StatusResponse)
def clear_cart(cart_id: str) -> StatusResponse:
    current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse(status="cleared")


# ---------------------------------------------------------------------------
# Wishlist Router
# ---------------------------------------------------------------------------
wishlist_router = APIRouter(prefix="/wishlists", tags=["wishlists"])


def _wishlist_view(wishlist_id) -> WishlistView:
    wishlist = current_domain.repository_for(Wishlist).get(wishlist_id)
    return WishlistView(
        wishlist_id=str(wishlist.id),
        items=[
            WishlistItemSchema(
                product_id=str(item.product_id),
                name=item.name,
                price=item.price,
                image_url=item.image_url,
                slug=item.slug,
            )
            for item in wishlist.items
        ],
    )


@wishlist_router.post("", status_code=201, response_model=WishlistIdResponse)
def create_wishlist(body: CreateWishlistRequest) -> WishlistIdResponse:
    command = CreateWishlist(session_id=body.session_id, customer_id=body.customer_id)
    result = current_domain.process(command, asynchronous=False)
    return WishlistIdResponse(wishlist_id=result)


@wishlist_router.get("/{wishlist_id}", response_model=WishlistView)
def get_wishlist(wishlist_id: str) -> WishlistView:
    return _wishlist_view(wishlist_id)


@wishlist_router.post("/{wishlist_id}/items", response_model=WishlistView)
def add_to_wishlist(wishlist_id: str, body: WishlistItemRequest) -> WishlistView:
    command = AddToWishlist(
        wishlist_id=wishlist_id,
        product_id=body.product_id,
        name=body.name,
        price=body.price,
        image_url=body.image_url,
        slug=body.slug,
    )
    current_domain.process(command, asynchronous=False)
    return _wishlist_view(wishlist_id)


@wishlist_router.post("/{wishlist_id}/toggle", response_model=WishlistToggleResponse)
def toggle_wishlist_item(wishlist_id: str, body: WishlistItemRequest) -> WishlistToggleResponse:
    command = ToggleWishlistItem(
        wishlist_id=wishlist_id,
        product_id=body.product_id,
        name=body.name,
        price=body.price,
        image_url=body.image_url,
        slug=body.slug,
    )
    saved = current_domain.process(command, asynchronous=False)
    return WishlistToggleResponse(product_id=body.product_id, saved=saved)


@wishlist_router.delete("/{wishlist_id}/items/{product_id}", response_model=WishlistView)
def remove_from_wishlist(wishlist_id: str, product_id: str) -> WishlistView:
    current_domain.process(RemoveFromWishlist(wishlist_id=wishlist_id, product_id=product_id), asynchronous=False)
    return _wishlist_view(wishlist_id)


@wishlist_router.delete("/{wishlist_id}", response_model=StatusResponse)
def clear_wishlist(wishlist_id: str) -> StatusResponse:
    current_domain.process(ClearWishlist(wishlist_id=wishlist_id), asynchronous=False)
    return StatusResponse(status="cleared")
