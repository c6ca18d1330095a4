"""Love Blooms storefront FastAPI application.

Web server that processes commands synchronously via HTTP. Each request is
wrapped in the storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay in domain.toml:
#   - unset/"development" → in-memory providers, sync processing
#   - "production"        → PostgreSQL, Stripe and verified tokens required
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.config import get_settings
from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context, get_logger

storefront.init()

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Love Blooms Storefront API",
    description="Florist storefront: carts, checkout, orders, gift cards and subscriptions",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().site_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context and a request id for each request."""
    add_context(request_id=request.headers.get("x-request-id") or uuid4().hex, path=request.url.path)
    try:
        with storefront.domain_context():
            response = await call_next(request)
        return response
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from storefront.api import (  # noqa: E402
    cart_router,
    checkout_router,
    gift_card_router,
    order_router,
    register_storefront_exception_handlers,
    subscription_router,
    webhook_router,
    wishlist_router,
)

app.include_router(checkout_router)
app.include_router(gift_card_router)
app.include_router(subscription_router)
app.include_router(webhook_router)
app.include_router(order_router)
app.include_router(cart_router)
app.include_router(wishlist_router)

register_storefront_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": storefront.name,
            "environment": settings.environment,
            "payment_gateway": settings.payment_gateway,
        }
    )
