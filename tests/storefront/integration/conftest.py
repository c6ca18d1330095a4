import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api import (
    cart_router,
    checkout_router,
    gift_card_router,
    order_router,
    register_storefront_exception_handlers,
    subscription_router,
    webhook_router,
    wishlist_router,
)


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(gift_card_router)
    app.include_router(subscription_router)
    app.include_router(webhook_router)
    app.include_router(order_router)
    app.include_router(cart_router)
    app.include_router(wishlist_router)
    register_storefront_exception_handlers(app)
    return TestClient(app)
