"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (PAYMENT_GATEWAY=fake, the default)
- StripeGateway when PAYMENT_GATEWAY=stripe and STRIPE_SECRET_KEY is set
"""

from storefront.config import get_settings
from storefront.exceptions import ConfigurationError
from storefront.gateway.fake_adapter import DEFAULT_WEBHOOK_SECRET, FakeGateway
from storefront.gateway.port import PaymentGateway
from storefront.gateway.stripe_adapter import StripeGateway

_current_gateway: PaymentGateway | None = None


def build_gateway() -> PaymentGateway:
    """Build the gateway named by the current settings."""
    settings = get_settings()
    if settings.payment_gateway == "stripe":
        if not settings.stripe_secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY")
        return StripeGateway(
            api_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
        )
    if settings.is_production:
        raise ConfigurationError("PAYMENT_GATEWAY")
    return FakeGateway(webhook_secret=settings.stripe_webhook_secret or DEFAULT_WEBHOOK_SECRET)


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
