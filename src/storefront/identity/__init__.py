"""Identity provider factory.

Mirrors the payment gateway factory: get_identity_provider() builds a
``JwtIdentityProvider`` from settings on first use, tests swap in a
``FakeIdentityProvider`` with set_identity_provider().
"""

from storefront.config import get_settings
from storefront.identity.fake_adapter import FakeIdentityProvider
from storefront.identity.jwt_adapter import JwtIdentityProvider
from storefront.identity.port import IdentityProvider, VerifiedIdentity

__all__ = [
    "FakeIdentityProvider",
    "IdentityProvider",
    "JwtIdentityProvider",
    "VerifiedIdentity",
    "get_identity_provider",
    "reset_identity_provider",
    "set_identity_provider",
]

_current_provider: IdentityProvider | None = None


def build_identity_provider() -> IdentityProvider:
    settings = get_settings()
    return JwtIdentityProvider(
        key=settings.identity_token_key,
        algorithms=settings.identity_token_algorithms,
        audience=settings.identity_token_audience,
        issuer=settings.identity_token_issuer,
        allow_unverified=not settings.is_production,
    )


def get_identity_provider() -> IdentityProvider:
    global _current_provider
    if _current_provider is None:
        _current_provider = build_identity_provider()
    return _current_provider


def set_identity_provider(provider: IdentityProvider) -> None:
    global _current_provider
    _current_provider = provider


def reset_identity_provider() -> None:
    global _current_provider
    _current_provider = None
