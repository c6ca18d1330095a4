"""Runtime settings read from the environment.

Domain wiring (providers, processing mode) lives in domain.toml. This module
covers the application-level knobs: payment processor credentials, token
verification and the public site URL used to build redirect links.
"""

import os
from dataclasses import dataclass, field


def _split(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    site_url: str = "http://localhost:3000"
    currency: str = "gbp"
    payment_gateway: str = "fake"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    identity_token_key: str | None = None
    identity_token_algorithms: tuple[str, ...] = field(default=("HS256",))
    identity_token_audience: str | None = None
    identity_token_issuer: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.environ.get("PROTEAN_ENV", "development").lower(),
            site_url=os.environ.get("SITE_URL", "http://localhost:3000").rstrip("/"),
            currency=os.environ.get("STORE_CURRENCY", "gbp").lower(),
            payment_gateway=os.environ.get("PAYMENT_GATEWAY", "fake").lower(),
            stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET") or None,
            identity_token_key=os.environ.get("IDENTITY_TOKEN_KEY") or None,
            identity_token_algorithms=_split(os.environ.get("IDENTITY_TOKEN_ALGORITHMS"), ("HS256",)),
            identity_token_audience=os.environ.get("IDENTITY_TOKEN_AUDIENCE") or None,
            identity_token_issuer=os.environ.get("IDENTITY_TOKEN_ISSUER") or None,
        )


def get_settings() -> Settings:
    """Read settings fresh from the environment on every call."""
    return Settings.from_env()
