"""Payment gateway port (abstract interface).

The storefront never talks to the processor directly: checkout, webhook
verification and subscription management all go through this contract, so
``FakeGateway`` (dev/test) and ``StripeGateway`` (production) are
interchangeable.

All amounts crossing this boundary are integer minor units (pence).

Adapters raise ``ExternalServiceError`` when the processor fails,
``InvalidSignatureError`` when a notification cannot be authenticated and
``ConfigurationError`` when a required secret is missing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class LineItem:
    """One priced line on a hosted checkout page."""

    name: str
    unit_amount: int
    quantity: int = 1
    image_url: str | None = None
    description: str | None = None
    recurring_interval: str | None = None  # "week" | "month" for subscriptions
    interval_count: int = 1


@dataclass(frozen=True)
class CheckoutSessionRequest:
    mode: str  # "payment" | "subscription"
    line_items: list[LineItem]
    customer_email: str
    success_url: str
    cancel_url: str
    currency: str = "gbp"
    metadata: dict[str, str] = field(default_factory=dict)
    discount_id: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class PaymentEvent:
    """A verified processor notification.

    ``data`` is the event's subject object (a checkout session, subscription
    or charge) as plain JSON-compatible dicts.
    """

    event_id: str
    type: str
    data: dict[str, Any]


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """Create a hosted checkout session and return its id and redirect URL."""
        ...

    @abstractmethod
    def create_one_time_discount(self, amount: int, currency: str, name: str) -> str:
        """Create a single-use, fixed-amount discount and return its id."""
        ...

    @abstractmethod
    def cancel_subscription(self, subscription_ref: str) -> None:
        ...

    @abstractmethod
    def pause_subscription(self, subscription_ref: str) -> None:
        ...

    @abstractmethod
    def resume_subscription(self, subscription_ref: str) -> None:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        """Verify a notification's signature and parse it.

        Nothing in ``payload`` may be trusted before this returns.
        """
        ...
