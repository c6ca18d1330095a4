"""Subscription aggregate: a recurring flower delivery billed by the processor.

    active <-> paused
    active | paused -> cancelled (terminal)

Pausing a paused or resuming an active subscription is a no-op, as is
cancelling one that is already cancelled. Nothing leaves ``cancelled``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String

from storefront.domain import storefront
from storefront.shared.money import round_money
from storefront.subscription.events import (
    SubscriptionCancelled,
    SubscriptionPaused,
    SubscriptionResumed,
    SubscriptionStarted,
)


class SubscriptionStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class Frequency(Enum):
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"


# frequency -> (billing interval, interval count)
BILLING_INTERVALS = {
    Frequency.WEEKLY.value: ("week", 1),
    Frequency.FORTNIGHTLY.value: ("week", 2),
    Frequency.MONTHLY.value: ("month", 1),
}

LIVE_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAUSED.value)


@storefront.aggregate
class Subscription:
    plan_id = String(required=True, max_length=100)
    plan_name = String(max_length=255)
    frequency = String(required=True, choices=Frequency)
    price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="GBP")
    customer_email = String(required=True, max_length=254)
    customer_name = String(max_length=255)
    user_id = String(max_length=255)
    status = String(choices=SubscriptionStatus, default=SubscriptionStatus.ACTIVE.value)
    external_ref = String(max_length=255)
    payment_session_id = String(max_length=255, unique=True)
    started_at = DateTime()
    paused_at = DateTime()
    cancelled_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def start(
        cls,
        plan_id,
        frequency,
        price,
        customer_email,
        plan_name=None,
        customer_name=None,
        user_id=None,
        external_ref=None,
        payment_session_id=None,
    ):
        now = datetime.now(UTC)
        subscription = cls(
            plan_id=plan_id,
            plan_name=plan_name,
            frequency=frequency,
            price=round_money(price),
            customer_email=customer_email.lower(),
            customer_name=customer_name,
            user_id=user_id,
            status=SubscriptionStatus.ACTIVE.value,
            external_ref=external_ref,
            payment_session_id=payment_session_id,
            started_at=now,
            updated_at=now,
        )
        subscription.raise_(
            SubscriptionStarted(
                subscription_id=str(subscription.id),
                plan_id=plan_id,
                frequency=frequency,
                price=subscription.price,
                customer_email=subscription.customer_email,
                external_ref=external_ref,
            )
        )
        return subscription

    @property
    def is_cancelled(self) -> bool:
        return self.status == SubscriptionStatus.CANCELLED.value

    def _refuse_if_cancelled(self, action):
        if self.is_cancelled:
            raise ValidationError({"status": [f"Cannot {action} a cancelled subscription"]})

    def pause(self):
        self._refuse_if_cancelled("pause")
        if self.status == SubscriptionStatus.PAUSED.value:
            return

        now = datetime.now(UTC)
        self.status = SubscriptionStatus.PAUSED.value
        self.paused_at = now
        self.updated_at = now
        self.raise_(SubscriptionPaused(subscription_id=str(self.id)))

    def resume(self):
        self._refuse_if_cancelled("resume")
        if self.status == SubscriptionStatus.ACTIVE.value:
            return

        self.status = SubscriptionStatus.ACTIVE.value
        self.paused_at = None
        self.updated_at = datetime.now(UTC)
        self.raise_(SubscriptionResumed(subscription_id=str(self.id)))

    def cancel(self, source="customer", remote_cancelled="skipped"):
        if self.is_cancelled:
            return

        now = datetime.now(UTC)
        self.status = SubscriptionStatus.CANCELLED.value
        self.cancelled_at = now
        self.updated_at = now
        self.raise_(
            SubscriptionCancelled(
                subscription_id=str(self.id),
                source=source,
                remote_cancelled=remote_cancelled,
            )
        )
