"""Domain events for the Subscription aggregate."""

from protean.fields import Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Subscription")
class SubscriptionStarted:
    __version__ = 1

    subscription_id = Identifier(required=True)
    plan_id = String(required=True)
    frequency = String(required=True)
    price = Float(required=True)
    customer_email = String(required=True)
    external_ref = String()


@storefront.event(part_of="Subscription")
class SubscriptionPaused:
    __version__ = 1

    subscription_id = Identifier(required=True)


@storefront.event(part_of="Subscription")
class SubscriptionResumed:
    __version__ = 1

    subscription_id = Identifier(required=True)


@storefront.event(part_of="Subscription")
class SubscriptionCancelled:
    """The subscription ended. ``source`` is ``customer`` or ``processor``."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    source = String(required=True)
    remote_cancelled = String()  # "yes" | "no" | "skipped"
