"""Subscription lifecycle: start, pause, resume and cancel.

Changes a shopper asks for are mirrored to the processor first. Cancel is
the exception to strict mirroring: if the processor call fails the failure
is logged and the local record is cancelled anyway, so the shopper is never
left with a subscription they cannot stop. Pause and resume surface
processor failures unchanged.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.exceptions import ExternalServiceError, SubscriptionNotFoundError
from storefront.gateway import get_gateway
from storefront.subscription.subscription import LIVE_STATUSES, Subscription

logger = structlog.get_logger(__name__)


def _query(**filters):
    return current_domain.repository_for(Subscription)._dao.query.filter(**filters).all().items


def subscription_for_session(payment_session_id):
    matches = _query(payment_session_id=payment_session_id)
    return matches[0] if matches else None


def subscription_for_external_ref(external_ref):
    matches = _query(external_ref=external_ref)
    return matches[0] if matches else None


def live_subscription(customer_email, plan_id):
    """The active or paused subscription this email holds for ``plan_id``, if any."""
    matches = [s for s in _query(customer_email=customer_email.lower(), plan_id=plan_id) if s.status in LIVE_STATUSES]
    return matches[0] if matches else None


def _load(subscription_id):
    try:
        return current_domain.repository_for(Subscription).get(subscription_id)
    except ObjectNotFoundError as exc:
        raise SubscriptionNotFoundError() from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="Subscription")
class StartSubscription:
    plan_id = String(required=True, max_length=100)
    plan_name = String(max_length=255)
    frequency = String(required=True, max_length=20)
    price = Float(required=True)
    customer_email = String(required=True, max_length=254)
    customer_name = String(max_length=255)
    user_id = String(max_length=255)
    external_ref = String(max_length=255)
    payment_session_id = String(max_length=255)


@storefront.command(part_of="Subscription")
class CancelSubscription:
    subscription_id = Identifier(required=True)


@storefront.command(part_of="Subscription")
class PauseSubscription:
    subscription_id = Identifier(required=True)


@storefront.command(part_of="Subscription")
class ResumeSubscription:
    subscription_id = Identifier(required=True)


@storefront.command(part_of="Subscription")
class EndSubscriptionFromProcessor:
    """The processor reports the subscription was deleted on its side."""

    external_ref = String(required=True, max_length=255)


@storefront.command_handler(part_of=Subscription)
class SubscriptionLifecycleHandler:
    @handle(StartSubscription)
    def start(self, command):
        if command.payment_session_id:
            existing = subscription_for_session(command.payment_session_id)
            if existing is not None:
                logger.info(
                    "Subscription already started for session",
                    payment_session_id=command.payment_session_id,
                    subscription_id=str(existing.id),
                )
                return str(existing.id)

        subscription = Subscription.start(
            plan_id=command.plan_id,
            plan_name=command.plan_name,
            frequency=command.frequency,
            price=command.price,
            customer_email=command.customer_email,
            customer_name=command.customer_name,
            user_id=command.user_id,
            external_ref=command.external_ref,
            payment_session_id=command.payment_session_id,
        )
        current_domain.repository_for(Subscription).add(subscription)
        logger.info(
            "Subscription started",
            subscription_id=str(subscription.id),
            plan_id=command.plan_id,
            payment_session_id=command.payment_session_id,
        )
        return str(subscription.id)

    @handle(CancelSubscription)
    def cancel(self, command):
        subscription = _load(command.subscription_id)
        if subscription.is_cancelled:
            return str(subscription.id)

        remote_cancelled = "skipped"
        if subscription.external_ref:
            try:
                get_gateway().cancel_subscription(subscription.external_ref)
                remote_cancelled = "yes"
            except ExternalServiceError as exc:
                remote_cancelled = "no"
                logger.error(
                    "Processor cancel failed, cancelling locally",
                    subscription_id=str(subscription.id),
                    external_ref=subscription.external_ref,
                    error=exc.detail,
                )

        subscription.cancel(source="customer", remote_cancelled=remote_cancelled)
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

    @handle(PauseSubscription)
    def pause(self, command):
        subscription = _load(command.subscription_id)
        previous = subscription.status
        subscription.pause()
        if subscription.external_ref and subscription.status != previous:
            get_gateway().pause_subscription(subscription.external_ref)
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

    @handle(ResumeSubscription)
    def resume(self, command):
        subscription = _load(command.subscription_id)
        previous = subscription.status
        subscription.resume()
        if subscription.external_ref and subscription.status != previous:
            get_gateway().resume_subscription(subscription.external_ref)
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)

    @handle(EndSubscriptionFromProcessor)
    def end_from_processor(self, command):
        subscription = subscription_for_external_ref(command.external_ref)
        if subscription is None:
            logger.warning("Processor ended an unknown subscription", external_ref=command.external_ref)
            return None

        subscription.cancel(source="processor", remote_cancelled="yes")
        current_domain.repository_for(Subscription).add(subscription)
        return str(subscription.id)
