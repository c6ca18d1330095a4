"""Gift card ledger: issue, validate, redeem, deactivate and expire.

Issuance is idempotent on the payment session id. Redemption of one code is
serialized in-process with a keyed lock held around the whole unit of work,
so two concurrent redemptions cannot both read the same balance.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.exceptions import GiftCardNotFoundError
from storefront.giftcard.giftcard import GiftCard, GiftCardStatus, generate_gift_card_code
from storefront.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

_redemption_locks = KeyedLock()


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def find_gift_card(code):
    repo = current_domain.repository_for(GiftCard)
    matches = repo._dao.query.filter(code=normalize_code(code)).all().items
    return matches[0] if matches else None


def gift_card_for_session(payment_session_id):
    repo = current_domain.repository_for(GiftCard)
    matches = repo._dao.query.filter(payment_session_id=payment_session_id).all().items
    return matches[0] if matches else None


def validate_gift_card(code) -> GiftCard:
    """Return the card if it can be spent, else raise not-found / inactive errors."""
    card = find_gift_card(code)
    if card is None:
        raise GiftCardNotFoundError()
    card.ensure_usable()
    return card


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="GiftCard")
class IssueGiftCard:
    amount = Float(required=True)
    sender_name = String(max_length=255)
    sender_email = String(max_length=254)
    recipient_name = String(max_length=255)
    recipient_email = String(max_length=254)
    message = Text()
    payment_session_id = String(max_length=255)
    expires_at = DateTime()


@storefront.command(part_of="GiftCard")
class RedeemGiftCard:
    code = String(required=True, max_length=20)
    amount = Float(required=True)
    allow_partial = Boolean(default=True)
    reference = String(max_length=255)  # e.g. the order number the balance paid for


@storefront.command(part_of="GiftCard")
class DeactivateGiftCard:
    gift_card_id = Identifier(required=True)


@storefront.command(part_of="GiftCard")
class ExpireGiftCards:
    """Mark every active card past its expiry date as expired."""

    as_of = DateTime()


@storefront.command_handler(part_of=GiftCard)
class GiftCardLedgerHandler:
    @handle(IssueGiftCard)
    def issue(self, command):
        if command.payment_session_id:
            existing = gift_card_for_session(command.payment_session_id)
            if existing is not None:
                logger.info(
                    "Gift card already issued for session",
                    payment_session_id=command.payment_session_id,
                    code=existing.code,
                )
                return existing.code

        code = generate_gift_card_code()
        while find_gift_card(code) is not None:
            code = generate_gift_card_code()

        card = GiftCard.issue(
            amount=command.amount,
            code=code,
            sender_name=command.sender_name,
            sender_email=command.sender_email,
            recipient_name=command.recipient_name,
            recipient_email=command.recipient_email,
            message=command.message,
            payment_session_id=command.payment_session_id,
            expires_at=command.expires_at,
        )
        current_domain.repository_for(GiftCard).add(card)
        logger.info(
            "Gift card issued",
            code=card.code,
            amount=card.initial_balance,
            payment_session_id=command.payment_session_id,
        )
        return card.code

    @handle(RedeemGiftCard)
    def redeem(self, command):
        card = find_gift_card(command.code)
        if card is None:
            raise GiftCardNotFoundError()

        result = card.redeem(
            command.amount,
            allow_partial=command.allow_partial if command.allow_partial is not None else True,
            reference=command.reference,
        )
        current_domain.repository_for(GiftCard).add(card)
        logger.info(
            "Gift card redeemed",
            code=card.code,
            requested=result.requested,
            deducted=result.deducted,
            remaining_balance=result.remaining_balance,
            reference=command.reference,
        )
        return result

    @handle(DeactivateGiftCard)
    def deactivate(self, command):
        repo = current_domain.repository_for(GiftCard)
        card = repo.get(command.gift_card_id)
        card.deactivate()
        repo.add(card)

    @handle(ExpireGiftCards)
    def expire(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(GiftCard)
        active = repo._dao.query.filter(status=GiftCardStatus.ACTIVE.value).all().items

        expired = 0
        for card in active:
            if card.mark_expired(as_of):
                repo.add(card)
                expired += 1

        logger.info("Gift card expiry sweep complete", expired_count=expired)
        return expired


def redemption_lock(code):
    """Context manager serializing balance changes for one card."""
    return _redemption_locks.hold(normalize_code(code))


def redeem_gift_card(code, amount, allow_partial=True, reference=None):
    """Redeem under the per-code lock. Returns a ``Redemption``."""
    code = normalize_code(code)
    with redemption_lock(code):
        return current_domain.process(
            RedeemGiftCard(code=code, amount=amount, allow_partial=allow_partial, reference=reference),
            asynchronous=False,
        )
