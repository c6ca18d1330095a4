"""GiftCard aggregate: a prepaid balance redeemable against orders.

Cards are issued once per paid gift-card checkout and never deleted. The
balance only goes down, through redemption, and never below zero. A card
whose balance reaches zero becomes ``depleted``.

Redemption clamps by default: asking for more than the balance deducts what
is left and flags the result as ``insufficient_balance``. Strict redemption
(``allow_partial=False``) refuses instead and leaves the card untouched.
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String, Text

from storefront.domain import storefront
from storefront.exceptions import GiftCardInactiveError, InsufficientBalanceError
from storefront.giftcard.events import GiftCardDeactivated, GiftCardDepleted, GiftCardIssued, GiftCardRedeemed
from storefront.shared.money import from_minor, round_money, to_minor

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_AMOUNT = 5.0
MAX_AMOUNT = 500.0


class GiftCardStatus(Enum):
    ACTIVE = "active"
    DEPLETED = "depleted"
    EXPIRED = "expired"


def generate_gift_card_code() -> str:
    """``LB-XXXX-XXXX`` from an alphabet without 0/O or 1/I."""

    def segment():
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(4))

    return f"LB-{segment()}-{segment()}"


def check_amount(amount) -> float:
    if amount is None or not MIN_AMOUNT <= amount <= MAX_AMOUNT:
        raise ValidationError({"amount": [f"Amount must be between £{MIN_AMOUNT:.0f} and £{MAX_AMOUNT:.0f}"]})
    return round_money(amount)


@dataclass(frozen=True)
class Redemption:
    code: str
    requested: float
    deducted: float
    remaining_balance: float

    @property
    def insufficient_balance(self) -> bool:
        return self.deducted < self.requested


@storefront.aggregate
class GiftCard:
    code = String(required=True, max_length=20, unique=True)
    initial_balance = Float(required=True, min_value=0.0)
    current_balance = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="GBP")
    sender_name = String(max_length=255)
    sender_email = String(max_length=254)
    recipient_name = String(max_length=255)
    recipient_email = String(max_length=254)
    message = Text()
    status = String(choices=GiftCardStatus, default=GiftCardStatus.ACTIVE.value)
    is_active = Boolean(default=True)
    expires_at = DateTime()
    payment_session_id = String(max_length=255, unique=True)
    created_at = DateTime()
    last_redeemed_at = DateTime()

    @invariant.post
    def balance_stays_within_bounds(self):
        if self.current_balance is not None and self.initial_balance is not None:
            if to_minor(self.current_balance) > to_minor(self.initial_balance):
                raise ValidationError({"current_balance": ["Balance cannot exceed the initial balance"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(
        cls,
        amount,
        code=None,
        sender_name=None,
        sender_email=None,
        recipient_name=None,
        recipient_email=None,
        message=None,
        payment_session_id=None,
        expires_at=None,
    ):
        amount = check_amount(amount)
        card = cls(
            code=code or generate_gift_card_code(),
            initial_balance=amount,
            current_balance=amount,
            sender_name=sender_name,
            sender_email=sender_email,
            recipient_name=recipient_name,
            recipient_email=recipient_email,
            message=message,
            status=GiftCardStatus.ACTIVE.value,
            is_active=True,
            expires_at=expires_at,
            payment_session_id=payment_session_id,
            created_at=datetime.now(UTC),
        )
        card.raise_(
            GiftCardIssued(
                gift_card_id=str(card.id),
                code=card.code,
                amount=amount,
                recipient_email=recipient_email,
                payment_session_id=payment_session_id,
            )
        )
        return card

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def is_expired(self, now=None) -> bool:
        if not self.expires_at:
            return False
        now = now or datetime.now(UTC)
        expires_at = self.expires_at if self.expires_at.tzinfo else self.expires_at.replace(tzinfo=UTC)
        return expires_at < (now if now.tzinfo else now.replace(tzinfo=UTC))

    def ensure_usable(self, now=None):
        """Raise ``GiftCardInactiveError`` unless the card can be spent right now."""
        if not self.is_active:
            raise GiftCardInactiveError("Gift card is no longer active")
        if to_minor(self.current_balance) <= 0:
            raise GiftCardInactiveError("Gift card has no remaining balance")
        if self.is_expired(now):
            raise GiftCardInactiveError("Gift card has expired")

    def redeem(self, amount, allow_partial=True, reference=None, now=None) -> Redemption:
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Amount must be greater than zero"]})

        self.ensure_usable(now)

        requested_minor = to_minor(amount)
        balance_minor = to_minor(self.current_balance)
        if requested_minor > balance_minor and not allow_partial:
            raise InsufficientBalanceError(self.code, from_minor(requested_minor), from_minor(balance_minor))

        deducted_minor = min(requested_minor, balance_minor)
        remaining_minor = balance_minor - deducted_minor

        self.current_balance = from_minor(remaining_minor)
        self.last_redeemed_at = now or datetime.now(UTC)

        result = Redemption(
            code=self.code,
            requested=from_minor(requested_minor),
            deducted=from_minor(deducted_minor),
            remaining_balance=from_minor(remaining_minor),
        )
        self.raise_(
            GiftCardRedeemed(
                gift_card_id=str(self.id),
                code=self.code,
                requested=result.requested,
                deducted=result.deducted,
                remaining_balance=result.remaining_balance,
                reference=reference,
            )
        )

        if remaining_minor == 0:
            self.status = GiftCardStatus.DEPLETED.value
            self.raise_(GiftCardDepleted(gift_card_id=str(self.id), code=self.code))

        return result

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.raise_(GiftCardDeactivated(gift_card_id=str(self.id), code=self.code))

    def mark_expired(self, now=None) -> bool:
        """Flip an active, past-expiry card to ``expired``. Returns whether it changed."""
        if self.status != GiftCardStatus.ACTIVE.value or not self.is_expired(now):
            return False
        self.status = GiftCardStatus.EXPIRED.value
        return True
