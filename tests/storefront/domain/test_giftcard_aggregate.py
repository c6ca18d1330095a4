"""Tests for the GiftCard aggregate: issuance and the redemption ledger."""

import re
from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from storefront.exceptions import GiftCardInactiveError, InsufficientBalanceError
from storefront.giftcard.events import GiftCardDepleted, GiftCardIssued, GiftCardRedeemed
from storefront.giftcard.giftcard import GiftCard, GiftCardStatus, generate_gift_card_code


def _card(amount=20.0, **overrides):
    return GiftCard.issue(amount=amount, sender_name="Ada", sender_email="ada@example.com", **overrides)


class TestIssue:
    def test_code_format(self):
        assert re.fullmatch(r"LB-[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{4}", generate_gift_card_code())

    def test_balance_starts_at_amount(self):
        card = _card(50)
        assert card.initial_balance == 50.0
        assert card.current_balance == 50.0
        assert card.status == GiftCardStatus.ACTIVE.value

    def test_issue_raises_event(self):
        assert isinstance(_card()._events[0], GiftCardIssued)

    @pytest.mark.parametrize("amount", [4.99, 500.01, 0])
    def test_amount_outside_bounds_rejected(self, amount):
        with pytest.raises(ValidationError):
            _card(amount)


class TestRedeem:
    def test_full_deduction(self):
        card = _card(20)
        result = card.redeem(12.50)
        assert result.deducted == 12.5
        assert result.remaining_balance == 7.5
        assert result.insufficient_balance is False
        assert card.current_balance == 7.5

    def test_redeem_more_than_balance_clamps(self):
        card = _card(20)
        result = card.redeem(30)
        assert result.deducted == 20.0
        assert result.remaining_balance == 0.0
        assert result.insufficient_balance is True
        assert card.current_balance == 0.0

    def test_card_depleted_at_zero(self):
        card = _card(20)
        card.redeem(20)
        assert card.status == GiftCardStatus.DEPLETED.value
        assert any(isinstance(event, GiftCardDepleted) for event in card._events)

    def test_strict_redemption_leaves_balance_untouched(self):
        card = _card(20)
        with pytest.raises(InsufficientBalanceError) as exc:
            card.redeem(30, allow_partial=False)
        assert exc.value.deducted == 0.0
        assert exc.value.remaining_balance == 20.0
        assert card.current_balance == 20.0

    def test_redeem_raises_event_with_reference(self):
        card = _card(20)
        card.redeem(5, reference="LB-20261018-ABCD")
        event = next(e for e in card._events if isinstance(e, GiftCardRedeemed))
        assert event.reference == "LB-20261018-ABCD"

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            _card().redeem(amount)

    def test_depleted_card_cannot_be_redeemed(self):
        card = _card(20)
        card.redeem(20)
        with pytest.raises(GiftCardInactiveError):
            card.redeem(1)

    def test_deactivated_card_cannot_be_redeemed(self):
        card = _card(20)
        card.deactivate()
        with pytest.raises(GiftCardInactiveError):
            card.redeem(1)

    def test_expired_card_cannot_be_redeemed(self):
        card = _card(20, expires_at=datetime.now(UTC) - timedelta(days=1))
        with pytest.raises(GiftCardInactiveError) as exc:
            card.redeem(1)
        assert exc.value.message == "Gift card has expired"


class TestExpiry:
    def test_mark_expired_flips_status(self):
        card = _card(20, expires_at=datetime.now(UTC) - timedelta(minutes=1))
        assert card.mark_expired() is True
        assert card.status == GiftCardStatus.EXPIRED.value

    def test_mark_expired_ignores_cards_in_date(self):
        card = _card(20, expires_at=datetime.now(UTC) + timedelta(days=30))
        assert card.mark_expired() is False

    def test_naive_expiry_treated_as_utc(self):
        card = _card(20, expires_at=datetime(2020, 1, 1))
        assert card.is_expired() is True
