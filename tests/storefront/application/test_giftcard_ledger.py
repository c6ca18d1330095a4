"""Application tests for issuing, validating, redeeming and expiring gift cards."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from storefront.exceptions import GiftCardInactiveError, GiftCardNotFoundError, InsufficientBalanceError
from storefront.giftcard.giftcard import GiftCard, GiftCardStatus
from storefront.giftcard.ledger import (
    DeactivateGiftCard,
    ExpireGiftCards,
    IssueGiftCard,
    find_gift_card,
    redeem_gift_card,
    validate_gift_card,
)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _issue(amount=20.0, **fields):
    return _process(IssueGiftCard(amount=amount, sender_name="Ada Bloom", sender_email="ada@example.com", **fields))


class TestIssue:
    def test_issue_returns_code(self):
        code = _issue()
        card = find_gift_card(code)
        assert card.initial_balance == 20.0
        assert card.current_balance == 20.0
        assert card.status == GiftCardStatus.ACTIVE.value

    def test_issue_is_idempotent_per_session(self):
        first = _issue(payment_session_id="cs_gift_1")
        second = _issue(payment_session_id="cs_gift_1")
        assert first == second
        cards = current_domain.repository_for(GiftCard)._dao.query.all().items
        assert len(cards) == 1

    def test_amount_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            _issue(amount=2.0)


class TestValidate:
    def test_lookup_is_case_insensitive(self):
        code = _issue()
        assert validate_gift_card(f"  {code.lower()} ").code == code

    def test_unknown_code(self):
        with pytest.raises(GiftCardNotFoundError):
            validate_gift_card("LB-NOPE-NOPE")

    def test_deactivated_card(self):
        code = _issue()
        _process(DeactivateGiftCard(gift_card_id=str(find_gift_card(code).id)))
        with pytest.raises(GiftCardInactiveError):
            validate_gift_card(code)


class TestRedeem:
    def test_partial_redemption(self):
        code = _issue(amount=50.0)
        result = redeem_gift_card(code, 20.0, reference="LB-20261018-ABCD")
        assert result.deducted == 20.0
        assert result.remaining_balance == 30.0
        assert not result.insufficient_balance
        assert find_gift_card(code).current_balance == 30.0

    def test_overdraw_clamps_to_balance(self):
        code = _issue(amount=20.0)
        result = redeem_gift_card(code, 30.0)
        assert result.requested == 30.0
        assert result.deducted == 20.0
        assert result.remaining_balance == 0.0
        assert result.insufficient_balance
        card = find_gift_card(code)
        assert card.current_balance == 0.0
        assert card.status == GiftCardStatus.DEPLETED.value

    def test_strict_overdraw_refused_and_balance_untouched(self):
        code = _issue(amount=20.0)
        with pytest.raises(InsufficientBalanceError):
            redeem_gift_card(code, 30.0, allow_partial=False)
        assert find_gift_card(code).current_balance == 20.0

    def test_depleted_card_cannot_be_redeemed(self):
        code = _issue(amount=20.0)
        redeem_gift_card(code, 20.0)
        with pytest.raises(GiftCardInactiveError):
            redeem_gift_card(code, 1.0)

    def test_unknown_code(self):
        with pytest.raises(GiftCardNotFoundError):
            redeem_gift_card("LB-NOPE-NOPE", 5.0)


class TestExpirySweep:
    def test_only_past_expiry_cards_expire(self):
        now = datetime.now(UTC)
        stale = _issue(expires_at=now - timedelta(days=1))
        fresh = _issue(expires_at=now + timedelta(days=30))
        forever = _issue()

        expired = _process(ExpireGiftCards(as_of=now))

        assert expired == 1
        assert find_gift_card(stale).status == GiftCardStatus.EXPIRED.value
        assert find_gift_card(fresh).status == GiftCardStatus.ACTIVE.value
        assert find_gift_card(forever).status == GiftCardStatus.ACTIVE.value
