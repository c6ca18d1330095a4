"""Domain events for the GiftCard aggregate."""

from protean.fields import Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="GiftCard")
class GiftCardIssued:
    """A gift card was created after its purchase was paid."""

    __version__ = 1

    gift_card_id = Identifier(required=True)
    code = String(required=True)
    amount = Float(required=True)
    recipient_email = String()
    payment_session_id = String()


@storefront.event(part_of="GiftCard")
class GiftCardRedeemed:
    __version__ = 1

    gift_card_id = Identifier(required=True)
    code = String(required=True)
    requested = Float(required=True)
    deducted = Float(required=True)
    remaining_balance = Float(required=True)
    reference = String()


@storefront.event(part_of="GiftCard")
class GiftCardDepleted:
    __version__ = 1

    gift_card_id = Identifier(required=True)
    code = String(required=True)


@storefront.event(part_of="GiftCard")
class GiftCardDeactivated:
    __version__ = 1

    gift_card_id = Identifier(required=True)
    code = String(required=True)
