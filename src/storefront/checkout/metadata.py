"""Checkout metadata: the payload carried through the processor's hosted checkout.

When the processor reports a completed checkout, everything needed to
build the order, gift card or subscription must come back with it. The
payload is a tagged (``kind``) and versioned (``version``) JSON document
validated with pydantic.

The processor caps metadata values at 500 characters, so the JSON is split
across ``payload_0``, ``payload_1``, ... keys, and ``payload_parts`` records
how many there are.

Amounts inside the payload are integer minor units (pence).
"""

from typing import Annotated, Literal

from protean.exceptions import ValidationError
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

PAYLOAD_VERSION = 1
CHUNK_SIZE = 500
MAX_CHUNKS = 45  # the processor allows 50 keys; leave room for the header keys


class MetadataError(ValueError):
    """The metadata is missing, truncated or does not match any known payload."""


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ItemPayload(BaseModel):
    product_id: str = Field(max_length=255)
    variant_id: str | None = Field(default=None, max_length=255)
    name: str = Field(max_length=255)
    variant_name: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=1000)
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)
    gift_message: str | None = Field(default=None, max_length=200)


class AddressPayload(BaseModel):
    """Limits match the Order's address, so anything accepted here can be recorded."""

    line1: str = Field(min_length=1, max_length=255)
    line2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    county: str | None = Field(default=None, max_length=100)
    postcode: str = Field(min_length=1, max_length=10)
    country: str = Field(default="GB", min_length=2, max_length=2)


class ContactPayload(BaseModel):
    name: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=254)
    phone: str | None = Field(default=None, max_length=30)


# ---------------------------------------------------------------------------
# Tagged payloads
# ---------------------------------------------------------------------------
class OrderPayload(BaseModel):
    kind: Literal["order"] = "order"
    version: Literal[1] = PAYLOAD_VERSION
    items: list[ItemPayload]
    subtotal: int = Field(ge=0)
    delivery_fee: int = Field(ge=0)
    discount: int = Field(ge=0)
    gift_card_code: str | None = Field(default=None, max_length=20)
    gift_card_amount: int = Field(default=0, ge=0)
    coupon_code: str | None = Field(default=None, max_length=50)
    billing: ContactPayload
    billing_address: AddressPayload | None = None
    recipient: ContactPayload | None = None
    delivery_address: AddressPayload | None = None
    delivery_type: str | None = Field(default=None, max_length=20)
    delivery_date: str | None = Field(default=None, max_length=10)
    delivery_instructions: str | None = None
    loyalty_points_used: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        """What the shopper should be charged, in minor units."""
        return max(0, self.subtotal + self.delivery_fee - self.discount - self.gift_card_amount)


class GiftCardPayload(BaseModel):
    kind: Literal["gift_card"] = "gift_card"
    version: Literal[1] = PAYLOAD_VERSION
    amount: int = Field(gt=0)
    sender_name: str
    sender_email: str
    recipient_name: str | None = None
    recipient_email: str | None = None
    message: str | None = None


class SubscriptionPayload(BaseModel):
    kind: Literal["subscription"] = "subscription"
    version: Literal[1] = PAYLOAD_VERSION
    plan_id: str
    plan_name: str
    frequency: Literal["weekly", "fortnightly", "monthly"]
    price: int = Field(gt=0)
    customer_email: str
    customer_name: str | None = None
    user_id: str | None = None


CheckoutPayload = Annotated[
    OrderPayload | GiftCardPayload | SubscriptionPayload,
    Field(discriminator="kind"),
]

_payload_adapter = TypeAdapter(CheckoutPayload)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------
def encode_metadata(payload: OrderPayload | GiftCardPayload | SubscriptionPayload) -> dict[str, str]:
    raw = payload.model_dump_json(exclude_none=True)
    chunks = [raw[i : i + CHUNK_SIZE] for i in range(0, len(raw), CHUNK_SIZE)]
    if len(chunks) > MAX_CHUNKS:
        raise ValidationError({"items": ["Too many items for a single checkout"]})

    metadata = {
        "kind": payload.kind,
        "version": str(payload.version),
        "payload_parts": str(len(chunks)),
    }
    metadata.update({f"payload_{index}": chunk for index, chunk in enumerate(chunks)})
    return metadata


def metadata_kind(metadata: dict | None) -> str | None:
    return (metadata or {}).get("kind")


def decode_metadata(metadata: dict | None) -> OrderPayload | GiftCardPayload | SubscriptionPayload:
    """Reassemble and strictly validate a payload. Raises ``MetadataError``."""
    metadata = metadata or {}
    try:
        parts = int(metadata["payload_parts"])
        raw = "".join(metadata[f"payload_{index}"] for index in range(parts))
    except (KeyError, TypeError, ValueError) as exc:
        raise MetadataError(f"Checkout metadata is incomplete: {exc}") from exc

    try:
        return _payload_adapter.validate_json(raw)
    except PydanticValidationError as exc:
        raise MetadataError(f"Checkout metadata is invalid: {exc.error_count()} error(s)") from exc
