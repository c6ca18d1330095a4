"""DeliveryZone aggregate: postcode areas the florist delivers to, with their fees.

Zones match on postcode prefixes against the outward code (``"SW1"`` covers
``"SW1A 1AA"`` but not ``"SW19 5AE"``); when several zones match, the longest
prefix wins. A zone's fee is waived once the order subtotal reaches its
free-delivery threshold.
"""

import json
from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.shared.money import round_money

SHOP_TIMEZONE = ZoneInfo("Europe/London")


def normalize_postcode(postcode: str | None) -> str:
    return "".join((postcode or "").split()).upper()


def outward_code(postcode: str | None) -> str:
    """The area and district part of a postcode (``"SW1A 1AA"`` -> ``"SW1A"``).

    A full postcode always ends in a three character inward code. Anything
    shorter is taken to be an outward code already.
    """
    normalized = normalize_postcode(postcode)
    return normalized[:-3] if len(normalized) >= 5 else normalized


def prefix_matches(prefix: str, postcode: str | None) -> bool:
    """True when ``prefix`` covers ``postcode`` without splitting an area or district.

    The prefix must end where the outward code switches between letters and
    digits: ``"SW"`` and ``"SW1"`` cover ``"SW1A"``, ``"SW1"`` does not cover
    ``"SW19"`` and ``"S"`` does not cover ``"SW19"``.
    """
    outward = outward_code(postcode)
    if len(prefix) > len(outward):
        return normalize_postcode(postcode).startswith(prefix)
    if not outward.startswith(prefix):
        return False
    if len(prefix) == len(outward):
        return True
    return prefix[-1].isdigit() != outward[len(prefix)].isdigit()


@storefront.aggregate
class DeliveryZone:
    name = String(required=True, max_length=100)
    postcodes = Text(required=True)  # JSON array of postcode prefixes
    delivery_fee = Float(default=0.0, min_value=0.0)
    free_delivery_threshold = Float(min_value=0.0)
    same_day_available = Boolean(default=False)
    same_day_cutoff = String(max_length=5)  # "HH:MM", shop local time
    next_day_available = Boolean(default=True)
    is_active = Boolean(default=True)

    @classmethod
    def create(cls, name, postcodes, delivery_fee, **options):
        prefixes = sorted({normalize_postcode(p) for p in postcodes if normalize_postcode(p)})
        if not prefixes:
            raise ValidationError({"postcodes": ["At least one postcode prefix is required"]})
        cutoff = options.get("same_day_cutoff")
        if cutoff:
            try:
                time.fromisoformat(cutoff)
            except ValueError as exc:
                raise ValidationError({"same_day_cutoff": ["Cutoff must be HH:MM"]}) from exc
        return cls(name=name, postcodes=json.dumps(prefixes), delivery_fee=delivery_fee, **options)

    @property
    def prefixes(self) -> list[str]:
        return json.loads(self.postcodes) if self.postcodes else []

    def match_length(self, postcode: str) -> int:
        """Length of the longest prefix matching ``postcode``, 0 when none does."""
        return max((len(p) for p in self.prefixes if prefix_matches(p, postcode)), default=0)

    def _same_day_open(self, now: datetime) -> bool:
        if not self.same_day_available:
            return False
        if not self.same_day_cutoff:
            return True
        local_now = now.astimezone(SHOP_TIMEZONE)
        return local_now.time() < time.fromisoformat(self.same_day_cutoff)

    def quote(self, delivery_type: str, subtotal: float, now: datetime | None = None) -> float:
        """Fee for delivering an order of ``subtotal`` with ``delivery_type``."""
        now = now or datetime.now(UTC)
        if delivery_type == "same_day" and not self._same_day_open(now):
            raise ValidationError({"delivery_type": [f"Same-day delivery is not available for {self.name}"]})
        if delivery_type == "next_day" and not self.next_day_available:
            raise ValidationError({"delivery_type": [f"Next-day delivery is not available for {self.name}"]})

        if self.free_delivery_threshold and subtotal >= self.free_delivery_threshold:
            return 0.0
        return round_money(self.delivery_fee)


def zone_for_postcode(postcode: str):
    """Return the active zone that best matches ``postcode``, or None."""
    zones = current_domain.repository_for(DeliveryZone)._dao.query.filter(is_active=True).all().items
    best, best_length = None, 0
    for zone in zones:
        length = zone.match_length(postcode)
        if length > best_length:
            best, best_length = zone, length
    return best


def quote_delivery(postcode: str, delivery_type: str, subtotal: float, now: datetime | None = None) -> float:
    zone = zone_for_postcode(postcode)
    if zone is None:
        raise ValidationError({"delivery_postcode": ["We do not deliver to this postcode yet"]})
    return zone.quote(delivery_type, subtotal, now=now)
