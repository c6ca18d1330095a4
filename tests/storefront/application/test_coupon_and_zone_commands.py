"""Application tests for coupon and delivery zone management."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from storefront.coupon.coupon import Coupon
from storefront.coupon.management import CreateCoupon, DeactivateCoupon, coupon_by_code
from storefront.delivery.management import CreateDeliveryZone, DeactivateDeliveryZone
from storefront.delivery.zone import quote_delivery, zone_for_postcode


def _process(command):
    return current_domain.process(command, asynchronous=False)


class TestCoupons:
    def test_create_and_look_up_by_code(self):
        coupon_id = _process(CreateCoupon(code="spring10", discount_type="percentage", discount_value=10))
        coupon = coupon_by_code("SPRING10")
        assert str(coupon.id) == coupon_id
        assert coupon.code == "SPRING10"

    def test_duplicate_code_rejected(self):
        _process(CreateCoupon(code="SPRING10", discount_type="percentage", discount_value=10))
        with pytest.raises(ValidationError) as exc:
            _process(CreateCoupon(code="spring10", discount_type="fixed_amount", discount_value=5))
        assert "code" in exc.value.messages

    def test_deactivated_coupon_no_longer_validates(self):
        coupon_id = _process(CreateCoupon(code="SPRING10", discount_type="percentage", discount_value=10))
        _process(DeactivateCoupon(coupon_id=coupon_id))
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        with pytest.raises(ValidationError):
            coupon.validate(50.0)

    def test_unknown_code_is_none(self):
        assert coupon_by_code("MISSING") is None


class TestDeliveryZones:
    def _zone(self, name, prefixes, fee, **options):
        return _process(CreateDeliveryZone(name=name, postcodes=json.dumps(prefixes), delivery_fee=fee, **options))

    def test_longest_prefix_wins(self):
        self._zone("London", ["SW"], 6.95)
        self._zone("Westminster", ["SW1"], 3.95)
        assert zone_for_postcode("sw1a 1aa").name == "Westminster"
        assert zone_for_postcode("SW19 5AE").name == "London"

    def test_deactivated_zone_not_matched(self):
        zone_id = self._zone("Westminster", ["SW1"], 3.95)
        _process(DeactivateDeliveryZone(zone_id=zone_id))
        assert zone_for_postcode("SW1A 1AA") is None

    def test_quote_refuses_unavailable_next_day(self):
        self._zone("Highlands", ["IV"], 12.0, next_day_available=False)
        with pytest.raises(ValidationError):
            quote_delivery("IV1 1AA", "next_day", 50.0)

    def test_scheduled_quote(self):
        self._zone("Highlands", ["IV"], 12.0, next_day_available=False)
        assert quote_delivery("IV1 1AA", "scheduled", 50.0) == 12.0
