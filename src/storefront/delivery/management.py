"""Delivery zone management: commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.delivery.zone import DeliveryZone
from storefront.domain import storefront


@storefront.command(part_of="DeliveryZone")
class CreateDeliveryZone:
    name = String(required=True, max_length=100)
    postcodes = Text(required=True)  # JSON array of postcode prefixes
    delivery_fee = Float(required=True, min_value=0.0)
    free_delivery_threshold = Float()
    same_day_available = Boolean(default=False)
    same_day_cutoff = String(max_length=5)
    next_day_available = Boolean(default=True)


@storefront.command(part_of="DeliveryZone")
class DeactivateDeliveryZone:
    zone_id = Identifier(required=True)


@storefront.command_handler(part_of=DeliveryZone)
class ManageDeliveryZoneHandler:
    @handle(CreateDeliveryZone)
    def create_zone(self, command):
        postcodes = json.loads(command.postcodes) if isinstance(command.postcodes, str) else command.postcodes
        zone = DeliveryZone.create(
            name=command.name,
            postcodes=postcodes,
            delivery_fee=command.delivery_fee,
            free_delivery_threshold=command.free_delivery_threshold,
            same_day_available=command.same_day_available,
            same_day_cutoff=command.same_day_cutoff,
            next_day_available=command.next_day_available,
        )
        current_domain.repository_for(DeliveryZone).add(zone)
        return str(zone.id)

    @handle(DeactivateDeliveryZone)
    def deactivate_zone(self, command):
        repo = current_domain.repository_for(DeliveryZone)
        zone = repo.get(command.zone_id)
        zone.is_active = False
        repo.add(zone)
