"""
7even adapter. Webhooks arrive as {event_type, data, property_id}; reservation payloads carry
the guest record that is forwarded to the PMS.
"""
from typing import Any

from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.http_adapter import HttpChannelAdapter


class SevenAdapter(HttpChannelAdapter):
    channel_type = "SEVEN"
    display_name = "7even"
    default_base_url = "https://api.7even.com/v1"
    required_credentials = ("api_key",)
    event_keys = ("event_type", "type", "event")

    def headers(self, integration: Integration) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credential(integration, 'api_key')}",
            "Content-Type": "application/json",
        }

    def _property_path(self, integration: Integration) -> str:
        return f"/properties/{integration.channel_property_id}"

    def connection_path(self, integration: Integration) -> str:
        return f"{self._property_path(integration)}/status"

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return f"{self._property_path(integration)}/inventory"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return f"{self._property_path(integration)}/rates"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return f"{self._property_path(integration)}/availability"

    def reservations_path(self, integration: Integration) -> str:
        return f"{self._property_path(integration)}/reservations"

    def info_path(self, integration: Integration) -> str:
        return self._property_path(integration)

    def _hotel_specific(self, integration: Integration, key: str) -> dict[str, Any]:
        return {"hotelId": integration.hotel_id, key: (integration.channel_settings or {}).get(key) or {}}

    def inventory_body(self, integration: Integration, mapping: ChannelMapping) -> dict[str, Any]:
        body = super().inventory_body(integration, mapping)
        body["capacity"] = (mapping.mapping_rules or {}).get("capacity") or 2
        body["hotelSpecific"] = self._hotel_specific(integration, "customSettings")
        return body

    def rates_body(self, integration: Integration, rate_plan: RatePlan) -> dict[str, Any]:
        body = super().rates_body(integration, rate_plan)
        body["hotelSpecific"] = self._hotel_specific(integration, "pricing")
        return body

    def reservation_body(self, integration: Integration, reservation: dict[str, Any]) -> dict[str, Any]:
        return {
            "propertyId": integration.channel_property_id,
            "guest": reservation,
            "hotelSpecific": self._hotel_specific(integration, "guestFields"),
        }
