"""Airbnb adapter. Listings instead of hotels; API key header; snake_case or dotted event names."""
from typing import Any

from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.http_adapter import HttpChannelAdapter


class AirbnbAdapter(HttpChannelAdapter):
    channel_type = "AIRBNB"
    display_name = "Airbnb"
    default_base_url = "https://api.airbnb.com/v2"
    required_credentials = ("api_key",)
    event_keys = ("type", "event", "event_type")
    event_aliases = {
        "reservation_created": "reservation",
        "reservation_cancelled": "cancellation",
        "reservation_updated": "modification",
        "reservation.created": "reservation",
        "reservation.cancelled": "cancellation",
        "reservation.updated": "modification",
    }

    def headers(self, integration: Integration) -> dict[str, str]:
        return {
            "X-Airbnb-API-Key": self.credential(integration, "api_key"),
            "Content-Type": "application/json",
        }

    def connection_path(self, integration: Integration) -> str:
        return f"/listings/{integration.channel_property_id}"

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return f"/listings/{integration.channel_property_id}"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return f"/listings/{integration.channel_property_id}/pricing"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return f"/listings/{integration.channel_property_id}/calendar"

    def info_path(self, integration: Integration) -> str:
        return f"/listings/{integration.channel_property_id}"

    def availability_body(self, integration: Integration, availability: Availability) -> dict[str, Any]:
        # Calendar API: one night, bookable or not
        return {
            "listingId": integration.channel_property_id,
            "date": availability.date.isoformat(),
            "available": availability.available_rooms > 0 and not availability.is_closed,
            "availableCount": availability.available_rooms,
        }
