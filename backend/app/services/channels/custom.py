"""Custom integration: endpoint from channel_settings.apiEndpoint (or the api_endpoint credential)."""
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.http_adapter import HttpChannelAdapter


class CustomAdapter(HttpChannelAdapter):
    channel_type = "CUSTOM"
    display_name = "Custom Integration"
    requires_property_id = False
    event_aliases = {
        "RESERVATION_CREATED": "reservation",
        "RESERVATION_CANCELLED": "cancellation",
        "RESERVATION_MODIFIED": "modification",
        "INVENTORY_UPDATED": "inventory",
    }

    def base_url(self, integration: Integration) -> str:
        endpoint = (integration.channel_settings or {}).get("apiEndpoint") or self.credential(
            integration, "api_endpoint"
        )
        return (endpoint or self._base_url).rstrip("/")

    def connection_path(self, integration: Integration) -> str:
        return "/health"

    def info_path(self, integration: Integration) -> str:
        return "/info"

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return f"/inventory/{mapping.channel_room_type_id}"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return f"/rates/{rate_plan.channel_rate_plan_id}"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return "/availability"
