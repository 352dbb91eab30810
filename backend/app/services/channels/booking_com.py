"""Booking.com adapter. Bearer API key; connection test only validates that key and secret are present."""
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.http_adapter import HttpChannelAdapter


class BookingComAdapter(HttpChannelAdapter):
    channel_type = "BOOKING_COM"
    display_name = "Booking.com"
    default_base_url = "https://distribution-xml.booking.com/2.4"
    required_credentials = ("api_key", "api_secret")
    requires_property_id = False
    probe_connection = False
    event_keys = ("type", "event", "event_type")
    inventory_method = "POST"
    rates_method = "POST"
    availability_method = "POST"

    def headers(self, integration: Integration) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credential(integration, 'api_key')}",
            "Content-Type": "application/json",
        }

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return "/v1/inventory"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return "/v1/rates"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return "/v1/availability"

    def reservations_path(self, integration: Integration) -> str:
        return "/v1/reservations"

    def info_path(self, integration: Integration) -> str:
        return f"/v1/hotels/{integration.channel_property_id}"
