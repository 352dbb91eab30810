"""
Hotelbeds adapter. Every request is signed: X-Signature = sha256(api_key + secret + unix_ts) hex,
sent with Api-Key and X-Timestamp.
"""
import hashlib
import time

from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.http_adapter import HttpChannelAdapter


def hotelbeds_signature(api_key: str, api_secret: str, timestamp: int) -> str:
    return hashlib.sha256(f"{api_key}{api_secret}{timestamp}".encode()).hexdigest()


class HotelbedsAdapter(HttpChannelAdapter):
    channel_type = "HOTELBEDS"
    display_name = "Hotelbeds"
    default_base_url = "https://api.hotelbeds.com"
    required_credentials = ("api_key", "api_secret")
    requires_property_id = False
    inventory_method = "POST"
    rates_method = "POST"
    availability_method = "POST"

    def headers(self, integration: Integration) -> dict[str, str]:
        api_key = self.credential(integration, "api_key")
        timestamp = int(time.time())
        return {
            "Api-Key": api_key,
            "X-Signature": hotelbeds_signature(api_key, self.credential(integration, "api_secret"), timestamp),
            "X-Timestamp": str(timestamp),
            "Content-Type": "application/json",
        }

    def connection_path(self, integration: Integration) -> str:
        return "/hotel-content-api/1.0/hotels"

    def info_path(self, integration: Integration) -> str:
        return "/hotel-content-api/1.0/hotels"

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return "/hotel-api/1.0/inventory"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return "/hotel-api/1.0/rates"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return "/hotel-api/1.0/availability"

    def reservations_path(self, integration: Integration) -> str:
        return "/hotel-api/1.0/bookings"
