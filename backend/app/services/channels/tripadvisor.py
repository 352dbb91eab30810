"""TripAdvisor adapter. Review events are canonicalized but never move occupancy."""
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.services.channels.http_adapter import HttpChannelAdapter


class TripAdvisorAdapter(HttpChannelAdapter):
    channel_type = "TRIPADVISOR"
    display_name = "TripAdvisor"
    default_base_url = "https://api.tripadvisor.com/v1"
    event_aliases = {
        "REVIEW_CREATED": "review",
        "REVIEW_UPDATED": "review",
        "BOOKING_CREATED": "reservation",
        "BOOKING_CANCELLED": "cancellation",
    }

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return f"/hotels/{integration.channel_property_id}/listings"

    def reservations_path(self, integration: Integration) -> str:
        return "/bookings"
