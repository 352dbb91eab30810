"""Hotels.com adapter. Reservations live under /bookings."""
from app.models.integration import Integration
from app.services.channels.http_adapter import HttpChannelAdapter


class HotelsComAdapter(HttpChannelAdapter):
    channel_type = "HOTELS_COM"
    display_name = "Hotels.com"
    default_base_url = "https://api.hotels.com/v1"
    event_aliases = {
        "BOOKING_CREATED": "reservation",
        "BOOKING_CANCELLED": "cancellation",
        "BOOKING_MODIFIED": "modification",
    }

    def reservations_path(self, integration: Integration) -> str:
        return "/bookings"
