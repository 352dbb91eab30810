"""Expedia (EAN) adapter. OAuth bearer token; upper-case RESERVATION_* webhook events."""
from app.models.integration import Integration
from app.services.channels.http_adapter import HttpChannelAdapter


class ExpediaAdapter(HttpChannelAdapter):
    channel_type = "EXPEDIA"
    display_name = "Expedia"
    default_base_url = "https://api.ean.com/v3"
    event_aliases = {
        "RESERVATION_CREATED": "reservation",
        "RESERVATION_CANCELLED": "cancellation",
        "RESERVATION_MODIFIED": "modification",
    }

    def connection_path(self, integration: Integration) -> str:
        return "/hotels"
