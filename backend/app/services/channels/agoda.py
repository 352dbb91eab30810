"""Agoda adapter."""
from app.services.channels.http_adapter import HttpChannelAdapter


class AgodaAdapter(HttpChannelAdapter):
    channel_type = "AGODA"
    display_name = "Agoda"
    default_base_url = "https://api.agoda.com/v1"
    event_aliases = {
        "RESERVATION_CREATED": "reservation",
        "RESERVATION_CANCELLED": "cancellation",
        "RESERVATION_MODIFIED": "modification",
    }
