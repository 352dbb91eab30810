"""Registry of channel adapters keyed by ChannelType value. Add new vendors here."""
import logging
from typing import Any, Callable

from app.core.errors import UnsupportedChannelError
from app.models.ota_configuration import OtaConfiguration
from app.services.channels.base import ChannelAdapter

logger = logging.getLogger(__name__)

# factory(base_url=..., credentials=...) -> adapter
AdapterFactory = Callable[..., ChannelAdapter]

_factories: dict[str, AdapterFactory] = {}

_DISPLAY_NAMES: dict[str, str] = {
    "BOOKING_COM": "Booking.com",
    "EXPEDIA": "Expedia",
    "AIRBNB": "Airbnb",
    "HOTELS_COM": "Hotels.com",
    "TRIPADVISOR": "TripAdvisor",
    "AGODA": "Agoda",
    "HOTELBEDS": "Hotelbeds",
    "SEVEN": "7even",
    "CUSTOM": "Custom Integration",
}

_FEATURES: dict[str, list[str]] = {
    "BOOKING_COM": [
        "Real-time availability sync",
        "Rate management",
        "Webhook support",
        "Multi-currency support",
        "Room type mapping",
        "Guest reservation management",
    ],
    "EXPEDIA": ["Inventory sync", "Rate updates", "XML API integration", "Multi-property support", "Guest management"],
    "AIRBNB": [
        "Calendar sync",
        "Pricing updates",
        "Instant booking",
        "Guest communication",
        "Property listing management",
    ],
    "HOTELS_COM": [
        "Availability updates",
        "Rate synchronization",
        "Guest reservation sync",
        "Property information management",
    ],
    "TRIPADVISOR": ["Property listing sync", "Guest review management", "Availability updates", "Rate synchronization"],
    "AGODA": ["Inventory management", "Rate updates", "Guest reservation sync", "Multi-language support"],
    "HOTELBEDS": ["Signed API requests", "Inventory sync", "Rate updates", "Booking management"],
    "SEVEN": ["Reservation webhooks", "PMS guest forwarding", "Availability updates", "Rate synchronization"],
    "CUSTOM": ["Custom API integration", "Flexible data mapping", "Webhook support", "Custom authentication"],
}

# Capability discovery must not fail for types without a curated list
GENERIC_FEATURES = ["Inventory sync", "Rate updates", "Availability updates"]


def register(channel_type: str, factory: AdapterFactory) -> None:
    """Register (or replace) the adapter factory for a channel type."""
    _factories[channel_type] = factory
    logger.debug("Registered channel adapter: %s", channel_type)


def resolve(channel_type: str, config: OtaConfiguration | None = None, **kwargs: Any) -> ChannelAdapter:
    """
    Build the adapter for channel_type. An active OtaConfiguration supplies base URL and
    fallback credentials. Raises UnsupportedChannelError if unknown.
    """
    key = getattr(channel_type, "value", channel_type)
    factory = _factories.get(key)
    if factory is None:
        raise UnsupportedChannelError(f"Unsupported channel type: {key}. Available: {list(_factories)}")
    if config is not None and config.is_active:
        kwargs.setdefault("base_url", config.base_url or None)
        kwargs.setdefault("credentials", config.credentials())
    return factory(**kwargs)


def list_supported() -> list[str]:
    return list(_factories.keys())


def display_name(channel_type: str) -> str:
    key = getattr(channel_type, "value", channel_type)
    return _DISPLAY_NAMES.get(key, key)


def features_of(channel_type: str) -> list[str]:
    key = getattr(channel_type, "value", channel_type)
    return list(_FEATURES.get(key, GENERIC_FEATURES))


def _init_registry() -> None:
    from app.services.channels.agoda import AgodaAdapter
    from app.services.channels.airbnb import AirbnbAdapter
    from app.services.channels.booking_com import BookingComAdapter
    from app.services.channels.custom import CustomAdapter
    from app.services.channels.expedia import ExpediaAdapter
    from app.services.channels.hotelbeds import HotelbedsAdapter
    from app.services.channels.hotels_com import HotelsComAdapter
    from app.services.channels.seven import SevenAdapter
    from app.services.channels.tripadvisor import TripAdvisorAdapter

    for adapter_cls in (
        BookingComAdapter,
        ExpediaAdapter,
        AirbnbAdapter,
        HotelsComAdapter,
        TripAdvisorAdapter,
        AgodaAdapter,
        HotelbedsAdapter,
        SevenAdapter,
        CustomAdapter,
    ):
        register(adapter_cls.channel_type, adapter_cls)


# Register built-in adapters on first import
_init_registry()
