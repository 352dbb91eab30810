"""
Channel adapters: Booking.com, Expedia, Airbnb, etc.
Each adapter talks to its vendor in its own way but returns the same canonical types
so the sync engine stays channel-agnostic.
"""
from app.services.channels.base import ChannelAdapter
from app.services.channels.registry import display_name, features_of, list_supported, register, resolve
from app.services.channels.types import CanonicalEvent, ConnectionResult, ReservationSummary

__all__ = [
    "CanonicalEvent",
    "ChannelAdapter",
    "ConnectionResult",
    "ReservationSummary",
    "display_name",
    "features_of",
    "list_supported",
    "register",
    "resolve",
]
