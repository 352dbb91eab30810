"""Protocol for channel adapters. Every vendor exposes the same capability set; only transport and shaping differ."""
from typing import Any, Protocol

from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.types import CanonicalEvent, ConnectionResult


class ChannelAdapter(Protocol):
    """Interface for Booking.com, Expedia, Airbnb, etc."""

    @property
    def channel_type(self) -> str:
        """ChannelType value this adapter serves (e.g. 'BOOKING_COM')."""
        ...

    def test_connection(self, integration: Integration) -> ConnectionResult:
        """Never raises. In test mode only credential presence is checked."""
        ...

    def update_inventory(self, integration: Integration, mapping: ChannelMapping) -> None:
        """Push one room type. Raises TransportError on non-2xx or network failure."""
        ...

    def update_rates(self, integration: Integration, rate_plan: RatePlan) -> None:
        ...

    def update_availability(self, integration: Integration, availability: Availability) -> None:
        ...

    def process_webhook(self, integration: Integration, payload: Any) -> CanonicalEvent:
        """Pure parse of vendor JSON. Never raises; unknown events come back with processed=False."""
        ...

    def create_reservation(self, integration: Integration, reservation: dict[str, Any]) -> dict[str, Any]:
        ...

    def update_reservation(
        self, integration: Integration, reservation_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        ...

    def cancel_reservation(self, integration: Integration, reservation_id: str) -> dict[str, Any]:
        ...

    def get_channel_info(self, integration: Integration) -> dict[str, Any]:
        ...

    def validate_credentials(self, integration: Integration) -> bool:
        ...
