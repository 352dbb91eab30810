"""
Shared HTTP adapter: one httpx call per push, typed TransportError on failure, tolerant webhook parsing.
Vendor subclasses override base URL, auth headers, paths, and event-name aliases.
"""
import json
import logging
from typing import Any

import httpx

from app.config import settings
from app.core.errors import TransportError
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.services.channels.types import (
    EVENT_TYPES,
    MODIFICATION,
    PREVIOUS_KEYS,
    RESERVATION,
    RESERVATION_ID_KEYS,
    UNKNOWN,
    CanonicalEvent,
    ConnectionResult,
    build_guest_record,
    first_present,
    normalize_reservation_summary,
)

logger = logging.getLogger(__name__)


def _money(value: Any) -> float | None:
    return float(value) if value is not None else None


class HttpChannelAdapter:
    channel_type = ""
    display_name = ""
    default_base_url = ""
    required_credentials: tuple[str, ...] = ("access_token",)
    requires_property_id = True
    # False: test_connection only checks credential presence (no vendor probe)
    probe_connection = True
    # Keys that may carry the vendor event name, in lookup order
    event_keys: tuple[str, ...] = ("event_type", "type", "event")
    # Vendor event name -> canonical type. Canonical names themselves are always accepted.
    event_aliases: dict[str, str] = {}
    inventory_method = "PUT"
    rates_method = "PUT"
    availability_method = "PUT"

    def __init__(
        self,
        base_url: str | None = None,
        credentials: dict[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._fallback_credentials = dict(credentials or {})
        self._timeout = timeout if timeout is not None else settings.channel_http_timeout_seconds
        self._transport = transport

    # --- credentials / transport ---

    def credential(self, integration: Integration, key: str) -> str:
        """Integration credential, else the channel-wide OTA configuration value."""
        return integration.credential(key) or str(self._fallback_credentials.get(key) or "").strip()

    def missing_credentials(self, integration: Integration) -> list[str]:
        missing = [key for key in self.required_credentials if not self.credential(integration, key)]
        if self.requires_property_id and not integration.channel_property_id:
            missing.append("channel_property_id")
        return missing

    def base_url(self, integration: Integration) -> str:
        return self._base_url

    def headers(self, integration: Integration) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credential(integration, 'access_token')}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        integration: Integration,
        path: str,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        missing = self.missing_credentials(integration)
        if missing:
            raise TransportError(f"{self.display_name} credentials missing: {', '.join(missing)}")
        base = self.base_url(integration)
        if not base:
            raise TransportError(f"{self.display_name} base URL not configured")
        url = f"{base}{path}"
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.request(method, url, json=json_body, headers=self.headers(integration))
        except httpx.HTTPError as e:
            raise TransportError(f"{self.display_name} request failed: {e}") from e
        if not r.is_success:
            raise TransportError(
                f"{self.display_name} API error: {r.status_code}",
                status_code=r.status_code,
                detail=(r.text[:500] if r.text else None),
            )
        try:
            return r.json() if r.content else {}
        except ValueError:
            return {"_raw_body": (r.text[:2000] if r.text else "")}

    # --- vendor paths ---

    def connection_path(self, integration: Integration) -> str:
        return f"/hotels/{integration.channel_property_id}"

    def inventory_path(self, integration: Integration, mapping: ChannelMapping) -> str:
        return f"/hotels/{integration.channel_property_id}/room-types/{mapping.channel_room_type_id}"

    def rates_path(self, integration: Integration, rate_plan: RatePlan) -> str:
        return f"/hotels/{integration.channel_property_id}/rates"

    def availability_path(self, integration: Integration, availability: Availability) -> str:
        return f"/hotels/{integration.channel_property_id}/availability"

    def reservations_path(self, integration: Integration) -> str:
        return "/reservations"

    def reservation_path(self, integration: Integration, reservation_id: str) -> str:
        return f"{self.reservations_path(integration)}/{reservation_id}"

    def info_path(self, integration: Integration) -> str:
        return f"/hotels/{integration.channel_property_id}"

    # --- request bodies ---

    def inventory_body(self, integration: Integration, mapping: ChannelMapping) -> dict[str, Any]:
        return {
            "propertyId": integration.channel_property_id,
            "roomTypeId": mapping.channel_room_type_id,
            "roomTypeName": mapping.channel_room_type_name,
            "ratePlanId": mapping.channel_rate_plan_id,
            "description": mapping.channel_description or "",
            "amenities": mapping.channel_amenities or [],
            "images": mapping.channel_images or [],
            "active": bool(mapping.is_active),
        }

    def rates_body(self, integration: Integration, rate_plan: RatePlan) -> dict[str, Any]:
        return {
            "propertyId": integration.channel_property_id,
            "ratePlanId": rate_plan.channel_rate_plan_id,
            "ratePlanName": rate_plan.channel_rate_plan_name,
            "baseRate": _money(rate_plan.base_rate),
            "currency": rate_plan.currency,
            "minStay": rate_plan.min_stay,
            "maxStay": rate_plan.max_stay,
            "closedToArrival": rate_plan.closed_to_arrival,
            "closedToDeparture": rate_plan.closed_to_departure,
            "seasonalRates": rate_plan.seasonal_rates or {},
            "dayOfWeekRates": rate_plan.day_of_week_rates or {},
            "specialDates": rate_plan.special_dates or {},
        }

    def availability_body(self, integration: Integration, availability: Availability) -> dict[str, Any]:
        return {
            "propertyId": integration.channel_property_id,
            "roomTypeId": availability.roomtype_id,
            "date": availability.date.isoformat(),
            "totalRooms": availability.total_rooms,
            "availableRooms": availability.available_rooms,
            "status": availability.status,
            "closed": bool(availability.is_closed),
            "rate": _money(availability.rate),
            "currency": availability.currency,
            "restrictions": availability.restrictions or {},
        }

    def reservation_body(self, integration: Integration, reservation: dict[str, Any]) -> dict[str, Any]:
        return {"propertyId": integration.channel_property_id, "reservation": reservation}

    # --- capability set ---

    def test_connection(self, integration: Integration) -> ConnectionResult:
        missing = self.missing_credentials(integration)
        if missing:
            return ConnectionResult(False, f"{self.display_name} requires: {', '.join(missing)}")
        if integration.test_mode or not self.probe_connection:
            logger.info("%s: credentials present; skipping connectivity probe", self.display_name)
            return ConnectionResult(True)
        try:
            self._request("GET", integration, self.connection_path(integration))
        except Exception as e:
            logger.warning("%s connection test failed: %s", self.display_name, e)
            return ConnectionResult(False, str(e))
        return ConnectionResult(True)

    def validate_credentials(self, integration: Integration) -> bool:
        return self.test_connection(integration).success

    def update_inventory(self, integration: Integration, mapping: ChannelMapping) -> None:
        self._request(
            self.inventory_method,
            integration,
            self.inventory_path(integration, mapping),
            self.inventory_body(integration, mapping),
        )
        logger.debug("%s inventory pushed for %s", self.display_name, mapping.channel_room_type_id)

    def update_rates(self, integration: Integration, rate_plan: RatePlan) -> None:
        self._request(
            self.rates_method,
            integration,
            self.rates_path(integration, rate_plan),
            self.rates_body(integration, rate_plan),
        )

    def update_availability(self, integration: Integration, availability: Availability) -> None:
        self._request(
            self.availability_method,
            integration,
            self.availability_path(integration, availability),
            self.availability_body(integration, availability),
        )

    def create_reservation(self, integration: Integration, reservation: dict[str, Any]) -> dict[str, Any]:
        return self._request(
            "POST", integration, self.reservations_path(integration), self.reservation_body(integration, reservation)
        )

    def update_reservation(
        self, integration: Integration, reservation_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        body = self.reservation_body(integration, updates)
        body["reservationId"] = reservation_id
        return self._request("PUT", integration, self.reservation_path(integration, reservation_id), body)

    def cancel_reservation(self, integration: Integration, reservation_id: str) -> dict[str, Any]:
        return self._request("DELETE", integration, self.reservation_path(integration, reservation_id))

    def get_channel_info(self, integration: Integration) -> dict[str, Any]:
        info = self._request("GET", integration, self.info_path(integration))
        return {"channel": self.display_name, "status": "active", "info": info}

    # --- webhooks ---

    def canonical_event_type(self, raw_type: Any) -> str | None:
        if raw_type is None:
            return None
        key = str(raw_type).strip()
        if key in self.event_aliases:
            return self.event_aliases[key]
        lowered = key.lower()
        if lowered in EVENT_TYPES and lowered != UNKNOWN:
            return lowered
        return None

    def build_guest(self, integration: Integration, data: dict[str, Any], payload: dict[str, Any], summary):
        return build_guest_record(
            data,
            summary,
            source=integration.channel_name or integration.channel_type,
            property_id=payload.get("property_id") or integration.channel_property_id,
        )

    def process_webhook(self, integration: Integration, payload: Any) -> CanonicalEvent:
        try:
            return self._parse_webhook(integration, payload)
        except Exception as e:
            # Vendor JSON is untrusted; a parse bug must not fail the webhook
            logger.warning("%s webhook could not be parsed: %s", self.display_name, e, exc_info=True)
            return CanonicalEvent.unknown(f"Malformed webhook: {e}")

    def _parse_webhook(self, integration: Integration, payload: Any) -> CanonicalEvent:
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError:
                return CanonicalEvent.unknown("Webhook body is not valid JSON")
        if not isinstance(payload, dict):
            return CanonicalEvent.unknown("Webhook body is not an object")
        raw_type = first_present(payload, self.event_keys)
        event_type = self.canonical_event_type(raw_type)
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        if event_type is None:
            logger.warning("%s: unknown webhook type %s", self.display_name, raw_type)
            return CanonicalEvent.unknown(f"Unknown webhook type: {raw_type}", data=data)
        signed = event_type == MODIFICATION
        summary = normalize_reservation_summary(data, signed_rooms=signed)
        if summary is None and data is not payload:
            summary = normalize_reservation_summary(payload, signed_rooms=signed)
        previous_raw = first_present(data, PREVIOUS_KEYS)
        previous = normalize_reservation_summary(previous_raw) if isinstance(previous_raw, dict) else None
        reservation_id = first_present(data, RESERVATION_ID_KEYS)
        guest = None
        if event_type in (RESERVATION, MODIFICATION):
            guest = self.build_guest(integration, data, payload, summary)
        return CanonicalEvent(
            type=event_type,
            summary=summary,
            previous=previous,
            guest=guest,
            channel_reservation_id=str(reservation_id) if reservation_id is not None else None,
            data=data,
        )
