"""Canonical types every channel adapter returns. Same shape regardless of vendor."""
import re
from datetime import date
from typing import Any

from app.core.timeutil import parse_date

# Canonical webhook event types
RESERVATION = "reservation"
CANCELLATION = "cancellation"
MODIFICATION = "modification"
REVIEW = "review"
INVENTORY = "inventory"
UNKNOWN = "unknown"

EVENT_TYPES = (RESERVATION, CANCELLATION, MODIFICATION, REVIEW, INVENTORY, UNKNOWN)
# Events that move occupancy
BOOKING_EVENT_TYPES = (RESERVATION, CANCELLATION, MODIFICATION)

# Vendor payloads use any of these spellings for the same field
ROOM_KEYS = ("roomTypeId", "room_type_id", "roomType", "channelRoomTypeId", "channel_room_type_id")
START_KEYS = ("startDate", "start_date", "checkIn", "check_in")
END_KEYS = ("endDate", "end_date", "checkOut", "check_out")
ROOMS_KEYS = ("rooms", "quantity", "numberOfRooms", "num_rooms")
SUMMARY_KEYS = ("reservationSummary", "reservation_summary", "reservation")
PREVIOUS_KEYS = ("previous", "original", "previousReservation", "previous_reservation")
RESERVATION_ID_KEYS = (
    "reservation_id",
    "reservationId",
    "booking_id",
    "bookingId",
    "confirmation_code",
    "source_reservation_id",
    "id",
)


def first_present(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """First non-empty value among keys, or None."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _room_ref(value: Any) -> int | str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    return text or None


def _room_count(value: Any, signed: bool = False) -> int:
    """At least 1 room; signed counts (a modification's net change) may be zero or negative."""
    if value is None or isinstance(value, bool):
        return 1
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 1
    return count if signed else max(1, count)


class ReservationSummary:
    """Vendor-agnostic stay: room reference (internal int or channel string), [start, end), room count."""

    __slots__ = ("room_ref", "start", "end", "rooms")

    def __init__(
        self,
        *,
        room_ref: int | str | None,
        start: date | None,
        end: date | None,
        rooms: int = 1,
    ):
        self.room_ref = room_ref
        self.start = start
        self.end = end
        self.rooms = rooms

    @property
    def has_valid_range(self) -> bool:
        return self.start is not None and self.end is not None and self.start < self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_ref": self.room_ref,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "rooms": self.rooms,
        }


def normalize_reservation_summary(source: Any, signed_rooms: bool = False) -> ReservationSummary | None:
    """
    Build a ReservationSummary from loosely-typed vendor JSON.
    Looks inside reservationSummary / reservation first, then the object itself.
    Returns None when neither a room reference nor any date is present.
    signed_rooms keeps a negative room count (modification net effect) instead of flooring it at 1.
    """
    if not isinstance(source, dict):
        return None
    data = source
    for key in SUMMARY_KEYS:
        nested = source.get(key)
        if isinstance(nested, dict):
            data = nested
            break
    room_ref = _room_ref(first_present(data, ROOM_KEYS))
    start = parse_date(first_present(data, START_KEYS))
    end = parse_date(first_present(data, END_KEYS))
    if room_ref is None and start is None and end is None:
        return None
    return ReservationSummary(
        room_ref=room_ref,
        start=start,
        end=end,
        rooms=_room_count(first_present(data, ROOMS_KEYS), signed=signed_rooms),
    )


def normalize_phone(raw: Any) -> str | None:
    """Strip everything but digits and '+'; ensure a leading '+'."""
    if not raw or not isinstance(raw, str):
        return None
    digits = re.sub(r"[^+\d]", "", raw.strip())
    if not digits:
        return None
    return digits if digits.startswith("+") else f"+{digits}"


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def build_guest_record(
    data: dict[str, Any],
    summary: ReservationSummary | None,
    *,
    source: str,
    property_id: str | None = None,
) -> dict[str, Any] | None:
    """
    Canonical guest/reservation record forwarded to the PMS.
    None when the payload carries no guest (no name and no email).
    `roomtype` holds the channel room reference; the engine swaps in the internal id.
    """
    guest = data.get("guest") if isinstance(data.get("guest"), dict) else {}
    full_name = guest.get("name") or guest.get("full_name") or data.get("guest_name") or data.get("guestName")
    email = guest.get("email") or data.get("guest_email") or data.get("email")
    if not full_name and not email:
        return None
    phone = normalize_phone(
        guest.get("phone") or guest.get("phoneNumber") or data.get("guest_phone") or data.get("phone")
    )
    guests = first_present(data, ("number_of_guests", "numberOfGuests", "guests"))
    if guests is None:
        guests = summary.rooms if summary else 1
    return {
        "fullName": full_name,
        "email": email,
        "phoneNumber": phone,
        "property": data.get("property_id") or property_id,
        "roomNumber": data.get("room_number") or data.get("roomNumber") or "",
        "roomtype": summary.room_ref if summary else None,
        "startDate": summary.start.isoformat() if summary and summary.start else None,
        "endDate": summary.end.isoformat() if summary and summary.end else None,
        "numberOfGuests": guests,
        "paymentMethod": "CHANNEL_MANAGER",
        "receivingAccount": "OTA",
        "amountPaid": _to_float(data.get("amount_paid")),
        "outstanding": _to_float(data.get("outstanding")),
        "reservationSource": source,
        "sourceReservationId": first_present(data, RESERVATION_ID_KEYS),
    }


class CanonicalEvent:
    """One parsed inbound webhook. `processed` is False for unknown or malformed payloads."""

    __slots__ = ("type", "processed", "summary", "previous", "guest", "channel_reservation_id", "reason", "data")

    def __init__(
        self,
        *,
        type: str,
        processed: bool = True,
        summary: ReservationSummary | None = None,
        previous: ReservationSummary | None = None,
        guest: dict[str, Any] | None = None,
        channel_reservation_id: str | None = None,
        reason: str | None = None,
        data: dict[str, Any] | None = None,
    ):
        self.type = type
        self.processed = processed
        self.summary = summary
        self.previous = previous
        self.guest = guest
        self.channel_reservation_id = channel_reservation_id
        self.reason = reason
        self.data = data or {}

    @classmethod
    def unknown(cls, reason: str, data: dict[str, Any] | None = None) -> "CanonicalEvent":
        return cls(type=UNKNOWN, processed=False, reason=reason, data=data)

    @property
    def moves_occupancy(self) -> bool:
        return self.processed and self.type in BOOKING_EVENT_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Snapshot stored on the inbound sync log."""
        return {
            "type": self.type,
            "processed": self.processed,
            "summary": self.summary.to_dict() if self.summary else None,
            "previous": self.previous.to_dict() if self.previous else None,
            "guest": self.guest,
            "channel_reservation_id": self.channel_reservation_id,
            "reason": self.reason,
        }


class ConnectionResult:
    __slots__ = ("success", "error")

    def __init__(self, success: bool, error: str | None = None):
        self.success = success
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "error": self.error}
