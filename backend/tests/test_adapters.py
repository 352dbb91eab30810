import json
from datetime import date

import httpx
import pytest

from app.core.errors import TransportError
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.services.channels.airbnb import AirbnbAdapter
from app.services.channels.booking_com import BookingComAdapter
from app.services.channels.expedia import ExpediaAdapter
from app.services.channels.hotelbeds import HotelbedsAdapter, hotelbeds_signature
from app.services.channels.seven import SevenAdapter
from app.services.channels.types import normalize_reservation_summary


def _integration(**overrides):
    fields = {
        "id": 5,
        "hotel_id": 12,
        "channel_type": "EXPEDIA",
        "channel_name": "Expedia",
        "channel_property_id": "PROP-9",
        "credentials": {"access_token": "tok"},
        "test_mode": False,
    }
    fields.update(overrides)
    return Integration(**fields)


class _Recorder:
    def __init__(self, status=200, body=None):
        self.requests = []
        self.status = status
        self.body = body if body is not None else {"ok": True}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)


def test_availability_push_sends_bearer_and_body():
    recorder = _Recorder()
    adapter = ExpediaAdapter(transport=httpx.MockTransport(recorder))
    row = Availability(
        integration_id=5,
        roomtype_id=7,
        date=date(2025, 2, 10),
        total_rooms=10,
        available_rooms=7,
        status="AVAILABLE",
        is_closed=False,
    )
    adapter.update_availability(_integration(), row)

    (request,) = recorder.requests
    assert request.method == "PUT"
    assert request.url == "https://api.ean.com/v3/hotels/PROP-9/availability"
    assert request.headers["Authorization"] == "Bearer tok"
    body = json.loads(request.content)
    assert body["date"] == "2025-02-10"
    assert body["availableRooms"] == 7


def test_non_2xx_raises_transport_error_with_status():
    adapter = ExpediaAdapter(transport=httpx.MockTransport(_Recorder(status=503, body={"error": "down"})))
    mapping = ChannelMapping(channel_room_type_id="DLX-1", channel_room_type_name="Deluxe")
    with pytest.raises(TransportError) as exc_info:
        adapter.update_inventory(_integration(), mapping)
    assert exc_info.value.status_code == 503
    assert exc_info.value.retryable


def test_network_failure_raises_transport_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter = ExpediaAdapter(transport=httpx.MockTransport(boom))
    with pytest.raises(TransportError):
        adapter.get_channel_info(_integration())


def test_missing_credentials_never_reach_the_network():
    recorder = _Recorder()
    adapter = ExpediaAdapter(transport=httpx.MockTransport(recorder))
    result = adapter.test_connection(_integration(credentials={}))
    assert not result.success
    assert "access_token" in result.error
    assert recorder.requests == []


def test_ota_configuration_credentials_fill_gaps():
    recorder = _Recorder()
    adapter = ExpediaAdapter(
        base_url="https://sandbox.example.com/",
        credentials={"access_token": "from-config"},
        transport=httpx.MockTransport(recorder),
    )
    assert adapter.test_connection(_integration(credentials={})).success
    (request,) = recorder.requests
    assert str(request.url) == "https://sandbox.example.com/hotels"
    assert request.headers["Authorization"] == "Bearer from-config"


def test_connection_probe_failure_is_reported_not_raised():
    adapter = ExpediaAdapter(transport=httpx.MockTransport(_Recorder(status=401)))
    result = adapter.test_connection(_integration())
    assert not result.success
    assert "401" in result.error


def test_booking_com_checks_credential_presence_only():
    recorder = _Recorder()
    adapter = BookingComAdapter(transport=httpx.MockTransport(recorder))
    integration = _integration(channel_type="BOOKING_COM", credentials={"api_key": "k", "api_secret": "s"})
    assert adapter.test_connection(integration).success
    assert recorder.requests == []
    assert not adapter.test_connection(_integration(credentials={"api_key": "k"})).success


def test_hotelbeds_signs_every_request():
    recorder = _Recorder()
    adapter = HotelbedsAdapter(transport=httpx.MockTransport(recorder))
    integration = _integration(channel_type="HOTELBEDS", credentials={"api_key": "key", "api_secret": "secret"})
    adapter.get_channel_info(integration)

    (request,) = recorder.requests
    timestamp = int(request.headers["X-Timestamp"])
    assert request.headers["Api-Key"] == "key"
    assert request.headers["X-Signature"] == hotelbeds_signature("key", "secret", timestamp)
    assert len(request.headers["X-Signature"]) == 64


def test_airbnb_calendar_body():
    recorder = _Recorder()
    adapter = AirbnbAdapter(transport=httpx.MockTransport(recorder))
    integration = _integration(channel_type="AIRBNB", credentials={"api_key": "abc"})
    row = Availability(roomtype_id=1, date=date(2025, 3, 1), available_rooms=0, is_closed=False)
    adapter.update_availability(integration, row)

    (request,) = recorder.requests
    assert request.headers["X-Airbnb-API-Key"] == "abc"
    assert request.url.path.endswith("/listings/PROP-9/calendar")
    assert json.loads(request.content)["available"] is False


def test_webhook_with_vendor_alias():
    adapter = ExpediaAdapter()
    event = adapter.process_webhook(
        _integration(),
        {
            "event_type": "RESERVATION_MODIFIED",
            "data": {
                "reservationId": "R-77",
                "roomTypeId": "DLX-1",
                "checkIn": "2025-02-10",
                "checkOut": "2025-02-13",
                "rooms": "2",
                "previous": {"roomTypeId": "DLX-1", "checkIn": "2025-02-09", "checkOut": "2025-02-11"},
                "guest": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "(555) 010-2000"},
            },
        },
    )
    assert event.processed
    assert event.type == "modification"
    assert event.channel_reservation_id == "R-77"
    assert event.summary.room_ref == "DLX-1"
    assert (event.summary.start, event.summary.end, event.summary.rooms) == (date(2025, 2, 10), date(2025, 2, 13), 2)
    assert event.previous.start == date(2025, 2, 9)
    assert event.guest["fullName"] == "Ada Lovelace"
    assert event.guest["phoneNumber"] == "+5550102000"
    assert event.guest["roomtype"] == "DLX-1"


def test_webhook_reads_nested_reservation_summary():
    event = SevenAdapter().process_webhook(
        _integration(channel_type="SEVEN"),
        {
            "event_type": "reservation",
            "property_id": "P-7",
            "data": {"reservationSummary": {"roomTypeId": 3, "startDate": "2025-04-01", "endDate": "2025-04-02"}},
        },
    )
    assert event.type == "reservation"
    assert event.summary.room_ref == 3
    assert event.summary.rooms == 1
    # No guest name or email: nothing to forward
    assert event.guest is None


def test_modification_keeps_signed_room_count():
    event = ExpediaAdapter().process_webhook(
        _integration(),
        {
            "event_type": "RESERVATION_MODIFIED",
            "data": {"roomTypeId": "DLX-1", "checkIn": "2025-02-10", "checkOut": "2025-02-12", "rooms": -1},
        },
    )
    assert event.type == "modification"
    assert event.summary.rooms == -1

    stay = {"roomTypeId": "DLX-1", "checkIn": "2025-02-10", "checkOut": "2025-02-12", "rooms": -1}
    assert normalize_reservation_summary(stay).rooms == 1
    assert normalize_reservation_summary({**stay, "rooms": 0}, signed_rooms=True).rooms == 0


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        b"[1, 2, 3]",
        ["a", "list"],
        {"event_type": "SOMETHING_ELSE"},
        {"event_type": "reservation", "data": {"rooms": {"nested": "garbage"}, "checkIn": 12}},
    ],
)
def test_webhook_parsing_never_raises(payload):
    event = ExpediaAdapter().process_webhook(_integration(), payload)
    assert event.type in ("unknown", "reservation")
    if event.type == "unknown":
        assert not event.processed
        assert event.reason
