import json
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from app.config import settings
from app.core.errors import TransportError
from app.models.enums import ForwardStatus
from app.models.pms_forward_task import PmsForwardTask
from app.scheduler.pms_forward_job import run_pms_forward_job
from app.services.pms_forward import PmsReservationClient, enqueue_guest_forward, forward_backoff, run_pending_forwards
from app.services.sync.inbound import handle_webhook

GUEST = {"fullName": "Ada Lovelace", "email": "ada@example.com", "roomtype": 7}


def _client(status=201, seen=None, url="https://pms.example.com/hotels/{hotelId}/reservations", api_key="secret"):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json={"id": 1})

    return PmsReservationClient(url=url, api_key=api_key, transport=httpx.MockTransport(handler))


def test_url_placeholder_or_query_param():
    assert _client().build_url(12) == "https://pms.example.com/hotels/12/reservations"
    client = _client(url="https://pms.example.com/reservations?source=ota")
    assert client.build_url(12) == "https://pms.example.com/reservations?source=ota&hotelId=12"


def test_send_posts_guest_with_api_key():
    seen = []
    assert _client(seen=seen).send(12, GUEST) == 201
    (request,) = seen
    assert request.method == "POST"
    assert request.headers["X-API-Key"] == "secret"
    assert json.loads(request.content)["fullName"] == "Ada Lovelace"


def test_no_api_key_header_when_unset():
    seen = []
    _client(seen=seen, api_key="").send(12, GUEST)
    assert "X-API-Key" not in seen[0].headers


def test_send_raises_on_pms_error():
    with pytest.raises(TransportError) as exc_info:
        _client(status=500).send(12, GUEST)
    assert exc_info.value.status_code == 500


def test_backoff_doubles():
    base = settings.pms_forward_backoff_seconds
    assert forward_backoff(1) == timedelta(seconds=base)
    assert forward_backoff(3) == timedelta(seconds=base * 4)


def test_successful_forward(db, make_integration):
    integration = make_integration(hotel_id=12)
    task = enqueue_guest_forward(db, integration, GUEST, sync_log_id=None)

    counts = run_pending_forwards(db, client=_client())

    assert counts == {"sent": 1, "retrying": 0, "dead": 0}
    db.refresh(task)
    assert task.status == ForwardStatus.SENT.value
    assert task.attempts == 1
    assert task.last_status_code == 201


def test_failed_forward_backs_off_then_dies(db, make_integration):
    integration = make_integration(hotel_id=12)
    task = enqueue_guest_forward(db, integration, GUEST)
    task.max_attempts = 2
    db.commit()
    now = datetime.now(timezone.utc)

    assert run_pending_forwards(db, client=_client(status=503), now=now) == {"sent": 0, "retrying": 1, "dead": 0}
    db.refresh(task)
    assert task.status == ForwardStatus.PENDING.value
    assert task.last_status_code == 503
    # Not due again until the backoff has passed
    assert run_pending_forwards(db, client=_client(status=503), now=now) == {"sent": 0, "retrying": 0, "dead": 0}

    later = now + timedelta(hours=1)
    assert run_pending_forwards(db, client=_client(status=503), now=later) == {"sent": 0, "retrying": 0, "dead": 1}
    db.refresh(task)
    assert task.status == ForwardStatus.DEAD.value
    assert task.next_attempt_at is None


def test_unconfigured_client_leaves_queue_alone(db, make_integration):
    enqueue_guest_forward(db, make_integration(), GUEST)
    counts = run_pending_forwards(db, client=PmsReservationClient(url=""))
    assert counts == {"sent": 0, "retrying": 0, "dead": 0}
    assert db.query(PmsForwardTask).one().attempts == 0


def test_job_uses_its_own_session(db, session_factory, make_integration):
    enqueue_guest_forward(db, make_integration(), GUEST)
    assert run_pms_forward_job(session_factory=session_factory, client=_client())["sent"] == 1


def test_reservation_webhook_queues_guest_with_internal_room_type(
    db, fake_adapter, make_integration, make_mapping, seed_availability, monkeypatch
):
    monkeypatch.setattr(settings, "pms_reservation_forward", True)
    integration = make_integration(hotel_id=12)
    make_mapping(integration, "DLX-1", 7)
    seed_availability(integration, 7, date(2025, 2, 10), days=2)

    result = handle_webhook(
        db,
        integration,
        {
            "event": "reservation",
            "reservation_id": "R-9",
            "room_type_id": "DLX-1",
            "check_in": "2025-02-10",
            "check_out": "2025-02-11",
            "guest": {"name": "Ada Lovelace", "email": "ada@example.com"},
        },
    )

    task = db.get(PmsForwardTask, result["pms_forward_task_id"])
    assert task.hotel_id == 12
    assert task.sync_log_id == result["sync_log_id"]
    assert task.payload["roomtype"] == 7
    assert task.payload["sourceReservationId"] == "R-9"
    assert task.payload["paymentMethod"] == "CHANNEL_MANAGER"
