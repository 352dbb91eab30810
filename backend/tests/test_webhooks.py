from datetime import date, timedelta

import pytest
from sqlalchemy import update

from app.core.errors import ChannelSyncError
from app.db.session import engine
from app.models.availability import Availability
from app.models.enums import SyncDirection, SyncStatus
from app.services import channel_store
from app.services.sync import inbound
from app.services.sync.inbound import handle_webhook, resolve_room_type

FEB_10 = date(2025, 2, 10)


def _occupied(db, integration, roomtype_id, start=FEB_10, days=3):
    db.expire_all()
    rows = channel_store.find_availability_by_date_range(
        db, integration.id, start, start + timedelta(days=days - 1), roomtype_id=roomtype_id
    )
    return [r.occupied_rooms for r in rows]


@pytest.fixture
def dlx(db, fake_adapter, make_integration, make_mapping, seed_availability):
    integration = make_integration()
    make_mapping(integration, "DLX-1", 7)
    seed_availability(integration, 7, FEB_10, days=3, total=10, occupied=2)
    return integration


def _booking(event="reservation", **overrides):
    payload = {"event": event, "room_type_id": "DLX-1", "check_in": "2025-02-10", "check_out": "2025-02-12", "rooms": 1}
    payload.update(overrides)
    return payload


def test_reservation_occupies_nights_but_not_checkout_day(db, dlx):
    result = handle_webhook(db, dlx, _booking())

    assert _occupied(db, dlx, 7) == [3, 3, 2]
    assert result["event"]["type"] == "reservation"
    assert result["availability"]["roomtype_id"] == 7
    assert result["availability"]["dates_updated"] == ["2025-02-10", "2025-02-11"]

    log = channel_store.find_sync_logs(db, dlx.id)[0]
    assert log.id == result["sync_log_id"]
    assert log.direction == SyncDirection.INBOUND.value
    assert log.operation_type == "BOOKING_CREATE"
    assert log.status == SyncStatus.SUCCESS.value
    assert log.request_data["room_type_id"] == "DLX-1"
    assert log.records_success == 2


def test_reservation_then_cancellation_restores_counts(db, dlx):
    handle_webhook(db, dlx, _booking(reservation_id="R-1", rooms=2))
    assert _occupied(db, dlx, 7) == [4, 4, 2]

    result = handle_webhook(db, dlx, _booking("cancellation", reservation_id="R-1", rooms=2))
    assert _occupied(db, dlx, 7) == [2, 2, 2]
    assert channel_store.find_sync_logs(db, dlx.id)[0].operation_type == "BOOKING_CANCEL"
    assert result["event"]["type"] == "cancellation"


def test_cancellation_without_prior_state_releases_payload_range(db, dlx):
    handle_webhook(db, dlx, _booking("cancellation"))
    assert _occupied(db, dlx, 7) == [1, 1, 2]


def test_duplicate_delivery_is_not_double_counted(db, dlx):
    handle_webhook(db, dlx, _booking(reservation_id="R-2"))
    second = handle_webhook(db, dlx, _booking(reservation_id="R-2"))
    assert _occupied(db, dlx, 7) == [3, 3, 2]
    assert "duplicate" in second["availability"]["skipped"]


def test_repeated_cancellation_is_a_no_op(db, dlx):
    handle_webhook(db, dlx, _booking(reservation_id="R-3"))
    handle_webhook(db, dlx, _booking("cancellation", reservation_id="R-3"))
    handle_webhook(db, dlx, _booking("cancellation", reservation_id="R-3"))
    assert _occupied(db, dlx, 7) == [2, 2, 2]


def test_modification_moves_the_stay(db, dlx):
    handle_webhook(db, dlx, _booking(reservation_id="R-4"))
    handle_webhook(
        db,
        dlx,
        _booking("modification", reservation_id="R-4", check_in="2025-02-11", check_out="2025-02-13"),
    )
    assert _occupied(db, dlx, 7) == [2, 3, 3]
    state = channel_store.get_reservation_state(db, dlx.id, "R-4")
    assert (state.start_date, state.end_date, state.status) == (date(2025, 2, 11), date(2025, 2, 13), "ACTIVE")


def test_modification_without_state_uses_previous_range(db, dlx):
    handle_webhook(
        db,
        dlx,
        _booking(
            "modification",
            check_in="2025-02-11",
            check_out="2025-02-12",
            previous={"room_type_id": "DLX-1", "check_in": "2025-02-10", "check_out": "2025-02-11"},
        ),
    )
    assert _occupied(db, dlx, 7) == [1, 3, 2]


def test_unresolvable_room_leaves_availability_untouched(db, dlx):
    payload = _booking(room_type_id="PENTHOUSE")
    result = handle_webhook(db, dlx, payload)

    assert _occupied(db, dlx, 7) == [2, 2, 2]
    assert "PENTHOUSE" in result["availability"]["skipped"]
    log = channel_store.find_sync_logs(db, dlx.id)[0]
    assert log.status == SyncStatus.SUCCESS.value
    assert log.request_data == payload


def test_numeric_room_reference_is_an_internal_id(db, dlx):
    assert resolve_room_type(db, dlx.id, 7) == 7
    assert resolve_room_type(db, dlx.id, "DLX-1") == 7
    assert resolve_room_type(db, dlx.id, "9") == 9


def test_missing_dates_are_skipped_as_drift(db, dlx):
    result = handle_webhook(db, dlx, _booking(check_in="2025-02-11", check_out="2025-02-15"))
    assert _occupied(db, dlx, 7) == [2, 3, 3]
    assert result["availability"]["dates_missing"] == ["2025-02-13", "2025-02-14"]


def test_unknown_event_is_a_successful_no_op(db, dlx):
    result = handle_webhook(db, dlx, {"event": "PRICE_ALERT", "foo": "bar"})
    assert not result["event"]["processed"]
    assert _occupied(db, dlx, 7) == [2, 2, 2]
    assert channel_store.find_sync_logs(db, dlx.id)[0].status == SyncStatus.SUCCESS.value


def test_empty_stay_range_changes_nothing(db, dlx):
    result = handle_webhook(db, dlx, _booking(check_out="2025-02-10"))
    assert _occupied(db, dlx, 7) == [2, 2, 2]
    assert result["availability"]["skipped"] == "missing or empty stay range"


def test_real_time_push_failure_does_not_fail_the_webhook(db, dlx, fake_adapter):
    channel_store.update_integration(db, dlx, is_real_time_sync=True)
    fake_adapter.fail_everything = True

    result = handle_webhook(db, dlx, _booking())

    assert result["real_time_pushed"] == 0
    assert _occupied(db, dlx, 7) == [3, 3, 2]
    row = channel_store.find_availability_for_day(db, dlx.id, 7, FEB_10)
    assert row.sync_status == "FAILED"


def test_real_time_push_after_reservation(db, dlx, fake_adapter):
    channel_store.update_integration(db, dlx, is_real_time_sync=True)
    result = handle_webhook(db, dlx, _booking())
    assert result["real_time_pushed"] == 2
    assert [c[3] for c in fake_adapter.calls] == [FEB_10, date(2025, 2, 11)]


def test_unexpected_failure_is_logged_and_raised(db, dlx, monkeypatch):
    def broken(*args, **kwargs):
        raise ChannelSyncError("database hiccup", code="AVAILABILITY_CONFLICT")

    monkeypatch.setattr(inbound, "_apply_booking_event", broken)
    with pytest.raises(ChannelSyncError):
        handle_webhook(db, dlx, _booking())

    log = channel_store.find_sync_logs(db, dlx.id)[0]
    assert log.status == SyncStatus.FAILED.value
    assert log.error_code == "AVAILABILITY_CONFLICT"
    assert log.request_data["room_type_id"] == "DLX-1"


def _concurrent_writer_on(monkeypatch, day, times=None, occupied=None):
    """Another process updates the row for day right after this session reads it."""
    find_row = channel_store.find_availability_for_day
    remaining = {"writes": times}

    def find_then_write(session, integration_id, roomtype_id, when):
        row = find_row(session, integration_id, roomtype_id, when)
        if row is not None and when == day and remaining["writes"] != 0:
            values = {"version": Availability.version + 1}
            if occupied is not None:
                values.update(occupied_rooms=occupied, available_rooms=row.total_rooms - occupied)
            with engine.begin() as conn:
                conn.execute(update(Availability).where(Availability.id == row.id).values(**values))
            if remaining["writes"] is not None:
                remaining["writes"] -= 1
        return row

    monkeypatch.setattr(channel_store, "find_availability_for_day", find_then_write)


def test_version_conflict_reapplies_the_whole_stay(db, dlx, monkeypatch):
    _concurrent_writer_on(monkeypatch, date(2025, 2, 11), times=1, occupied=5)

    result = handle_webhook(db, dlx, _booking(reservation_id="R-8"))

    assert _occupied(db, dlx, 7) == [3, 6, 2]
    assert result["availability"]["dates_updated"] == ["2025-02-10", "2025-02-11"]


def test_failed_delivery_leaves_nothing_behind_and_redelivery_counts_once(db, dlx, monkeypatch):
    _concurrent_writer_on(monkeypatch, date(2025, 2, 11))
    with pytest.raises(ChannelSyncError) as exc:
        handle_webhook(db, dlx, _booking(reservation_id="R-9"))
    assert exc.value.code == "AVAILABILITY_CONFLICT"
    assert _occupied(db, dlx, 7) == [2, 2, 2]
    assert channel_store.get_reservation_state(db, dlx.id, "R-9") is None

    monkeypatch.undo()
    handle_webhook(db, dlx, _booking(reservation_id="R-9"))
    assert _occupied(db, dlx, 7) == [3, 3, 2]


def test_cancellation_releases_only_what_was_booked(
    db, fake_adapter, make_integration, make_mapping, seed_availability
):
    integration = make_integration()
    make_mapping(integration, "DLX-1", 7)
    seed_availability(integration, 7, FEB_10, days=3, total=10, occupied=9)

    handle_webhook(db, integration, _booking(reservation_id="R-10", rooms=3))
    assert _occupied(db, integration, 7) == [10, 10, 9]
    state = channel_store.get_reservation_state(db, integration.id, "R-10")
    assert state.applied_deltas == {"2025-02-10": 1, "2025-02-11": 1}

    handle_webhook(db, integration, _booking("cancellation", reservation_id="R-10", rooms=3))
    assert _occupied(db, integration, 7) == [9, 9, 9]


def test_modification_without_history_applies_signed_net_change(db, dlx):
    handle_webhook(db, dlx, _booking("modification", rooms=-1))
    assert _occupied(db, dlx, 7) == [1, 1, 2]


def test_overlapping_modification_pushes_each_night_once(db, dlx, fake_adapter):
    handle_webhook(db, dlx, _booking(reservation_id="R-11"))
    channel_store.update_integration(db, dlx, is_real_time_sync=True)
    fake_adapter.calls.clear()

    result = handle_webhook(
        db,
        dlx,
        _booking("modification", reservation_id="R-11", check_in="2025-02-11", check_out="2025-02-13"),
    )

    assert _occupied(db, dlx, 7) == [2, 3, 3]
    assert result["real_time_pushed"] == 3
    assert sorted(c[3] for c in fake_adapter.calls) == [FEB_10, date(2025, 2, 11), date(2025, 2, 12)]


def test_raw_payload_is_logged_whole(db, dlx):
    payload = _booking(extras=[{"line": i} for i in range(60)], note="x" * 3000)
    handle_webhook(db, dlx, payload)
    assert channel_store.find_sync_logs(db, dlx.id)[0].request_data == payload
