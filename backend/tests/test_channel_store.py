from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.errors import (
    IntegrationConflictError,
    IntegrationNotFoundError,
    RecordNotFoundError,
    SyncLogClosedError,
)
from app.models.enums import SyncDirection, SyncStatus
from app.services import channel_store

NOW = datetime(2025, 2, 10, 12, 0, tzinfo=timezone.utc)


def test_one_integration_per_hotel_and_channel(make_integration):
    make_integration(hotel_id=3)
    with pytest.raises(IntegrationConflictError):
        make_integration(hotel_id=3)
    # Same channel, other hotel is fine
    assert make_integration(hotel_id=4).hotel_id == 4


def test_require_integration_raises_for_unknown_id(db):
    with pytest.raises(IntegrationNotFoundError):
        channel_store.require_integration(db, 999)


def test_integrations_needing_sync(db, make_integration):
    never = make_integration(hotel_id=1)
    stale = make_integration(hotel_id=2, last_sync_at=NOW - timedelta(minutes=20))
    make_integration(hotel_id=3, last_sync_at=NOW - timedelta(minutes=5))
    make_integration(hotel_id=4, status="ERROR")

    due = channel_store.find_integrations_needing_sync(db, now=NOW, staleness_minutes=15)
    assert [i.id for i in due] == [never.id, stale.id]


def test_duplicate_mapping_is_rejected(make_integration, make_mapping):
    integration = make_integration()
    make_mapping(integration, "DLX-1", 7)
    with pytest.raises(IntegrationConflictError):
        make_mapping(integration, " DLX-1 ", 8)


def test_mapping_update_keeps_its_own_identifier_and_rejects_anothers(db, make_integration, make_mapping):
    integration = make_integration()
    deluxe = make_mapping(integration, "DLX-1", 7)
    make_mapping(integration, "STD-1", 3)

    updated = channel_store.update_mapping(db, deluxe, channel_room_type_id="DLX-1", roomtype_id=8)
    assert (updated.channel_room_type_id, updated.roomtype_id) == ("DLX-1", 8)
    with pytest.raises(IntegrationConflictError):
        channel_store.update_mapping(db, deluxe, channel_room_type_id="STD-1")
    with pytest.raises(RecordNotFoundError):
        channel_store.require_mapping(db, integration.id + 1, deluxe.id)


def test_deactivated_integration_leaves_the_sync_rotation(db, make_integration):
    integration = make_integration()
    channel_store.deactivate_integration(db, integration)
    assert integration.status == "INACTIVE"
    assert channel_store.find_integrations_needing_sync(db, now=NOW) == []


def test_availability_range_is_inclusive(db, make_integration, seed_availability):
    integration = make_integration()
    seed_availability(integration, 7, date(2025, 2, 10), days=5)
    seed_availability(integration, 8, date(2025, 2, 10), days=5)

    rows = channel_store.find_availability_by_date_range(
        db, integration.id, date(2025, 2, 11), date(2025, 2, 13), roomtype_id=7
    )
    assert [r.date for r in rows] == [date(2025, 2, 11), date(2025, 2, 12), date(2025, 2, 13)]
    assert len(channel_store.find_availability_by_date_range(db, integration.id, date(2025, 2, 11), date(2025, 2, 11))) == 2


def test_upsert_rederives_available_rooms(db, make_integration):
    integration = make_integration()
    row = channel_store.upsert_availability_row(
        db, integration.id, 7, date(2025, 2, 10), total_rooms=10, occupied_rooms=2, blocked_rooms=1
    )
    db.commit()
    assert row.available_rooms == 7

    row = channel_store.upsert_availability_row(db, integration.id, 7, date(2025, 2, 10), total_rooms=3)
    db.commit()
    # occupied kept, clamped to the new total
    assert (row.occupied_rooms, row.available_rooms, row.status) == (2, 0, "OCCUPIED")


def test_sync_log_is_closed_exactly_once(db, make_integration):
    integration = make_integration()
    log = channel_store.create_sync_log(db, integration.id, "FULL_SYNC", direction=SyncDirection.OUTBOUND)
    assert log.status == SyncStatus.IN_PROGRESS.value

    channel_store.complete_sync_log(
        db, log, status=SyncStatus.SUCCESS, started_at=datetime.now(timezone.utc), records_processed=3
    )
    assert log.completed_at is not None
    assert log.processing_time_ms >= 0

    with pytest.raises(SyncLogClosedError):
        channel_store.complete_sync_log(db, log, status=SyncStatus.FAILED)


def test_sync_statistics(db, make_integration):
    integration = make_integration()
    other = make_integration(hotel_id=2)
    for status in ("SUCCESS", "SUCCESS", "SUCCESS", "FAILED", "PENDING", "IN_PROGRESS"):
        channel_store.create_sync_log(db, integration.id, "FULL_SYNC", status=status)
    channel_store.create_sync_log(db, other.id, "FULL_SYNC", status="FAILED")

    stats = channel_store.get_sync_statistics(db, integration_id=integration.id, days=7)
    assert stats["total"] == 6
    assert stats["successful"] == 3
    assert stats["failed"] == 1
    assert stats["pending"] == 1
    assert stats["in_progress"] == 1
    assert stats["success_rate"] == 50.0

    everything = channel_store.get_sync_statistics(db)
    assert everything["total"] == 7
    assert everything["days"] == 7


def test_sync_statistics_empty_window(db):
    stats = channel_store.get_sync_statistics(db, days=1)
    assert stats["total"] == 0
    assert stats["success_rate"] == 0.0


def test_sync_logs_newest_first_with_filters(db, make_integration):
    integration = make_integration()
    first = channel_store.create_sync_log(db, integration.id, "RATE_UPDATE", status="FAILED")
    second = channel_store.create_sync_log(db, integration.id, "FULL_SYNC", status="SUCCESS")

    assert [log.id for log in channel_store.find_sync_logs(db, integration.id)] == [second.id, first.id]
    assert [log.id for log in channel_store.find_sync_logs(db, integration.id, status="FAILED")] == [first.id]
    assert channel_store.find_sync_logs(db, integration.id, limit=1)[0].id == second.id
