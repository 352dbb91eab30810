from datetime import date

from app.core.timeutil import iter_dates
from app.models.availability import Availability
from app.services.sync.availability import apply_occupancy_delta, available_rooms, recompute


def _row(total=10, occupied=0, blocked=0, maintenance=0):
    row = Availability(
        integration_id=1,
        roomtype_id=7,
        date=date(2025, 2, 10),
        total_rooms=total,
        occupied_rooms=occupied,
        blocked_rooms=blocked,
        maintenance_rooms=maintenance,
    )
    recompute(row)
    return row


def test_available_rooms_never_negative():
    assert available_rooms(10, 2, 1, 1) == 6
    assert available_rooms(3, 2, 2, 2) == 0
    assert available_rooms(None, None, None, None) == 0


def test_delta_keeps_invariant():
    row = _row(total=10, occupied=2, blocked=1, maintenance=1)
    before, after = apply_occupancy_delta(row, 3)
    assert (before, after) == (2, 5)
    assert row.available_rooms == 10 - 5 - 1 - 1
    assert row.status == "AVAILABLE"


def test_delta_clamps_to_total_and_zero():
    row = _row(total=4, occupied=3)
    apply_occupancy_delta(row, 5)
    assert row.occupied_rooms == 4
    assert row.available_rooms == 0
    assert row.status == "OCCUPIED"

    apply_occupancy_delta(row, -10)
    assert row.occupied_rooms == 0
    assert row.available_rooms == 4
    assert row.status == "AVAILABLE"


def test_blocked_rooms_can_make_a_day_unavailable():
    row = _row(total=5, occupied=1, blocked=2, maintenance=2)
    assert row.available_rooms == 0
    assert row.status == "OCCUPIED"


def test_reservation_range_is_half_open():
    days = list(iter_dates(date(2025, 2, 10), date(2025, 2, 12)))
    assert days == [date(2025, 2, 10), date(2025, 2, 11)]
    assert list(iter_dates(date(2025, 2, 10), date(2025, 2, 10))) == []
