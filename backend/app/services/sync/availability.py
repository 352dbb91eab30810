"""
Availability arithmetic. Pure functions over an Availability row; no DB access.

Invariant kept by every writer: available = max(0, total - occupied - blocked - maintenance).
"""
from app.models.availability import Availability
from app.models.enums import AvailabilityStatus


def available_rooms(total: int, occupied: int, blocked: int, maintenance: int) -> int:
    return max(0, (total or 0) - (occupied or 0) - (blocked or 0) - (maintenance or 0))


def clamp_occupied(occupied: int, total: int) -> int:
    return min(max(0, occupied), max(0, total or 0))


def status_for(available: int) -> str:
    return AvailabilityStatus.AVAILABLE.value if available > 0 else AvailabilityStatus.OCCUPIED.value


def recompute(row: Availability) -> None:
    """Re-derive available_rooms and status from the counts on row."""
    row.available_rooms = available_rooms(row.total_rooms, row.occupied_rooms, row.blocked_rooms, row.maintenance_rooms)
    row.status = status_for(row.available_rooms)


def apply_occupancy_delta(row: Availability, delta: int) -> tuple[int, int]:
    """
    occupied' = clamp(occupied + delta, 0, total); then recompute.
    Returns (occupied_before, occupied_after).
    """
    before = row.occupied_rooms or 0
    row.occupied_rooms = clamp_occupied(before + delta, row.total_rooms)
    recompute(row)
    return before, row.occupied_rooms
