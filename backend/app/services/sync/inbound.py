"""
Inbound webhooks: raw vendor JSON -> CanonicalEvent -> room type resolution -> availability deltas.

The raw payload is logged first (INBOUND sync log) so every delivery can be audited and replayed.
An unresolvable room type skips the availability step but the webhook still succeeds; drift is
logged, not fatal. ReservationState remembers what each channel reservation last applied, so a
modification releases the old stay before booking the new one, and duplicate deliveries are no-ops.
A stay and its ReservationState are committed together, so a failed delivery leaves nothing behind.
"""
import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.core.constants import DEFAULT_SYNC_ERROR_CODE
from app.core.errors import ChannelSyncError, ResolutionError
from app.core.timeutil import iter_dates, utcnow
from app.models.availability import Availability
from app.models.enums import ReservationStateStatus, SyncDirection, SyncOperationType, SyncStatus
from app.models.integration import Integration
from app.models.reservation_state import ReservationState
from app.services import channel_store
from app.services.channels.types import (
    CANCELLATION,
    INVENTORY,
    MODIFICATION,
    RESERVATION,
    CanonicalEvent,
    normalize_reservation_summary,
)
from app.services.pms_forward import enqueue_guest_forward
from app.services.sync.availability import apply_occupancy_delta
from app.services.sync.engine import push_availability_row, resolve_adapter
from app.services.sync.locks import integration_lock
from app.services.sync.snapshots import json_safe, snapshot

logger = logging.getLogger(__name__)

_OPERATION_FOR_EVENT = {
    RESERVATION: SyncOperationType.BOOKING_CREATE.value,
    MODIFICATION: SyncOperationType.BOOKING_UPDATE.value,
    CANCELLATION: SyncOperationType.BOOKING_CANCEL.value,
    INVENTORY: SyncOperationType.INVENTORY_UPDATE.value,
}


def operation_for_event(event: CanonicalEvent | None) -> str:
    if event is None:
        return SyncOperationType.BOOKING_CREATE.value
    return _OPERATION_FOR_EVENT.get(event.type, SyncOperationType.BOOKING_CREATE.value)


def resolve_room_type(db: Session, integration_id: int, room_ref: int | str | None) -> int:
    """
    int -> internal room type id. str -> Mapping lookup; unmapped numeric strings are taken as
    internal ids. Anything else raises ResolutionError.
    """
    if room_ref is None:
        raise ResolutionError("Webhook carries no room type identifier")
    if isinstance(room_ref, int):
        return room_ref
    mapping = channel_store.find_mapping_by_channel_room_type_id(db, integration_id, room_ref)
    if mapping is not None:
        return mapping.roomtype_id
    if room_ref.isdigit():
        return int(room_ref)
    raise ResolutionError(f"No mapping for channel room type {room_ref!r} on integration {integration_id}")


class AppliedEffect:
    """What one webhook did to availability; stored in the sync log response snapshot."""

    __slots__ = ("roomtype_id", "dates_updated", "dates_missing", "rows", "skipped")

    def __init__(self, roomtype_id: int | None = None) -> None:
        self.roomtype_id = roomtype_id
        self.dates_updated: list[date] = []
        self.dates_missing: list[date] = []
        self.rows: list[Availability] = []
        self.skipped: str | None = None

    def add_row(self, day: date, row: Availability) -> None:
        # A modification whose old and new stays overlap touches the same night twice
        if day not in self.dates_updated:
            self.dates_updated.append(day)
        if all(r.id != row.id for r in self.rows):
            self.rows.append(row)

    def to_dict(self) -> dict[str, Any]:
        return {
            "roomtype_id": self.roomtype_id,
            "dates_updated": [d.isoformat() for d in self.dates_updated],
            "dates_missing": [d.isoformat() for d in self.dates_missing],
            "skipped": self.skipped,
        }


def _apply_days(
    db: Session,
    integration_id: int,
    roomtype_id: int,
    deltas: list[tuple[date, int]],
    effect: AppliedEffect,
) -> dict[str, int]:
    """
    Apply (day, delta) pairs to the loaded rows without committing.
    Returns the change actually made per ISO date after clamping; nights with no row are drift.
    """
    applied: dict[str, int] = {}
    for day, delta in deltas:
        row = channel_store.find_availability_for_day(db, integration_id, roomtype_id, day)
        if row is None:
            logger.warning(
                "Availability drift: no row for integration=%s roomtype=%s date=%s; delta %s not applied",
                integration_id,
                roomtype_id,
                day,
                delta,
            )
            effect.dates_missing.append(day)
            continue
        before, after = apply_occupancy_delta(row, delta)
        logger.debug("Occupied %s -> %s for %s/%s@%s", before, after, integration_id, roomtype_id, day)
        applied[day.isoformat()] = after - before
        effect.add_row(day, row)
    return applied


def _apply_range(
    db: Session,
    integration_id: int,
    roomtype_id: int,
    start: date,
    end: date,
    delta: int,
    effect: AppliedEffect,
) -> dict[str, int]:
    return _apply_days(db, integration_id, roomtype_id, [(day, delta) for day in iter_dates(start, end)], effect)


def _release_state(db: Session, state: ReservationState, effect: AppliedEffect) -> None:
    """Undo exactly what was applied for this reservation, night by night."""
    if state.applied_deltas is None:
        # Recorded before per-night deltas were kept
        _apply_range(
            db, state.integration_id, state.roomtype_id, state.start_date, state.end_date, -state.rooms, effect
        )
        return
    deltas = [
        (day, -int(state.applied_deltas.get(day.isoformat(), 0)))
        for day in iter_dates(state.start_date, state.end_date)
    ]
    _apply_days(db, state.integration_id, state.roomtype_id, [(d, x) for d, x in deltas if x], effect)


def _apply_booking_event(
    db: Session,
    integration: Integration,
    event: CanonicalEvent,
    roomtype_id: int,
    effect: AppliedEffect,
) -> None:
    """Stage the availability change and the ReservationState for one booking event. Caller commits."""
    summary = event.summary
    rid = event.channel_reservation_id
    state = channel_store.get_reservation_state(db, integration.id, rid) if rid else None
    active = state is not None and state.status == ReservationStateStatus.ACTIVE.value
    start, end, rooms = summary.start, summary.end, summary.rooms

    if event.type == RESERVATION:
        if active:
            effect.skipped = f"duplicate delivery of reservation {rid}"
            return
        applied = _apply_range(db, integration.id, roomtype_id, start, end, rooms, effect)
        status = ReservationStateStatus.ACTIVE
    elif event.type == CANCELLATION:
        if state is not None and not active:
            effect.skipped = f"reservation {rid} already cancelled"
            return
        if active:
            # Release what was actually booked, not what the cancellation payload claims
            _release_state(db, state, effect)
            roomtype_id, start, end, rooms = state.roomtype_id, state.start_date, state.end_date, state.rooms
        else:
            _apply_range(db, integration.id, roomtype_id, start, end, -rooms, effect)
        applied = {}
        status = ReservationStateStatus.CANCELLED
    else:
        if active:
            _release_state(db, state, effect)
            if rooms < 1:
                rooms = state.rooms
        elif event.previous is not None and event.previous.has_valid_range:
            try:
                previous_room = resolve_room_type(db, integration.id, event.previous.room_ref or summary.room_ref)
            except ResolutionError as e:
                logger.warning("Modification %s: previous stay not resolvable: %s", rid, e)
            else:
                _apply_range(
                    db,
                    integration.id,
                    previous_room,
                    event.previous.start,
                    event.previous.end,
                    -event.previous.rooms,
                    effect,
                )
            if rooms < 1:
                rooms = event.previous.rooms
        # Without prior state or a previous stay, rooms is the signed net change
        applied = _apply_range(db, integration.id, roomtype_id, start, end, rooms, effect)
        status = ReservationStateStatus.ACTIVE

    if rid:
        channel_store.save_reservation_state(
            db,
            integration.id,
            rid,
            roomtype_id=roomtype_id,
            start=start,
            end=end,
            rooms=rooms,
            applied_deltas=applied,
            status=status,
        )


def _apply_booking_event_atomically(
    db: Session,
    integration: Integration,
    event: CanonicalEvent,
    roomtype_id: int,
) -> AppliedEffect:
    """
    Commit the whole stay and its ReservationState together. A version conflict on any night
    rolls everything back and the event is re-applied from fresh reads.
    """
    attempts = max(1, settings.availability_write_retries)
    for attempt in range(1, attempts + 1):
        effect = AppliedEffect(roomtype_id)
        try:
            _apply_booking_event(db, integration, event, roomtype_id, effect)
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.info(
                "Availability for integration %s roomtype %s changed concurrently (attempt %s/%s); re-applying",
                integration.id,
                roomtype_id,
                attempt,
                attempts,
            )
            continue
        return effect
    raise ChannelSyncError(
        f"Availability for room type {roomtype_id} kept changing; gave up after {attempts} attempts",
        code="AVAILABILITY_CONFLICT",
    )


def _push_rows(db: Session, integration: Integration, adapter, rows: list[Availability]) -> int:
    pushed = 0
    for row in rows:
        if push_availability_row(db, adapter, integration, row):
            pushed += 1
    return pushed


def _enqueue_guest(
    db: Session,
    integration: Integration,
    event: CanonicalEvent,
    roomtype_id: int | None,
    sync_log_id: int,
) -> int | None:
    """Queue the guest record for the PMS with the internal room type. Never raises."""
    guest = dict(event.guest or {})
    if roomtype_id is not None:
        guest["roomtype"] = roomtype_id
    elif not isinstance(guest.get("roomtype"), int):
        ref = guest.get("roomtype")
        guest["roomtype"] = int(ref) if isinstance(ref, str) and ref.isdigit() else None
    try:
        task = enqueue_guest_forward(db, integration, guest, sync_log_id=sync_log_id)
    except Exception as e:
        db.rollback()
        logger.exception("Could not queue PMS forward for integration %s: %s", integration.id, e)
        return None
    return task.id


def handle_webhook(db: Session, integration: Integration, payload: Any) -> dict[str, Any]:
    """
    Process one inbound delivery for integration. Returns a summary with the sync log id,
    the canonical event and the availability effect. Raises (after logging FAILED) only when
    something outside room resolution / real-time push / PMS enqueue fails.
    """
    with integration_lock(integration.id):
        started = utcnow()
        log = channel_store.create_sync_log(
            db,
            integration.id,
            SyncOperationType.BOOKING_CREATE,
            direction=SyncDirection.INBOUND,
            request_data=json_safe(payload),
        )
        event: CanonicalEvent | None = None
        effect = AppliedEffect()
        pushed = 0
        forward_task_id = None
        try:
            adapter = resolve_adapter(db, integration.channel_type)
            event = adapter.process_webhook(integration, payload)
            if event.moves_occupancy and event.summary is None and isinstance(payload, dict):
                data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
                signed = event.type == MODIFICATION
                event.summary = normalize_reservation_summary(
                    data, signed_rooms=signed
                ) or normalize_reservation_summary(payload, signed_rooms=signed)

            roomtype_id = None
            if event.moves_occupancy and event.summary is not None:
                try:
                    roomtype_id = resolve_room_type(db, integration.id, event.summary.room_ref)
                except ResolutionError as e:
                    logger.warning("Webhook on integration %s: %s; availability not updated", integration.id, e)
                    effect.skipped = str(e)
                effect.roomtype_id = roomtype_id
                if roomtype_id is not None:
                    if event.summary.has_valid_range:
                        effect = _apply_booking_event_atomically(db, integration, event, roomtype_id)
                    else:
                        effect.skipped = "missing or empty stay range"
                        logger.warning("Webhook on integration %s has no valid stay range", integration.id)
            elif not event.processed:
                effect.skipped = event.reason or "event not processed"

            if effect.rows and integration.is_real_time_sync:
                pushed = _push_rows(db, integration, adapter, effect.rows)

            if event.guest and settings.pms_reservation_forward:
                forward_task_id = _enqueue_guest(db, integration, event, roomtype_id, log.id)
        except Exception as e:
            db.rollback()
            logger.error("Webhook failed for integration %s: %s", integration.id, e)
            channel_store.complete_sync_log(
                db,
                log,
                status=SyncStatus.FAILED,
                started_at=started,
                operation_type=operation_for_event(event),
                error_message=str(e)[:2000],
                error_code=getattr(e, "code", None) or DEFAULT_SYNC_ERROR_CODE,
            )
            raise

        result = {
            "event": event.to_dict(),
            "availability": effect.to_dict(),
            "real_time_pushed": pushed,
            "pms_forward_task_id": forward_task_id,
        }
        channel_store.complete_sync_log(
            db,
            log,
            status=SyncStatus.SUCCESS,
            started_at=started,
            operation_type=operation_for_event(event),
            response_data=snapshot(result),
            records_processed=len(effect.dates_updated) + len(effect.dates_missing),
            records_success=len(effect.dates_updated),
            records_failed=len(effect.dates_missing),
        )
    logger.info(
        "Webhook %s on integration %s: updated %s dates",
        event.type,
        integration.id,
        len(effect.dates_updated),
    )
    result["sync_log_id"] = log.id
    return result
