"""
Integration & mapping store: query and write primitives for integrations, mappings, rate plans,
availability, sync logs and reservation state. Functions take a Session and commit their own writes.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import (
    IntegrationConflictError,
    IntegrationNotFoundError,
    RecordNotFoundError,
    SyncLogClosedError,
)
from app.core.timeutil import utcnow
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.enums import (
    IntegrationStatus,
    ReservationStateStatus,
    SyncDirection,
    SyncStatus,
)
from app.models.integration import Integration
from app.models.ota_configuration import OtaConfiguration
from app.models.rate_plan import RatePlan
from app.models.reservation_state import ReservationState
from app.models.sync_log import SyncLog
from app.services.sync.availability import recompute

logger = logging.getLogger(__name__)


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


# --- integrations ---


def create_integration(db: Session, **fields: Any) -> Integration:
    """Insert a new integration. Raises IntegrationConflictError if (hotel, channel type) exists."""
    channel_type = _value(fields["channel_type"])
    if find_integration_by_hotel_and_type(db, fields["hotel_id"], channel_type):
        raise IntegrationConflictError(
            f"Integration for hotel {fields['hotel_id']} and channel {channel_type} already exists"
        )
    fields["channel_type"] = channel_type
    fields["status"] = _value(fields.get("status") or IntegrationStatus.PENDING)
    row = Integration(**fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created integration id=%s hotel=%s channel=%s", row.id, row.hotel_id, row.channel_type)
    return row


def get_integration(db: Session, integration_id: int) -> Integration | None:
    return db.query(Integration).filter(Integration.id == integration_id).first()


def require_integration(db: Session, integration_id: int) -> Integration:
    row = get_integration(db, integration_id)
    if row is None:
        raise IntegrationNotFoundError(f"Integration {integration_id} not found")
    return row


def find_integrations_by_hotel(db: Session, hotel_id: int) -> list[Integration]:
    return db.query(Integration).filter(Integration.hotel_id == hotel_id).order_by(Integration.id).all()


def find_integration_by_hotel_and_type(db: Session, hotel_id: int, channel_type: str) -> Integration | None:
    return (
        db.query(Integration)
        .filter(Integration.hotel_id == hotel_id, Integration.channel_type == _value(channel_type))
        .first()
    )


def find_active_integrations(db: Session) -> list[Integration]:
    return db.query(Integration).filter(Integration.status == IntegrationStatus.ACTIVE.value).all()


def find_integrations_by_status(db: Session, status: str) -> list[Integration]:
    return db.query(Integration).filter(Integration.status == _value(status)).all()


def find_integrations_needing_sync(
    db: Session,
    now: datetime | None = None,
    staleness_minutes: int | None = None,
) -> list[Integration]:
    """ACTIVE integrations never synced or last synced before now - staleness."""
    now = now or utcnow()
    minutes = staleness_minutes if staleness_minutes is not None else settings.sync_staleness_minutes
    threshold = now - timedelta(minutes=minutes)
    return (
        db.query(Integration)
        .filter(
            Integration.status == IntegrationStatus.ACTIVE.value,
            or_(Integration.last_sync_at.is_(None), Integration.last_sync_at < threshold),
        )
        .order_by(Integration.id)
        .all()
    )


def update_integration(db: Session, integration: Integration, **changes: Any) -> Integration:
    for key, value in changes.items():
        setattr(integration, key, _value(value))
    db.commit()
    db.refresh(integration)
    return integration


def deactivate_integration(db: Session, integration: Integration) -> Integration:
    """INACTIVE: no scheduled sync or recovery. Rows and sync logs are kept; re-run onboarding to reactivate."""
    update_integration(db, integration, status=IntegrationStatus.INACTIVE)
    logger.info(
        "Deactivated integration id=%s hotel=%s channel=%s",
        integration.id,
        integration.hotel_id,
        integration.channel_type,
    )
    return integration


# --- mappings ---


def create_mapping(db: Session, integration_id: int, **fields: Any) -> ChannelMapping:
    channel_room_type_id = str(fields["channel_room_type_id"]).strip()
    if find_mapping_by_channel_room_type_id(db, integration_id, channel_room_type_id):
        raise IntegrationConflictError(
            f"Mapping for channel room type {channel_room_type_id} already exists on integration {integration_id}"
        )
    fields["channel_room_type_id"] = channel_room_type_id
    row = ChannelMapping(integration_id=integration_id, **fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def find_mappings(db: Session, integration_id: int, active_only: bool = False) -> list[ChannelMapping]:
    q = db.query(ChannelMapping).filter(ChannelMapping.integration_id == integration_id)
    if active_only:
        q = q.filter(ChannelMapping.is_active.is_(True))
    return q.order_by(ChannelMapping.id).all()


def find_mapping_by_channel_room_type_id(
    db: Session, integration_id: int, channel_room_type_id: str
) -> ChannelMapping | None:
    return (
        db.query(ChannelMapping)
        .filter(
            ChannelMapping.integration_id == integration_id,
            ChannelMapping.channel_room_type_id == str(channel_room_type_id),
        )
        .first()
    )


def require_mapping(db: Session, integration_id: int, mapping_id: int) -> ChannelMapping:
    row = (
        db.query(ChannelMapping)
        .filter(ChannelMapping.id == mapping_id, ChannelMapping.integration_id == integration_id)
        .first()
    )
    if row is None:
        raise RecordNotFoundError(f"Mapping {mapping_id} not found on integration {integration_id}")
    return row


def update_mapping(db: Session, mapping: ChannelMapping, **changes: Any) -> ChannelMapping:
    """Correct a mapping in place, e.g. a channel room identifier the vendor renamed."""
    if "channel_room_type_id" in changes:
        channel_room_type_id = str(changes["channel_room_type_id"]).strip()
        existing = find_mapping_by_channel_room_type_id(db, mapping.integration_id, channel_room_type_id)
        if existing is not None and existing.id != mapping.id:
            raise IntegrationConflictError(
                f"Mapping for channel room type {channel_room_type_id} already exists "
                f"on integration {mapping.integration_id}"
            )
        changes["channel_room_type_id"] = channel_room_type_id
    for key, value in changes.items():
        setattr(mapping, key, _value(value))
    db.commit()
    db.refresh(mapping)
    return mapping


# --- rate plans ---


def create_rate_plan(db: Session, integration_id: int, **fields: Any) -> RatePlan:
    for key in ("rate_plan_type", "rate_modifier_type"):
        if key in fields:
            fields[key] = _value(fields[key])
    row = RatePlan(integration_id=integration_id, **fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def find_rate_plans(db: Session, integration_id: int, active_only: bool = False) -> list[RatePlan]:
    q = db.query(RatePlan).filter(RatePlan.integration_id == integration_id)
    if active_only:
        q = q.filter(RatePlan.is_active.is_(True))
    return q.order_by(RatePlan.id).all()


def require_rate_plan(db: Session, integration_id: int, rate_plan_id: int) -> RatePlan:
    row = db.query(RatePlan).filter(RatePlan.id == rate_plan_id, RatePlan.integration_id == integration_id).first()
    if row is None:
        raise RecordNotFoundError(f"Rate plan {rate_plan_id} not found on integration {integration_id}")
    return row


def update_rate_plan(db: Session, rate_plan: RatePlan, **changes: Any) -> RatePlan:
    for key, value in changes.items():
        setattr(rate_plan, key, _value(value))
    db.commit()
    db.refresh(rate_plan)
    return rate_plan


# --- availability ---


def find_availability_for_day(db: Session, integration_id: int, roomtype_id: int, day: date) -> Availability | None:
    return (
        db.query(Availability)
        .filter(
            Availability.integration_id == integration_id,
            Availability.roomtype_id == roomtype_id,
            Availability.date == day,
        )
        .first()
    )


def find_availability_by_date_range(
    db: Session,
    integration_id: int,
    start: date,
    end: date,
    roomtype_id: int | None = None,
) -> list[Availability]:
    """Rows with start <= date <= end (inclusive), ordered by room type then date."""
    q = db.query(Availability).filter(
        Availability.integration_id == integration_id,
        Availability.date >= start,
        Availability.date <= end,
    )
    if roomtype_id is not None:
        q = q.filter(Availability.roomtype_id == roomtype_id)
    return q.order_by(Availability.roomtype_id, Availability.date).all()


def upsert_availability_row(
    db: Session,
    integration_id: int,
    roomtype_id: int,
    day: date,
    **fields: Any,
) -> Availability:
    """
    Create or update the (integration, room type, date) row; counts not given keep their value.
    available_rooms and status are always re-derived. Flushes but does not commit.
    """
    row = find_availability_for_day(db, integration_id, roomtype_id, day)
    if row is None:
        row = Availability(
            integration_id=integration_id,
            roomtype_id=roomtype_id,
            date=day,
            total_rooms=0,
            occupied_rooms=0,
            blocked_rooms=0,
            maintenance_rooms=0,
        )
        db.add(row)
    for key, value in fields.items():
        if value is not None:
            setattr(row, key, _value(value))
    row.occupied_rooms = min(max(0, row.occupied_rooms or 0), max(0, row.total_rooms or 0))
    recompute(row)
    row.is_synced = False
    db.flush()
    return row


# --- sync logs ---


def create_sync_log(
    db: Session,
    integration_id: int,
    operation_type: str,
    *,
    direction: str = SyncDirection.OUTBOUND,
    request_data: Any = None,
    status: str = SyncStatus.IN_PROGRESS,
    metadata: dict[str, Any] | None = None,
) -> SyncLog:
    row = SyncLog(
        integration_id=integration_id,
        operation_type=_value(operation_type),
        direction=_value(direction),
        status=_value(status),
        request_data=request_data,
        metadata_json=metadata,
        retry_count=0,
        created_at=utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def complete_sync_log(
    db: Session,
    log: SyncLog,
    *,
    status: str,
    started_at: datetime | None = None,
    **fields: Any,
) -> SyncLog:
    """Close a sync log exactly once. Raises SyncLogClosedError if already completed."""
    if log.completed_at is not None:
        raise SyncLogClosedError(f"Sync log {log.id} already completed")
    now = utcnow()
    log.status = _value(status)
    for key, value in fields.items():
        setattr(log, key, _value(value))
    if started_at is not None:
        log.processing_time_ms = max(0, int((now - started_at).total_seconds() * 1000))
    log.completed_at = now
    db.commit()
    db.refresh(log)
    return log


def find_sync_logs(
    db: Session,
    integration_id: int,
    *,
    limit: int = 100,
    status: str | None = None,
    operation_type: str | None = None,
) -> list[SyncLog]:
    q = db.query(SyncLog).filter(SyncLog.integration_id == integration_id)
    if status:
        q = q.filter(SyncLog.status == _value(status))
    if operation_type:
        q = q.filter(SyncLog.operation_type == _value(operation_type))
    return q.order_by(SyncLog.created_at.desc(), SyncLog.id.desc()).limit(limit).all()


def latest_failed_outbound_log(db: Session, integration_id: int) -> SyncLog | None:
    return (
        db.query(SyncLog)
        .filter(
            SyncLog.integration_id == integration_id,
            SyncLog.direction == SyncDirection.OUTBOUND.value,
            SyncLog.status == SyncStatus.FAILED.value,
        )
        .order_by(SyncLog.id.desc())
        .first()
    )


def get_sync_statistics(
    db: Session,
    integration_id: int | None = None,
    days: int = 7,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Counts by status over the last `days` days plus success rate (percent, 2 decimals)."""
    since = (now or utcnow()) - timedelta(days=days)
    q = db.query(SyncLog.status, func.count(SyncLog.id)).filter(SyncLog.created_at >= since)
    if integration_id is not None:
        q = q.filter(SyncLog.integration_id == integration_id)
    counts = {status: n for status, n in q.group_by(SyncLog.status).all()}
    total = sum(counts.values())
    successful = counts.get(SyncStatus.SUCCESS.value, 0)
    return {
        "total": total,
        "successful": successful,
        "failed": counts.get(SyncStatus.FAILED.value, 0),
        "pending": counts.get(SyncStatus.PENDING.value, 0),
        "in_progress": counts.get(SyncStatus.IN_PROGRESS.value, 0),
        "partial_success": counts.get(SyncStatus.PARTIAL_SUCCESS.value, 0),
        "success_rate": round(successful / total * 100, 2) if total else 0.0,
        "days": days,
    }


# --- reservation state ---


def get_reservation_state(db: Session, integration_id: int, channel_reservation_id: str) -> ReservationState | None:
    return (
        db.query(ReservationState)
        .filter(
            ReservationState.integration_id == integration_id,
            ReservationState.channel_reservation_id == channel_reservation_id,
        )
        .first()
    )


def save_reservation_state(
    db: Session,
    integration_id: int,
    channel_reservation_id: str,
    *,
    roomtype_id: int,
    start: date,
    end: date,
    rooms: int,
    applied_deltas: dict[str, int] | None = None,
    status: str = ReservationStateStatus.ACTIVE,
) -> ReservationState:
    """Record the effect just applied for this channel reservation. Does not commit."""
    row = get_reservation_state(db, integration_id, channel_reservation_id)
    if row is None:
        row = ReservationState(integration_id=integration_id, channel_reservation_id=channel_reservation_id)
        db.add(row)
    row.roomtype_id = roomtype_id
    row.start_date = start
    row.end_date = end
    row.rooms = rooms
    row.applied_deltas = applied_deltas
    row.status = _value(status)
    return row


# --- OTA configuration ---


def get_ota_configuration(db: Session, channel_type: str) -> OtaConfiguration | None:
    return db.query(OtaConfiguration).filter(OtaConfiguration.channel_type == _value(channel_type)).first()


def list_ota_configurations(db: Session) -> list[OtaConfiguration]:
    return db.query(OtaConfiguration).order_by(OtaConfiguration.channel_type).all()
