"""
Outbound dispatch: one SyncLog per attempt, PENDING -> IN_PROGRESS -> {SUCCESS, FAILED}.

Per-item failures (one mapping, one rate plan, one availability row) are counted, never raised:
a stale identifier on one room type must not block the rest of the batch. Only failures that
escape the batch (adapter resolution, unsupported operation) mark the log FAILED and re-raise.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import DEFAULT_SYNC_ERROR_CODE
from app.core.errors import UnsupportedOperationError
from app.core.timeutil import utcnow
from app.models.availability import Availability
from app.models.enums import IntegrationStatus, SyncDirection, SyncOperationType, SyncStatus
from app.models.integration import Integration
from app.models.sync_log import SyncLog
from app.services import channel_store
from app.services.channels import registry
from app.services.channels.base import ChannelAdapter
from app.services.sync.locks import integration_lock
from app.services.sync.snapshots import snapshot

logger = logging.getLogger(__name__)

MAX_ITEM_ERRORS = 20  # per-item error messages kept on the log


class SyncCounters:
    """records_processed / success / failed for one operation, plus the first few item errors."""

    __slots__ = ("processed", "success", "failed", "errors")

    def __init__(self) -> None:
        self.processed = 0
        self.success = 0
        self.failed = 0
        self.errors: list[str] = []

    def ok(self) -> None:
        self.processed += 1
        self.success += 1

    def fail(self, item: str, exc: Exception) -> None:
        self.processed += 1
        self.failed += 1
        if len(self.errors) < MAX_ITEM_ERRORS:
            self.errors.append(f"{item}: {exc}")

    def add(self, other: "SyncCounters") -> None:
        self.processed += other.processed
        self.success += other.success
        self.failed += other.failed
        self.errors.extend(other.errors[: max(0, MAX_ITEM_ERRORS - len(self.errors))])

    def to_dict(self) -> dict[str, Any]:
        return {
            "records_processed": self.processed,
            "records_success": self.success,
            "records_failed": self.failed,
            "errors": self.errors,
        }


def resolve_adapter(db: Session, channel_type: str) -> ChannelAdapter:
    """Registry lookup with the channel's OTA configuration (base URL, fallback credentials) applied."""
    config = channel_store.get_ota_configuration(db, channel_type)
    return registry.resolve(channel_type, config)


def retry_backoff(retry_count: int) -> timedelta:
    return timedelta(seconds=settings.sync_retry_backoff_seconds * (2**retry_count))


# --- per-operation batches ---


def _sync_inventory(db: Session, adapter: ChannelAdapter, integration: Integration, today: date) -> SyncCounters:
    counters = SyncCounters()
    for mapping in channel_store.find_mappings(db, integration.id):
        try:
            adapter.update_inventory(integration, mapping)
            counters.ok()
        except Exception as e:
            logger.warning(
                "Inventory push failed integration=%s mapping=%s: %s", integration.id, mapping.channel_room_type_id, e
            )
            counters.fail(f"mapping {mapping.channel_room_type_id}", e)
    return counters


def _sync_rates(db: Session, adapter: ChannelAdapter, integration: Integration, today: date) -> SyncCounters:
    counters = SyncCounters()
    for rate_plan in channel_store.find_rate_plans(db, integration.id):
        try:
            adapter.update_rates(integration, rate_plan)
            counters.ok()
        except Exception as e:
            logger.warning(
                "Rate push failed integration=%s rate_plan=%s: %s", integration.id, rate_plan.channel_rate_plan_id, e
            )
            counters.fail(f"rate plan {rate_plan.channel_rate_plan_id}", e)
    return counters


def mark_availability_synced(row: Availability, error: Exception | None = None) -> None:
    if error is None:
        row.is_synced = True
        row.last_synced_at = utcnow()
        row.sync_status = SyncStatus.SUCCESS.value
        row.error_message = None
    else:
        row.is_synced = False
        row.sync_status = SyncStatus.FAILED.value
        row.error_message = str(error)[:500]


def _sync_availability(db: Session, adapter: ChannelAdapter, integration: Integration, today: date) -> SyncCounters:
    counters = SyncCounters()
    window_end = today + timedelta(days=settings.availability_window_days)
    for mapping in channel_store.find_mappings(db, integration.id):
        rows = channel_store.find_availability_by_date_range(
            db, integration.id, today, window_end, roomtype_id=mapping.roomtype_id
        )
        for row in rows:
            try:
                adapter.update_availability(integration, row)
                mark_availability_synced(row)
                counters.ok()
            except Exception as e:
                logger.warning(
                    "Availability push failed integration=%s roomtype=%s date=%s: %s",
                    integration.id,
                    row.roomtype_id,
                    row.date,
                    e,
                )
                mark_availability_synced(row, e)
                counters.fail(f"availability {row.roomtype_id}@{row.date.isoformat()}", e)
    db.commit()
    return counters


def _sync_full(db: Session, adapter: ChannelAdapter, integration: Integration, today: date) -> SyncCounters:
    counters = SyncCounters()
    for step in (_sync_inventory, _sync_rates, _sync_availability):
        counters.add(step(db, adapter, integration, today))
    return counters


_DISPATCH: dict[str, Callable[[Session, ChannelAdapter, Integration, date], SyncCounters]] = {
    SyncOperationType.INVENTORY_UPDATE.value: _sync_inventory,
    SyncOperationType.RATE_UPDATE.value: _sync_rates,
    SyncOperationType.AVAILABILITY_UPDATE.value: _sync_availability,
    SyncOperationType.FULL_SYNC.value: _sync_full,
}


# --- failure bookkeeping ---


def record_failure(
    db: Session,
    log: SyncLog,
    exc: Exception,
    *,
    started_at: datetime,
    integration: Integration | None = None,
) -> SyncLog:
    """
    Close log as FAILED with the error's code. Retryable errors get next_retry_at
    (exponential backoff) while retry_count < max_retries. When integration is given
    its error_message and last_sync_at are updated too.
    """
    now = utcnow()
    max_retries = settings.sync_max_retries
    retry_count = log.retry_count or 0
    next_retry_at = None
    if getattr(exc, "retryable", True) and retry_count < max_retries:
        next_retry_at = now + retry_backoff(retry_count)
    channel_store.complete_sync_log(
        db,
        log,
        status=SyncStatus.FAILED,
        started_at=started_at,
        error_message=str(exc)[:2000],
        error_code=getattr(exc, "code", None) or DEFAULT_SYNC_ERROR_CODE,
        max_retries=max_retries,
        next_retry_at=next_retry_at,
    )
    if integration is not None:
        channel_store.update_integration(db, integration, error_message=str(exc)[:2000], last_sync_at=now)
    return log


def _record_success(db: Session, integration: Integration) -> None:
    now = utcnow()
    changes: dict[str, Any] = {"last_sync_at": now, "last_successful_sync": now, "error_message": None}
    if integration.status == IntegrationStatus.ERROR.value:
        changes["status"] = IntegrationStatus.ACTIVE
        logger.info("Integration %s recovered: ERROR -> ACTIVE", integration.id)
    channel_store.update_integration(db, integration, **changes)


# --- public operations ---


def trigger_sync(
    db: Session,
    integration: Integration,
    operation_type: str,
    *,
    today: date | None = None,
    retry_of: SyncLog | None = None,
) -> SyncLog:
    """
    Run one outbound sync operation for integration and return its closed SyncLog.
    Status is SUCCESS even when some items failed (see records_failed). Raises on
    whole-operation failure after recording it.
    """
    op = getattr(operation_type, "value", operation_type)
    today = today or utcnow().date()
    with integration_lock(integration.id):
        started = utcnow()
        log = channel_store.create_sync_log(
            db,
            integration.id,
            op,
            direction=SyncDirection.OUTBOUND,
            request_data={"operation_type": op, "window_start": today.isoformat()},
            metadata={"retry_of": retry_of.id} if retry_of is not None else None,
        )
        if retry_of is not None:
            log.retry_count = (retry_of.retry_count or 0) + 1
            db.commit()
        try:
            handler = _DISPATCH.get(op)
            if handler is None:
                raise UnsupportedOperationError(f"Unsupported sync operation: {op}")
            adapter = resolve_adapter(db, integration.channel_type)
            counters = handler(db, adapter, integration, today)
        except Exception as e:
            db.rollback()
            logger.error("Sync %s failed for integration %s: %s", op, integration.id, e)
            record_failure(db, log, e, started_at=started, integration=integration)
            raise
        channel_store.complete_sync_log(
            db,
            log,
            status=SyncStatus.SUCCESS,
            started_at=started,
            response_data=snapshot(counters.to_dict()),
            records_processed=counters.processed,
            records_success=counters.success,
            records_failed=counters.failed,
        )
        _record_success(db, integration)
    logger.info(
        "Sync %s integration=%s processed=%s success=%s failed=%s",
        op,
        integration.id,
        counters.processed,
        counters.success,
        counters.failed,
    )
    return log


_RESERVATION_ACTIONS = (
    SyncOperationType.BOOKING_CREATE.value,
    SyncOperationType.BOOKING_UPDATE.value,
    SyncOperationType.BOOKING_CANCEL.value,
)


def push_reservation(
    db: Session,
    integration: Integration,
    action: str,
    *,
    reservation: dict[str, Any] | None = None,
    reservation_id: str | None = None,
) -> SyncLog:
    """Create, update or cancel a reservation on the channel; logged like any outbound sync."""
    op = getattr(action, "value", action)
    if op not in _RESERVATION_ACTIONS:
        raise UnsupportedOperationError(f"Unsupported reservation action: {op}")
    with integration_lock(integration.id):
        started = utcnow()
        log = channel_store.create_sync_log(
            db,
            integration.id,
            op,
            direction=SyncDirection.OUTBOUND,
            request_data=snapshot({"reservation_id": reservation_id, "reservation": reservation}),
        )
        try:
            adapter = resolve_adapter(db, integration.channel_type)
            if op == SyncOperationType.BOOKING_CREATE.value:
                response = adapter.create_reservation(integration, reservation or {})
            elif op == SyncOperationType.BOOKING_UPDATE.value:
                response = adapter.update_reservation(integration, str(reservation_id), reservation or {})
            else:
                response = adapter.cancel_reservation(integration, str(reservation_id))
        except Exception as e:
            db.rollback()
            logger.error("Reservation %s failed for integration %s: %s", op, integration.id, e)
            record_failure(db, log, e, started_at=started)
            raise
        return channel_store.complete_sync_log(
            db,
            log,
            status=SyncStatus.SUCCESS,
            started_at=started,
            response_data=snapshot(response),
            records_processed=1,
            records_success=1,
            records_failed=0,
        )


def push_availability_row(
    db: Session,
    adapter: ChannelAdapter,
    integration: Integration,
    row: Availability,
) -> bool:
    """Best-effort push of one row; local state stays authoritative. Returns True on success."""
    try:
        adapter.update_availability(integration, row)
        mark_availability_synced(row)
        ok = True
    except Exception as e:
        logger.warning(
            "Real-time availability push failed integration=%s roomtype=%s date=%s: %s",
            integration.id,
            row.roomtype_id,
            row.date,
            e,
        )
        mark_availability_synced(row, e)
        ok = False
    db.commit()
    return ok


def upsert_availability(
    db: Session,
    integration: Integration,
    roomtype_id: int,
    day: date,
    **fields: Any,
) -> Availability:
    """Manual availability write. Pushed to the channel right away when real-time sync is on."""
    with integration_lock(integration.id):
        row = channel_store.upsert_availability_row(db, integration.id, roomtype_id, day, **fields)
        db.commit()
        db.refresh(row)
        if integration.is_real_time_sync:
            try:
                adapter = resolve_adapter(db, integration.channel_type)
            except Exception as e:
                logger.warning("No adapter for real-time push on integration %s: %s", integration.id, e)
            else:
                push_availability_row(db, adapter, integration, row)
                db.refresh(row)
    return row
