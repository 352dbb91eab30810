"""
Scheduled channel sync. Each tick selects ACTIVE integrations that are stale (never synced or
last synced before the staleness threshold) and runs FULL_SYNC for each in a bounded worker pool,
one session per integration. A failing integration goes to ERROR; the others still sync.

Recovery: ERROR integrations whose last failed outbound sync is due for retry are re-synced;
success brings them back to ACTIVE.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from app.config import settings
from app.core.timeutil import as_utc, utcnow
from app.db.session import SessionLocal
from app.models.enums import IntegrationStatus, SyncOperationType
from app.models.sync_log import SyncLog
from app.services import channel_store
from app.services.sync.engine import trigger_sync

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _sync_one(session_factory: SessionFactory, integration_id: int) -> bool:
    """FULL_SYNC one integration in its own session. On failure the integration goes to ERROR."""
    db = session_factory()
    try:
        integration = channel_store.get_integration(db, integration_id)
        if integration is None:
            return False
        try:
            trigger_sync(db, integration, SyncOperationType.FULL_SYNC)
            return True
        except Exception as e:
            db.rollback()
            logger.exception("Scheduled sync failed for integration %s: %s", integration_id, e)
            channel_store.update_integration(
                db, integration, status=IntegrationStatus.ERROR, error_message=str(e)[:2000]
            )
            return False
    finally:
        db.close()


def run_scheduled_sync(
    session_factory: SessionFactory = SessionLocal,
    max_workers: int | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """One tick. Waits for every selected integration before returning counts."""
    db = session_factory()
    try:
        ids = [i.id for i in channel_store.find_integrations_needing_sync(db, now=now)]
    finally:
        db.close()
    if not ids:
        logger.debug("Channel sync tick: nothing stale")
        return {"selected": 0, "succeeded": 0, "failed": 0}

    workers = max(1, min(max_workers or settings.sync_max_workers, len(ids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="channel_sync") as pool:
        results = list(pool.map(lambda integration_id: _sync_one(session_factory, integration_id), ids))

    succeeded = sum(1 for ok in results if ok)
    logger.info(
        "Channel sync tick: %s integrations, %s succeeded, %s failed", len(ids), succeeded, len(ids) - succeeded
    )
    return {"selected": len(ids), "succeeded": succeeded, "failed": len(ids) - succeeded}


def find_due_recoveries(db: Session, now: datetime) -> list[tuple[int, int]]:
    """(integration_id, failed_log_id) for ERROR integrations whose retry is due."""
    due = []
    for integration in channel_store.find_integrations_by_status(db, IntegrationStatus.ERROR):
        log = channel_store.latest_failed_outbound_log(db, integration.id)
        if log is None or log.next_retry_at is None:
            continue
        max_retries = log.max_retries if log.max_retries is not None else settings.sync_max_retries
        if (log.retry_count or 0) >= max_retries:
            continue
        if as_utc(log.next_retry_at) <= now:
            due.append((integration.id, log.id))
    return due


def _retry_one(session_factory: SessionFactory, integration_id: int, log_id: int) -> bool:
    db = session_factory()
    try:
        integration = channel_store.get_integration(db, integration_id)
        failed_log = db.get(SyncLog, log_id)
        try:
            trigger_sync(db, integration, SyncOperationType.FULL_SYNC, retry_of=failed_log)
            return True
        except Exception as e:
            logger.warning("Recovery sync failed for integration %s: %s", integration_id, e)
            return False
    finally:
        db.close()


def run_sync_recovery(session_factory: SessionFactory = SessionLocal, now: datetime | None = None) -> dict[str, int]:
    now = as_utc(now) or utcnow()
    db = session_factory()
    try:
        due = find_due_recoveries(db, now)
    finally:
        db.close()
    recovered = 0
    for integration_id, log_id in due:
        if _retry_one(session_factory, integration_id, log_id):
            recovered += 1
    if due:
        logger.info("Sync recovery: %s due, %s recovered", len(due), recovered)
    return {"due": len(due), "recovered": recovered}
