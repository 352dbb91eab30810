"""Manual sync, sync log history and sync statistics."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.common import handle_channel_error, sync_log_to_dict
from app.core.constants import SYNC_LOGS_DEFAULT_LIMIT, SYNC_LOGS_MAX_LIMIT, SYNC_STATS_DEFAULT_DAYS
from app.db.session import get_db
from app.models.enums import SyncOperationType, SyncStatus
from app.services import channel_store, onboarding

router = APIRouter()
logger = logging.getLogger(__name__)


class TriggerSyncBody(BaseModel):
    operation_type: SyncOperationType = SyncOperationType.FULL_SYNC


@router.post("/sync/{integration_id}")
def trigger_sync(
    integration_id: int,
    body: TriggerSyncBody | None = None,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Run one outbound sync now. Only ACTIVE integrations can be synced (400 otherwise).
    A channel failure is recorded as a FAILED sync log and returned as 502.
    """
    operation_type = (body or TriggerSyncBody()).operation_type
    try:
        integration = channel_store.require_integration(db, integration_id)
        log = onboarding.trigger_manual_sync(db, integration, operation_type)
    except Exception as e:
        handle_channel_error(e, f"Manual {operation_type.value} failed for integration {integration_id}", logger)
    return {"sync_log": sync_log_to_dict(log, include_payloads=True)}


@router.get("/sync/{integration_id}/logs")
def list_sync_logs(
    integration_id: int,
    limit: int = Query(SYNC_LOGS_DEFAULT_LIMIT, ge=1, le=SYNC_LOGS_MAX_LIMIT),
    status: SyncStatus | None = Query(None),
    operation_type: SyncOperationType | None = Query(None),
    include_payloads: bool = Query(False),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Newest first."""
    try:
        channel_store.require_integration(db, integration_id)
    except Exception as e:
        handle_channel_error(e, f"Sync logs for integration {integration_id}", logger)
    rows = channel_store.find_sync_logs(
        db, integration_id, limit=limit, status=status, operation_type=operation_type
    )
    return {"logs": [sync_log_to_dict(r, include_payloads=include_payloads) for r in rows], "count": len(rows)}


@router.get("/sync/statistics")
def sync_statistics(
    integration_id: int | None = Query(None, ge=1),
    days: int = Query(SYNC_STATS_DEFAULT_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Counts by status and success rate over the last `days` days; all integrations when no id is given."""
    return channel_store.get_sync_statistics(db, integration_id=integration_id, days=days)
