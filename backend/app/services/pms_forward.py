"""
PMS forwarding: canonical guest records from inbound reservations are queued as PmsForwardTask
rows and drained by the pms_forward job. Failures back off exponentially; after max attempts the
task is DEAD and stays for inspection.
"""
import logging
from datetime import datetime, timedelta
from typing import Any

import httpx
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import TransportError
from app.core.timeutil import as_utc, utcnow
from app.models.enums import ForwardStatus
from app.models.integration import Integration
from app.models.pms_forward_task import PmsForwardTask

logger = logging.getLogger(__name__)


class PmsReservationClient:
    """POSTs one guest record to PMS_RESERVATION_CREATE_URL; X-API-Key when configured."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = (url if url is not None else settings.pms_reservation_create_url).strip()
        self._api_key = (api_key if api_key is not None else settings.pms_api_key).strip()
        self._timeout = timeout if timeout is not None else settings.channel_http_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self._url)

    def build_url(self, hotel_id: int) -> str:
        """'{hotelId}' placeholder is substituted; otherwise hotelId is added as a query param."""
        if "{hotelId}" in self._url:
            return self._url.replace("{hotelId}", str(hotel_id))
        return str(httpx.URL(self._url).copy_merge_params({"hotelId": str(hotel_id)}))

    def headers(self) -> dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self._api_key:
            h["X-API-Key"] = self._api_key
        return h

    def send(self, hotel_id: int, payload: dict[str, Any]) -> int:
        """Returns the PMS status code. Raises TransportError on non-2xx or network failure."""
        if not self.is_configured():
            raise TransportError("PMS_RESERVATION_CREATE_URL not configured")
        url = self.build_url(hotel_id)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.post(url, json=payload, headers=self.headers())
        except httpx.HTTPError as e:
            raise TransportError(f"PMS request failed: {e}") from e
        if not r.is_success:
            raise TransportError(
                f"PMS API error: {r.status_code}",
                status_code=r.status_code,
                detail=(r.text[:500] if r.text else None),
            )
        return r.status_code


def forward_backoff(attempts: int) -> timedelta:
    return timedelta(seconds=settings.pms_forward_backoff_seconds * (2 ** max(0, attempts - 1)))


def enqueue_guest_forward(
    db: Session,
    integration: Integration,
    guest: dict[str, Any],
    *,
    sync_log_id: int | None = None,
) -> PmsForwardTask:
    task = PmsForwardTask(
        hotel_id=integration.hotel_id,
        integration_id=integration.id,
        sync_log_id=sync_log_id,
        payload=guest,
        status=ForwardStatus.PENDING.value,
        attempts=0,
        max_attempts=settings.pms_forward_max_attempts,
        next_attempt_at=utcnow(),
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Queued PMS forward task=%s hotel=%s integration=%s", task.id, task.hotel_id, integration.id)
    return task


def find_due_forwards(db: Session, now: datetime, limit: int) -> list[PmsForwardTask]:
    return (
        db.query(PmsForwardTask)
        .filter(
            PmsForwardTask.status == ForwardStatus.PENDING.value,
            PmsForwardTask.next_attempt_at <= now,
        )
        .order_by(PmsForwardTask.next_attempt_at, PmsForwardTask.id)
        .limit(limit)
        .all()
    )


def attempt_forward(db: Session, client: PmsReservationClient, task: PmsForwardTask, now: datetime) -> str:
    """One delivery attempt. Returns the task's new status."""
    task.attempts = (task.attempts or 0) + 1
    try:
        task.last_status_code = client.send(task.hotel_id, task.payload)
    except TransportError as e:
        task.last_error = str(e)[:2000]
        task.last_status_code = e.status_code
        if task.attempts >= task.max_attempts:
            task.status = ForwardStatus.DEAD.value
            task.next_attempt_at = None
            logger.error("PMS forward task=%s dead after %s attempts: %s", task.id, task.attempts, e)
        else:
            task.next_attempt_at = now + forward_backoff(task.attempts)
            logger.warning(
                "PMS forward task=%s attempt %s failed, retry at %s: %s",
                task.id,
                task.attempts,
                task.next_attempt_at.isoformat(),
                e,
            )
    else:
        task.status = ForwardStatus.SENT.value
        task.sent_at = now
        task.last_error = None
        task.next_attempt_at = None
    db.commit()
    return task.status


def run_pending_forwards(
    db: Session,
    client: PmsReservationClient | None = None,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> dict[str, int]:
    """Drain due tasks. Returns counts of sent / retrying / dead."""
    client = client or PmsReservationClient()
    counts = {"sent": 0, "retrying": 0, "dead": 0}
    if not client.is_configured():
        logger.debug("PMS forwarding URL not configured; queue left as is")
        return counts
    now = as_utc(now) or utcnow()
    for task in find_due_forwards(db, now, batch_size or settings.pms_forward_batch_size):
        status = attempt_forward(db, client, task, now)
        if status == ForwardStatus.SENT.value:
            counts["sent"] += 1
        elif status == ForwardStatus.DEAD.value:
            counts["dead"] += 1
        else:
            counts["retrying"] += 1
    return counts
