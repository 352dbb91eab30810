"""Drain the PMS forward queue. Runs every PMS_FORWARD_INTERVAL_SECONDS when forwarding is enabled."""
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.pms_forward import PmsReservationClient, run_pending_forwards

logger = logging.getLogger(__name__)


def run_pms_forward_job(
    session_factory: Callable[[], Session] = SessionLocal,
    client: PmsReservationClient | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    db = session_factory()
    try:
        counts = run_pending_forwards(db, client=client, now=now)
    except Exception as e:
        db.rollback()
        logger.exception("PMS forward tick failed (queue kept): %s", e)
        return {"sent": 0, "retrying": 0, "dead": 0}
    finally:
        db.close()
    if any(counts.values()):
        logger.info("PMS forward: sent=%s retrying=%s dead=%s", counts["sent"], counts["retrying"], counts["dead"])
    return counts
