"""Queued canonical guest record for the PMS. Drained by the pms_forward job with retry/backoff; DEAD after max attempts."""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import ForwardStatus


class PmsForwardTask(Base):
    __tablename__ = "pms_forward_tasks"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, nullable=False)
    integration_id = Column(Integer, nullable=False, index=True)
    sync_log_id = Column(Integer, nullable=True)
    payload = Column(JSON, nullable=False)
    status = Column(String(16), nullable=False, default=ForwardStatus.PENDING.value, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=5)
    next_attempt_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_error = Column(Text, nullable=True)
    last_status_code = Column(Integer, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
