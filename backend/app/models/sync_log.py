"""Append-only record of one sync attempt. Immutable once completed_at is set; never deleted."""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import SyncDirection, SyncStatus


class SyncLog(Base):
    __tablename__ = "channel_sync_logs"

    id = Column(Integer, primary_key=True, index=True)
    integration_id = Column(Integer, nullable=False, index=True)
    operation_type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, default=SyncStatus.PENDING.value, index=True)
    direction = Column(String(16), nullable=False, default=SyncDirection.OUTBOUND.value)
    request_data = Column(JSON, nullable=True)
    response_data = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    error_code = Column(String(64), nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=True)
    next_retry_at = Column(DateTime(timezone=True), nullable=True)
    processing_time_ms = Column(Integer, nullable=True)
    records_processed = Column(Integer, nullable=True)
    records_success = Column(Integer, nullable=True)
    records_failed = Column(Integer, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    created_by = Column(Integer, nullable=True)
