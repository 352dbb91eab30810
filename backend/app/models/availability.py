"""
Per-date room-count ledger for (integration, room type). Invariant:
available = max(0, total - occupied - blocked - maintenance).

`version` is the optimistic-concurrency column: an UPDATE whose version no longer
matches raises StaleDataError and the caller re-reads the row.
"""
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import AvailabilityStatus


class Availability(Base):
    __tablename__ = "channel_availability"

    id = Column(Integer, primary_key=True, index=True)
    integration_id = Column(Integer, nullable=False, index=True)
    roomtype_id = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default=AvailabilityStatus.AVAILABLE.value)
    total_rooms = Column(Integer, nullable=False, default=0)
    available_rooms = Column(Integer, nullable=False, default=0)
    occupied_rooms = Column(Integer, nullable=False, default=0)
    blocked_rooms = Column(Integer, nullable=False, default=0)
    maintenance_rooms = Column(Integer, nullable=False, default=0)
    rate = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    is_closed = Column(Boolean, nullable=False, default=False)
    close_reason = Column(String(256), nullable=True)
    restrictions = Column(JSON, nullable=True)
    channel_data = Column(JSON, nullable=True)
    is_synced = Column(Boolean, nullable=False, default=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    sync_status = Column(String(16), nullable=True)
    error_message = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("integration_id", "roomtype_id", "date", name="uq_channel_availability_day"),
    )
    __mapper_args__ = {"version_id_col": version}
