"""Last applied availability effect per channel reservation id: lets modifications and duplicate deliveries be reconciled."""
from sqlalchemy import JSON, Column, Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import ReservationStateStatus


class ReservationState(Base):
    __tablename__ = "channel_reservation_states"

    id = Column(Integer, primary_key=True, index=True)
    integration_id = Column(Integer, nullable=False, index=True)
    channel_reservation_id = Column(String(128), nullable=False)
    roomtype_id = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    rooms = Column(Integer, nullable=False, default=1)
    # ISO date -> occupancy change actually made that night (after clamping); released as-is
    applied_deltas = Column(JSON, nullable=True)
    status = Column(String(16), nullable=False, default=ReservationStateStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("integration_id", "channel_reservation_id", name="uq_reservation_state_channel_id"),
    )
