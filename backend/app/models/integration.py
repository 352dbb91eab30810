"""One connection from a hotel to one channel type. At most one per (hotel_id, channel_type)."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import IntegrationStatus


class Integration(Base):
    __tablename__ = "channel_integrations"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, nullable=False, index=True)
    channel_type = Column(String(32), nullable=False, index=True)
    channel_name = Column(String(128), nullable=False)
    status = Column(String(16), nullable=False, default=IntegrationStatus.PENDING.value, index=True)
    credentials = Column(JSON, nullable=True)  # opaque bundle: api_key, api_secret, access_token, ...
    channel_property_id = Column(String(128), nullable=True)
    is_webhook_enabled = Column(Boolean, nullable=False, default=False)
    sync_interval_minutes = Column(Integer, nullable=False, default=15)
    is_real_time_sync = Column(Boolean, nullable=False, default=False)
    test_mode = Column(Boolean, nullable=False, default=False)
    channel_settings = Column(JSON, nullable=True)
    supported_features = Column(JSON, nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_successful_sync = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("hotel_id", "channel_type", name="uq_channel_integration_hotel_type"),)

    def credential(self, key: str) -> str:
        return str((self.credentials or {}).get(key) or "").strip()
