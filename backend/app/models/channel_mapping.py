"""Internal room type <-> channel room/rate id for one integration. Used both outbound and to resolve webhooks."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base


class ChannelMapping(Base):
    __tablename__ = "channel_mappings"

    id = Column(Integer, primary_key=True, index=True)
    integration_id = Column(Integer, nullable=False, index=True)
    roomtype_id = Column(Integer, nullable=False)
    channel_room_type_id = Column(String(128), nullable=False)
    channel_room_type_name = Column(String(256), nullable=False)
    channel_rate_plan_id = Column(String(128), nullable=True)
    channel_rate_plan_name = Column(String(256), nullable=True)
    channel_amenities = Column(JSON, nullable=True)
    channel_description = Column(Text, nullable=True)
    channel_images = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    mapping_rules = Column(JSON, nullable=True)
    custom_fields = Column(JSON, nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("integration_id", "channel_room_type_id", name="uq_channel_mapping_integration_room"),
    )
