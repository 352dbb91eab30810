"""Pricing per (integration, room type). Not date-scoped: date overrides live in the JSON fields."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.enums import RateModifierType, RatePlanType


class RatePlan(Base):
    __tablename__ = "channel_rate_plans"

    id = Column(Integer, primary_key=True, index=True)
    integration_id = Column(Integer, nullable=False, index=True)
    roomtype_id = Column(Integer, nullable=False)
    channel_rate_plan_id = Column(String(128), nullable=False)
    channel_rate_plan_name = Column(String(256), nullable=False)
    rate_plan_type = Column(String(16), nullable=False, default=RatePlanType.STANDARD.value)
    base_rate = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=True)
    min_stay = Column(Integer, nullable=True)
    max_stay = Column(Integer, nullable=True)
    closed_to_arrival = Column(Boolean, nullable=True)
    closed_to_departure = Column(Boolean, nullable=True)
    advance_booking_days = Column(Integer, nullable=True)
    cancellation_policy = Column(Text, nullable=True)
    seasonal_rates = Column(JSON, nullable=True)  # {"2025-12": 180.0}
    day_of_week_rates = Column(JSON, nullable=True)  # {"friday": 150.0}
    special_dates = Column(JSON, nullable=True)  # {"2025-12-31": 300.0}
    rate_modifier = Column(Numeric(10, 2), nullable=True)
    rate_modifier_type = Column(String(16), nullable=False, default=RateModifierType.PERCENTAGE.value)
    is_active = Column(Boolean, nullable=False, default=True)
    restrictions = Column(JSON, nullable=True)
    inclusions = Column(JSON, nullable=True)
    exclusions = Column(JSON, nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
