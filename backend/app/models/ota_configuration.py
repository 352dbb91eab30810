"""Per-channel-type credentials and base URL, read at dispatch time. One row per channel type."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class OtaConfiguration(Base):
    __tablename__ = "ota_configurations"

    id = Column(Integer, primary_key=True, index=True)
    channel_type = Column(String(32), nullable=False, unique=True)
    api_key = Column(String(256), nullable=True)
    api_secret = Column(String(256), nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    base_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    additional_config = Column(JSON, nullable=True)
    last_tested = Column(DateTime(timezone=True), nullable=True)
    test_status = Column(String(16), nullable=True)  # SUCCESS | FAILED | PENDING
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def credentials(self) -> dict[str, str]:
        """Non-empty credential fields, keyed like Integration.credentials."""
        raw = {
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }
        return {k: v.strip() for k, v in raw.items() if v and v.strip()}
