"""OTA configuration: per channel type credentials and base URL, read by the engine at dispatch time."""
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.errors import IntegrationNotFoundError
from app.core.timeutil import utcnow
from app.models.integration import Integration
from app.models.ota_configuration import OtaConfiguration
from app.services import channel_store
from app.services.channels import registry

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "api_key",
    "api_secret",
    "access_token",
    "refresh_token",
    "base_url",
    "is_active",
    "additional_config",
)


def upsert_configuration(db: Session, channel_type: str, **fields: Any) -> OtaConfiguration:
    """Create or update the row for channel_type. Unknown channel types are rejected by the registry."""
    key = getattr(channel_type, "value", channel_type)
    registry.resolve(key)
    row = channel_store.get_ota_configuration(db, key)
    if row is None:
        row = OtaConfiguration(channel_type=key, is_active=True)
        db.add(row)
    for name in _EDITABLE_FIELDS:
        if name in fields and fields[name] is not None:
            setattr(row, name, fields[name])
    db.commit()
    db.refresh(row)
    logger.info("Saved OTA configuration for %s", key)
    return row


def require_configuration(db: Session, channel_type: str) -> OtaConfiguration:
    row = channel_store.get_ota_configuration(db, channel_type)
    if row is None:
        raise IntegrationNotFoundError(f"No OTA configuration for {getattr(channel_type, 'value', channel_type)}")
    return row


def probe_configuration(db: Session, channel_type: str) -> OtaConfiguration:
    """
    Probe the channel with the configured credentials and record last_tested / test_status.
    Runs against a throwaway integration in test mode, so only credential presence is checked.
    """
    row = require_configuration(db, channel_type)
    adapter = registry.resolve(row.channel_type, row)
    probe = Integration(
        hotel_id=0,
        channel_type=row.channel_type,
        channel_name=registry.display_name(row.channel_type),
        channel_property_id="TEST",
        test_mode=True,
        credentials={},
    )
    result = adapter.test_connection(probe)
    row.last_tested = utcnow()
    row.test_status = "SUCCESS" if result.success else "FAILED"
    row.error_message = result.error
    db.commit()
    db.refresh(row)
    return row


def is_channel_available(db: Session, channel_type: str) -> bool:
    row = channel_store.get_ota_configuration(db, channel_type)
    return bool(row and row.is_active and row.credentials())


def configuration_to_dict(row: OtaConfiguration) -> dict[str, Any]:
    """Secrets are reported as present/absent only."""
    return {
        "channel_type": row.channel_type,
        "display_name": registry.display_name(row.channel_type),
        "base_url": row.base_url,
        "is_active": row.is_active,
        "has_api_key": bool(row.api_key),
        "has_api_secret": bool(row.api_secret),
        "has_access_token": bool(row.access_token),
        "additional_config": row.additional_config or {},
        "last_tested": row.last_tested.isoformat() if row.last_tested else None,
        "test_status": row.test_status,
        "error_message": row.error_message,
    }
