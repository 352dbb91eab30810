"""Channel type discovery and OTA configuration (per channel type credentials and base URL)."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.common import handle_channel_error
from app.db.session import get_db
from app.models.enums import ChannelType
from app.services import channel_store, ota_config_service
from app.services.channels import registry

router = APIRouter()
logger = logging.getLogger(__name__)


class OtaConfigurationBody(BaseModel):
    api_key: str | None = None
    api_secret: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    base_url: str | None = Field(default=None, max_length=512)
    is_active: bool | None = None
    additional_config: dict[str, Any] | None = None


@router.get("/channels/types")
def list_channel_types(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Every registered channel type with its display name, features and configuration state."""
    return {
        "channel_types": [
            {
                "channel_type": key,
                "display_name": registry.display_name(key),
                "features": registry.features_of(key),
                "configured": ota_config_service.is_channel_available(db, key),
            }
            for key in registry.list_supported()
        ]
    }


@router.get("/channels/configurations")
def list_configurations(db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = channel_store.list_ota_configurations(db)
    return {"configurations": [ota_config_service.configuration_to_dict(r) for r in rows]}


@router.put("/channels/configurations/{channel_type}")
def upsert_configuration(
    channel_type: ChannelType,
    body: OtaConfigurationBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    try:
        row = ota_config_service.upsert_configuration(db, channel_type.value, **body.model_dump(exclude_none=True))
    except Exception as e:
        handle_channel_error(e, f"Saving OTA configuration for {channel_type.value} failed", logger)
    return {"configuration": ota_config_service.configuration_to_dict(row)}


@router.post("/channels/configurations/{channel_type}/test")
def probe_configuration(channel_type: ChannelType, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        row = ota_config_service.probe_configuration(db, channel_type.value)
    except Exception as e:
        handle_channel_error(e, f"Probing OTA configuration for {channel_type.value} failed", logger)
    return {"configuration": ota_config_service.configuration_to_dict(row)}
