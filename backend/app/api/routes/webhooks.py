"""
Webhook ingress: POST /webhooks/{channel_type}.

The payload must carry the hotel id (hotel_id, hotelId or data.hotel_id); (hotel, channel type)
picks the integration. Everything after that is handled by the inbound engine.
"""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.api.common import handle_channel_error
from app.core.errors import IntegrationNotFoundError, PayloadValidationError
from app.db.session import get_db
from app.services import channel_store
from app.services.channels import registry
from app.services.channels.types import first_present
from app.services.sync.inbound import handle_webhook

router = APIRouter()
logger = logging.getLogger(__name__)

HOTEL_ID_KEYS = ("hotel_id", "hotelId")


def extract_hotel_id(payload: dict[str, Any]) -> int:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    raw = first_present(payload, HOTEL_ID_KEYS)
    if raw is None:
        raw = first_present(data, HOTEL_ID_KEYS)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise PayloadValidationError("Webhook payload must include hotel_id") from None


@router.post("/webhooks/{channel_type}")
def receive_webhook(
    channel_type: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Accept one vendor delivery. Unknown channel type -> 400, no hotel id -> 422,
    no integration for (hotel, channel type) -> 404. Unresolvable room types still return 200.
    """
    key = channel_type.strip().upper()
    try:
        registry.resolve(key)
        hotel_id = extract_hotel_id(payload)
        integration = channel_store.find_integration_by_hotel_and_type(db, hotel_id, key)
        if integration is None:
            raise IntegrationNotFoundError(f"No {key} integration for hotel {hotel_id}")
        result = handle_webhook(db, integration, payload)
    except Exception as e:
        handle_channel_error(e, f"Webhook {key} failed", logger)
    return {"ok": True, **result}
