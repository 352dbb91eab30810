"""
Integration creation and onboarding.

Creation = conflict check + connection test + insert (PENDING). Onboarding is a separate stage
(run_onboarding) that seeds mappings, rate plans and an availability window, then flips the
integration to ACTIVE. It can fail (ERROR) and be re-run without touching the integration record.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import ConnectionTestError, IntegrationConflictError, IntegrationNotActiveError
from app.core.timeutil import utcnow
from app.models.enums import ChannelType, IntegrationStatus
from app.models.integration import Integration
from app.models.sync_log import SyncLog
from app.services import channel_store
from app.services.channels import registry
from app.services.channels.types import ConnectionResult
from app.services.sync.engine import resolve_adapter, trigger_sync

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_property_id(hotel_id: int, channel_type: str, now: datetime | None = None) -> str:
    """H{hotel}{first letter of channel}{epoch ms base36}, upper-cased. e.g. H12BLX3K9Q1Z."""
    millis = int((now or utcnow()).timestamp() * 1000)
    prefix = str(getattr(channel_type, "value", channel_type)).replace("_", "")[:1]
    return f"H{hotel_id}{prefix}{_base36(millis)}".upper()


def check_channel_connection(db: Session, candidate: Integration) -> ConnectionResult:
    """Connection test for a not-yet-saved integration; OTA configuration credentials fill gaps."""
    try:
        adapter = resolve_adapter(db, candidate.channel_type)
    except Exception as e:
        return ConnectionResult(False, str(e))
    return adapter.test_connection(candidate)


def create_integration(db: Session, *, user_id: int | None = None, **fields: Any) -> Integration:
    """
    Create and onboard an integration. Raises IntegrationConflictError for a duplicate
    (hotel, channel type), ConnectionTestError when the channel rejects the credentials.
    Onboarding failure leaves the integration in ERROR and re-raises.
    """
    channel_type = getattr(fields["channel_type"], "value", fields["channel_type"])
    fields["channel_type"] = channel_type
    if channel_store.find_integration_by_hotel_and_type(db, fields["hotel_id"], channel_type):
        raise IntegrationConflictError(f"Hotel already has a {channel_type} integration")
    if not fields.get("channel_property_id"):
        fields["channel_property_id"] = generate_property_id(fields["hotel_id"], channel_type)
    fields.setdefault("channel_name", registry.display_name(channel_type))
    fields.setdefault("supported_features", registry.features_of(channel_type))

    # Transient row: never added to the session
    candidate = Integration(**fields)
    result = check_channel_connection(db, candidate)
    if not result.success:
        raise ConnectionTestError(f"Integration test failed: {result.error}")

    integration = channel_store.create_integration(
        db, created_by=user_id, status=IntegrationStatus.PENDING, **fields
    )
    run_onboarding(db, integration)
    return integration


def default_onboarding_plan(integration: Integration, today: date | None = None) -> dict[str, Any]:
    """Placeholder room type, rate plan and availability used until real PMS inventory is wired in."""
    pid = integration.channel_property_id
    return {
        "mappings": [
            {
                "roomtype_id": 1,
                "channel_room_type_id": f"{pid}_ROOM1",
                "channel_room_type_name": "Standard Room",
                "channel_amenities": ["WiFi", "AC", "TV"],
                "channel_description": "Comfortable standard room",
                "is_active": True,
            }
        ],
        "rate_plans": [
            {
                "roomtype_id": 1,
                "channel_rate_plan_id": f"{pid}_RATE1",
                "channel_rate_plan_name": "Standard Rate",
                "base_rate": 100.0,
                "currency": "USD",
                "is_active": True,
            }
        ],
        "availability": {
            "start": today or utcnow().date(),
            "days": settings.availability_window_days,
            "rooms": [{"roomtype_id": 1, "total_rooms": 10, "rate": 100.0, "currency": "USD"}],
        },
    }


def run_onboarding(db: Session, integration: Integration, plan: dict[str, Any] | None = None) -> Integration:
    """
    Seed mappings, rate plans and availability, then mark ACTIVE. Existing mappings are kept,
    so re-running after a failure is safe. On failure: ERROR with the message, then re-raise.
    """
    plan = plan or default_onboarding_plan(integration)
    logger.info("Onboarding integration %s (%s)", integration.id, integration.channel_type)
    try:
        for mapping in plan.get("mappings") or []:
            existing = channel_store.find_mapping_by_channel_room_type_id(
                db, integration.id, mapping["channel_room_type_id"]
            )
            if existing is None:
                channel_store.create_mapping(db, integration.id, **mapping)
        existing_plans = {rp.channel_rate_plan_id for rp in channel_store.find_rate_plans(db, integration.id)}
        for rate_plan in plan.get("rate_plans") or []:
            if rate_plan["channel_rate_plan_id"] not in existing_plans:
                channel_store.create_rate_plan(db, integration.id, **rate_plan)
        window = plan.get("availability")
        if window:
            start = window["start"]
            for offset in range(window["days"] + 1):
                day = start + timedelta(days=offset)
                for room in window["rooms"]:
                    fields = {k: v for k, v in room.items() if k != "roomtype_id"}
                    if channel_store.find_availability_for_day(db, integration.id, room["roomtype_id"], day):
                        continue
                    channel_store.upsert_availability_row(db, integration.id, room["roomtype_id"], day, **fields)
            db.commit()
        channel_store.update_integration(db, integration, status=IntegrationStatus.ACTIVE, error_message=None)
    except Exception as e:
        db.rollback()
        logger.error("Onboarding failed for integration %s: %s", integration.id, e)
        channel_store.update_integration(
            db, integration, status=IntegrationStatus.ERROR, error_message=f"Onboarding failed: {e}"
        )
        raise
    logger.info("Onboarding complete for integration %s", integration.id)
    return integration


def get_available_integration_types(db: Session, hotel_id: int) -> list[str]:
    """Channel types the hotel has no integration for yet."""
    existing = {i.channel_type for i in channel_store.find_integrations_by_hotel(db, hotel_id)}
    return [t.value for t in ChannelType if t.value not in existing]


def trigger_manual_sync(db: Session, integration: Integration, operation_type: str) -> SyncLog:
    """Manual sync requires an ACTIVE integration."""
    if integration.status != IntegrationStatus.ACTIVE.value:
        raise IntegrationNotActiveError(
            f"Integration {integration.id} is {integration.status}; only ACTIVE integrations can be synced"
        )
    return trigger_sync(db, integration, getattr(operation_type, "value", operation_type))


def check_integration_connection(db: Session, integration: Integration) -> ConnectionResult:
    """Ad hoc diagnostics for a saved integration. Never raises."""
    return check_channel_connection(db, integration)
