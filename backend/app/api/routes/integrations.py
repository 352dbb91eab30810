"""
Integration management API: create (with onboarding), list, update, deactivate, connection test,
room type mappings and rate plans (create and correct), availability and outbound reservation pushes.
"""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.common import (
    availability_to_dict,
    handle_channel_error,
    integration_to_dict,
    mapping_to_dict,
    rate_plan_to_dict,
    sync_log_to_dict,
)
from app.core.errors import ChannelSyncError, PayloadValidationError
from app.db.session import get_db
from app.models.enums import ChannelType, RatePlanType, SyncOperationType
from app.services import channel_store, onboarding
from app.services.sync.engine import push_reservation, upsert_availability

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateIntegrationBody(BaseModel):
    hotel_id: int = Field(..., ge=1)
    channel_type: ChannelType
    channel_name: str | None = Field(default=None, max_length=128)
    credentials: dict[str, Any] = Field(default_factory=dict)
    channel_property_id: str | None = Field(default=None, max_length=128)
    is_webhook_enabled: bool = False
    sync_interval_minutes: int = Field(default=15, ge=1)
    is_real_time_sync: bool = False
    test_mode: bool = False
    channel_settings: dict[str, Any] | None = None


class UpdateIntegrationBody(BaseModel):
    channel_name: str | None = Field(default=None, max_length=128)
    credentials: dict[str, Any] | None = None
    channel_property_id: str | None = Field(default=None, max_length=128)
    is_webhook_enabled: bool | None = None
    sync_interval_minutes: int | None = Field(default=None, ge=1)
    is_real_time_sync: bool | None = None
    test_mode: bool | None = None
    channel_settings: dict[str, Any] | None = None


class CreateMappingBody(BaseModel):
    roomtype_id: int = Field(..., ge=1)
    channel_room_type_id: str = Field(..., min_length=1, max_length=128)
    channel_room_type_name: str = Field(..., min_length=1, max_length=256)
    channel_rate_plan_id: str | None = None
    channel_rate_plan_name: str | None = None
    channel_amenities: list[str] | None = None
    channel_description: str | None = None
    is_active: bool = True
    mapping_rules: dict[str, Any] | None = None


class UpdateMappingBody(BaseModel):
    roomtype_id: int | None = Field(default=None, ge=1)
    channel_room_type_id: str | None = Field(default=None, min_length=1, max_length=128)
    channel_room_type_name: str | None = Field(default=None, min_length=1, max_length=256)
    channel_rate_plan_id: str | None = None
    channel_rate_plan_name: str | None = None
    channel_amenities: list[str] | None = None
    channel_description: str | None = None
    is_active: bool | None = None
    mapping_rules: dict[str, Any] | None = None


class CreateRatePlanBody(BaseModel):
    roomtype_id: int = Field(..., ge=1)
    channel_rate_plan_id: str = Field(..., min_length=1, max_length=128)
    channel_rate_plan_name: str = Field(..., min_length=1, max_length=256)
    rate_plan_type: RatePlanType = RatePlanType.STANDARD
    base_rate: float = Field(..., ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    min_stay: int | None = Field(default=None, ge=1)
    max_stay: int | None = Field(default=None, ge=1)
    closed_to_arrival: bool | None = None
    closed_to_departure: bool | None = None
    seasonal_rates: dict[str, float] | None = None
    day_of_week_rates: dict[str, float] | None = None
    special_dates: dict[str, float] | None = None
    is_active: bool = True


class UpdateRatePlanBody(BaseModel):
    channel_rate_plan_id: str | None = Field(default=None, min_length=1, max_length=128)
    channel_rate_plan_name: str | None = Field(default=None, min_length=1, max_length=256)
    rate_plan_type: RatePlanType | None = None
    base_rate: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    min_stay: int | None = Field(default=None, ge=1)
    max_stay: int | None = Field(default=None, ge=1)
    closed_to_arrival: bool | None = None
    closed_to_departure: bool | None = None
    seasonal_rates: dict[str, float] | None = None
    day_of_week_rates: dict[str, float] | None = None
    special_dates: dict[str, float] | None = None
    is_active: bool | None = None


class AvailabilityBody(BaseModel):
    roomtype_id: int = Field(..., ge=1)
    day: date = Field(..., alias="date")
    total_rooms: int | None = Field(default=None, ge=0)
    occupied_rooms: int | None = Field(default=None, ge=0)
    blocked_rooms: int | None = Field(default=None, ge=0)
    maintenance_rooms: int | None = Field(default=None, ge=0)
    rate: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_closed: bool | None = None
    close_reason: str | None = None


class ReservationBody(BaseModel):
    reservation: dict[str, Any] = Field(default_factory=dict)


def _integration_or_404(db: Session, integration_id: int):
    try:
        return channel_store.require_integration(db, integration_id)
    except ChannelSyncError as e:
        handle_channel_error(e, f"Integration {integration_id} lookup failed", logger)


# --- Integrations ---


@router.post("/integrations")
def create_integration(body: CreateIntegrationBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Create an integration: conflict check, connection test, insert, then onboarding
    (placeholder mapping, rate plan and availability window). Returns the ACTIVE integration.
    """
    fields = body.model_dump(exclude_none=True)
    try:
        integration = onboarding.create_integration(db, **fields)
    except Exception as e:
        handle_channel_error(e, "Create integration failed", logger)
    return {"integration": integration_to_dict(integration)}


@router.get("/integrations")
def list_integrations(
    hotel_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = channel_store.find_integrations_by_hotel(db, hotel_id)
    return {"integrations": [integration_to_dict(r) for r in rows], "count": len(rows)}


@router.get("/integrations/available-types")
def available_integration_types(
    hotel_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Channel types this hotel has not connected yet."""
    return {"hotel_id": hotel_id, "channel_types": onboarding.get_available_integration_types(db, hotel_id)}


@router.get("/integrations/{integration_id}")
def get_integration(integration_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"integration": integration_to_dict(_integration_or_404(db, integration_id))}


@router.patch("/integrations/{integration_id}")
def update_integration(
    integration_id: int,
    body: UpdateIntegrationBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    integration = _integration_or_404(db, integration_id)
    changes = body.model_dump(exclude_none=True)
    if changes:
        channel_store.update_integration(db, integration, **changes)
        logger.info("Updated integration %s: %s", integration_id, sorted(changes))
    return {"integration": integration_to_dict(integration)}


@router.post("/integrations/{integration_id}/onboard")
def onboard_integration(integration_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Re-run onboarding, e.g. after it failed and left the integration in ERROR."""
    integration = _integration_or_404(db, integration_id)
    try:
        onboarding.run_onboarding(db, integration)
    except Exception as e:
        handle_channel_error(e, f"Onboarding failed for integration {integration_id}", logger)
    return {"integration": integration_to_dict(integration)}


@router.delete("/integrations/{integration_id}")
def deactivate_integration(integration_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Soft delete: INACTIVE, so the scheduler skips it; mappings and sync logs are kept."""
    integration = _integration_or_404(db, integration_id)
    channel_store.deactivate_integration(db, integration)
    return {"integration": integration_to_dict(integration)}


@router.post("/integrations/{integration_id}/test")
def probe_integration_connection(integration_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    integration = _integration_or_404(db, integration_id)
    result = onboarding.check_integration_connection(db, integration)
    return {"integration_id": integration_id, "success": result.success, "error": result.error}


# --- Mappings ---


@router.get("/integrations/{integration_id}/mappings")
def list_mappings(
    integration_id: int,
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    rows = channel_store.find_mappings(db, integration_id, active_only=active_only)
    return {"mappings": [mapping_to_dict(r) for r in rows]}


@router.post("/integrations/{integration_id}/mappings")
def create_mapping(
    integration_id: int,
    body: CreateMappingBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    try:
        row = channel_store.create_mapping(db, integration_id, **body.model_dump(exclude_none=True))
    except ChannelSyncError as e:
        handle_channel_error(e, "Create mapping failed", logger)
    return {"mapping": mapping_to_dict(row)}


@router.put("/integrations/{integration_id}/mappings/{mapping_id}")
def update_mapping(
    integration_id: int,
    mapping_id: int,
    body: UpdateMappingBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    try:
        row = channel_store.require_mapping(db, integration_id, mapping_id)
        row = channel_store.update_mapping(db, row, **body.model_dump(exclude_none=True))
    except ChannelSyncError as e:
        handle_channel_error(e, f"Update mapping {mapping_id} failed", logger)
    return {"mapping": mapping_to_dict(row)}


# --- Rate plans ---


@router.get("/integrations/{integration_id}/rate-plans")
def list_rate_plans(
    integration_id: int,
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    rows = channel_store.find_rate_plans(db, integration_id, active_only=active_only)
    return {"rate_plans": [rate_plan_to_dict(r) for r in rows]}


@router.post("/integrations/{integration_id}/rate-plans")
def create_rate_plan(
    integration_id: int,
    body: CreateRatePlanBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    row = channel_store.create_rate_plan(db, integration_id, **body.model_dump(exclude_none=True))
    return {"rate_plan": rate_plan_to_dict(row)}


@router.put("/integrations/{integration_id}/rate-plans/{rate_plan_id}")
def update_rate_plan(
    integration_id: int,
    rate_plan_id: int,
    body: UpdateRatePlanBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    _integration_or_404(db, integration_id)
    try:
        row = channel_store.require_rate_plan(db, integration_id, rate_plan_id)
    except ChannelSyncError as e:
        handle_channel_error(e, f"Rate plan {rate_plan_id} lookup failed", logger)
    row = channel_store.update_rate_plan(db, row, **body.model_dump(exclude_none=True))
    return {"rate_plan": rate_plan_to_dict(row)}


# --- Availability ---


@router.get("/integrations/{integration_id}/availability")
def get_availability(
    integration_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    roomtype_id: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Rows for start_date..end_date inclusive."""
    _integration_or_404(db, integration_id)
    if end_date < start_date:
        handle_channel_error(
            PayloadValidationError("end_date must not be before start_date"), "Bad availability range", logger
        )
    rows = channel_store.find_availability_by_date_range(db, integration_id, start_date, end_date, roomtype_id)
    return {"availability": [availability_to_dict(r) for r in rows]}


@router.put("/integrations/{integration_id}/availability")
def put_availability(
    integration_id: int,
    body: AvailabilityBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Create or update one day; pushed to the channel right away when real-time sync is on."""
    integration = _integration_or_404(db, integration_id)
    fields = body.model_dump(exclude_none=True, exclude={"roomtype_id", "day"})
    row = upsert_availability(db, integration, body.roomtype_id, body.day, **fields)
    return {"availability": availability_to_dict(row)}


# --- Reservations (outbound) ---


def _push(db: Session, integration_id: int, action: str, **kwargs: Any) -> dict[str, Any]:
    integration = _integration_or_404(db, integration_id)
    try:
        log = push_reservation(db, integration, action, **kwargs)
    except Exception as e:
        handle_channel_error(e, f"Reservation {action} failed for integration {integration_id}", logger)
    return {"sync_log": sync_log_to_dict(log, include_payloads=True)}


@router.post("/integrations/{integration_id}/reservations")
def create_reservation(integration_id: int, body: ReservationBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    return _push(db, integration_id, SyncOperationType.BOOKING_CREATE.value, reservation=body.reservation)


@router.put("/integrations/{integration_id}/reservations/{reservation_id}")
def update_reservation(
    integration_id: int,
    reservation_id: str,
    body: ReservationBody,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return _push(
        db,
        integration_id,
        SyncOperationType.BOOKING_UPDATE.value,
        reservation=body.reservation,
        reservation_id=reservation_id,
    )


@router.delete("/integrations/{integration_id}/reservations/{reservation_id}")
def cancel_reservation(integration_id: int, reservation_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return _push(db, integration_id, SyncOperationType.BOOKING_CANCEL.value, reservation_id=reservation_id)
