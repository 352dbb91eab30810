"""Shared route helpers: error mapping and row -> JSON dicts."""
import logging
from typing import Any, NoReturn

from app.core.errors import ChannelSyncError, channel_error_to_http
from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.rate_plan import RatePlan
from app.models.sync_log import SyncLog
from app.services.channels import registry


def handle_channel_error(exc: Exception, log_message: str, logger: logging.Logger) -> NoReturn:
    if isinstance(exc, ChannelSyncError):
        logger.warning("%s: %s", log_message, exc)
    else:
        logger.exception(log_message)
    raise channel_error_to_http(exc) from exc


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _money(value) -> float | None:
    return float(value) if value is not None else None


def integration_to_dict(row: Integration) -> dict[str, Any]:
    """Credentials are never returned; only which keys are set."""
    return {
        "id": row.id,
        "hotel_id": row.hotel_id,
        "channel_type": row.channel_type,
        "channel_name": row.channel_name,
        "display_name": registry.display_name(row.channel_type),
        "status": row.status,
        "channel_property_id": row.channel_property_id,
        "credential_keys": sorted(k for k, v in (row.credentials or {}).items() if v),
        "is_webhook_enabled": row.is_webhook_enabled,
        "sync_interval_minutes": row.sync_interval_minutes,
        "is_real_time_sync": row.is_real_time_sync,
        "test_mode": row.test_mode,
        "channel_settings": row.channel_settings or {},
        "supported_features": row.supported_features or [],
        "last_sync_at": _iso(row.last_sync_at),
        "last_successful_sync": _iso(row.last_successful_sync),
        "error_message": row.error_message,
        "created_at": _iso(row.created_at),
    }


def mapping_to_dict(row: ChannelMapping) -> dict[str, Any]:
    return {
        "id": row.id,
        "integration_id": row.integration_id,
        "roomtype_id": row.roomtype_id,
        "channel_room_type_id": row.channel_room_type_id,
        "channel_room_type_name": row.channel_room_type_name,
        "channel_rate_plan_id": row.channel_rate_plan_id,
        "channel_rate_plan_name": row.channel_rate_plan_name,
        "channel_amenities": row.channel_amenities or [],
        "channel_description": row.channel_description,
        "is_active": row.is_active,
        "mapping_rules": row.mapping_rules or {},
    }


def rate_plan_to_dict(row: RatePlan) -> dict[str, Any]:
    return {
        "id": row.id,
        "integration_id": row.integration_id,
        "roomtype_id": row.roomtype_id,
        "channel_rate_plan_id": row.channel_rate_plan_id,
        "channel_rate_plan_name": row.channel_rate_plan_name,
        "rate_plan_type": row.rate_plan_type,
        "base_rate": _money(row.base_rate),
        "currency": row.currency,
        "min_stay": row.min_stay,
        "max_stay": row.max_stay,
        "closed_to_arrival": row.closed_to_arrival,
        "closed_to_departure": row.closed_to_departure,
        "seasonal_rates": row.seasonal_rates or {},
        "day_of_week_rates": row.day_of_week_rates or {},
        "special_dates": row.special_dates or {},
        "is_active": row.is_active,
    }


def availability_to_dict(row: Availability) -> dict[str, Any]:
    return {
        "id": row.id,
        "integration_id": row.integration_id,
        "roomtype_id": row.roomtype_id,
        "date": row.date.isoformat(),
        "status": row.status,
        "total_rooms": row.total_rooms,
        "available_rooms": row.available_rooms,
        "occupied_rooms": row.occupied_rooms,
        "blocked_rooms": row.blocked_rooms,
        "maintenance_rooms": row.maintenance_rooms,
        "rate": _money(row.rate),
        "currency": row.currency,
        "is_closed": row.is_closed,
        "is_synced": row.is_synced,
        "last_synced_at": _iso(row.last_synced_at),
        "sync_status": row.sync_status,
        "error_message": row.error_message,
    }


def sync_log_to_dict(row: SyncLog, include_payloads: bool = False) -> dict[str, Any]:
    out = {
        "id": row.id,
        "integration_id": row.integration_id,
        "operation_type": row.operation_type,
        "direction": row.direction,
        "status": row.status,
        "error_code": row.error_code,
        "error_message": row.error_message,
        "records_processed": row.records_processed,
        "records_success": row.records_success,
        "records_failed": row.records_failed,
        "processing_time_ms": row.processing_time_ms,
        "retry_count": row.retry_count,
        "max_retries": row.max_retries,
        "next_retry_at": _iso(row.next_retry_at),
        "created_at": _iso(row.created_at),
        "completed_at": _iso(row.completed_at),
    }
    if include_payloads:
        out["request_data"] = row.request_data
        out["response_data"] = row.response_data
    return out
