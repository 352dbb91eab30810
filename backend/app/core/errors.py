"""
Centralized error types for channel sync and their HTTP mapping.
Engine code raises these; routes stay thin and map them with channel_error_to_http.
"""
from __future__ import annotations

from fastapi import HTTPException


class ChannelSyncError(Exception):
    """Base for all sync errors. `code` is stored on failed sync logs."""

    code = "SYNC_ERROR"
    retryable = False

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code


class TransportError(ChannelSyncError):
    """Non-2xx response or network failure from a vendor call."""

    code = "TRANSPORT_ERROR"
    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class UnsupportedChannelError(ChannelSyncError):
    code = "UNSUPPORTED_CHANNEL"


class UnsupportedOperationError(ChannelSyncError):
    code = "UNSUPPORTED_OPERATION"


class ResolutionError(ChannelSyncError):
    """Channel room identifier has no mapping and is not an internal id."""

    code = "ROOM_TYPE_UNRESOLVED"


class PayloadValidationError(ChannelSyncError):
    code = "INVALID_PAYLOAD"


class IntegrationNotFoundError(ChannelSyncError):
    code = "INTEGRATION_NOT_FOUND"


class RecordNotFoundError(ChannelSyncError):
    """Mapping or rate plan id not found on the integration."""

    code = "NOT_FOUND"


class IntegrationConflictError(ChannelSyncError):
    code = "INTEGRATION_CONFLICT"


class IntegrationNotActiveError(ChannelSyncError):
    code = "INTEGRATION_NOT_ACTIVE"


class ConnectionTestError(ChannelSyncError):
    code = "CONNECTION_TEST_FAILED"


class SyncLogClosedError(ChannelSyncError):
    """Sync logs are immutable once completed_at is set."""

    code = "SYNC_LOG_CLOSED"


# ---------------------------------------------------------------------------
# HTTP mapping: (error class, status_code). First match wins.
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_UNPROCESSABLE = 422
STATUS_BAD_GATEWAY = 502
STATUS_INTERNAL_ERROR = 500

CHANNEL_ERROR_RULES: list[tuple[type[ChannelSyncError], int]] = [
    (IntegrationNotFoundError, STATUS_NOT_FOUND),
    (RecordNotFoundError, STATUS_NOT_FOUND),
    (IntegrationConflictError, STATUS_CONFLICT),
    (IntegrationNotActiveError, STATUS_BAD_REQUEST),
    (ConnectionTestError, STATUS_BAD_REQUEST),
    (UnsupportedChannelError, STATUS_BAD_REQUEST),
    (UnsupportedOperationError, STATUS_BAD_REQUEST),
    (PayloadValidationError, STATUS_UNPROCESSABLE),
    (TransportError, STATUS_BAD_GATEWAY),
]


def channel_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from the sync engine into an HTTPException.
    Uses CHANNEL_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for error_cls, status_code in CHANNEL_ERROR_RULES:
        if isinstance(exc, error_cls):
            return HTTPException(status_code=status_code, detail={"code": exc.code, "message": str(exc)})
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
