"""JSON copies for sync log request/response columns: raw inbound payloads kept whole, everything else bounded."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from app.core.constants import SNAPSHOT_MAX_LIST_LEN, SNAPSHOT_MAX_STR_LEN


def _scalar(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def json_safe(value: Any) -> Any:
    """JSON-safe copy of value with nothing dropped. Used for raw webhook payloads so they can be replayed."""
    value = _scalar(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [json_safe(v) for v in value]
    return str(value)


def snapshot(value: Any, _depth: int = 0) -> Any:
    """JSON-safe copy of value: dates to ISO, Decimals to float, long lists/strings truncated."""
    if _depth > 8:
        return "..."
    value = _scalar(value)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= SNAPSHOT_MAX_STR_LEN else value[:SNAPSHOT_MAX_STR_LEN] + "..."
    if isinstance(value, dict):
        return {str(k): snapshot(v, _depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        items = list(value)
        out = [snapshot(v, _depth + 1) for v in items[:SNAPSHOT_MAX_LIST_LEN]]
        if len(items) > SNAPSHOT_MAX_LIST_LEN:
            out.append(f"... {len(items) - SNAPSHOT_MAX_LIST_LEN} more")
        return out
    return str(value)
