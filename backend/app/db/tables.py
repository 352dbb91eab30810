"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts the
registered models match this list.
"""
# All tables that exist in the DB. Must match models and migration 001.
ALL_TABLE_NAMES = (
    "channel_integrations",
    "channel_mappings",
    "channel_rate_plans",
    "channel_availability",
    "channel_sync_logs",
    "channel_reservation_states",
    "ota_configurations",
    "pms_forward_tasks",
)

# Tables cleared when resetting sync state. sync logs are never truncated (audit trail).
SYNC_STATE_TABLE_NAMES = (
    "pms_forward_tasks",
    "channel_reservation_states",
)
