"""
Scheduler job ids and sync defaults shared by main, routes and the engine.
Intervals themselves come from settings (env-driven).
"""

# Scheduler job IDs (must match ids used in main.py add_job)
CHANNEL_SYNC_JOB_ID = "channel_sync"
CHANNEL_SYNC_RECOVERY_JOB_ID = "channel_sync_recovery"
PMS_FORWARD_JOB_ID = "pms_forward"

# Max sync logs returned by GET /sync/{id}/logs
SYNC_LOGS_DEFAULT_LIMIT = 100
SYNC_LOGS_MAX_LIMIT = 500

# Default lookback for sync statistics
SYNC_STATS_DEFAULT_DAYS = 7

# Snapshots stored on sync logs are truncated to keep rows bounded
SNAPSHOT_MAX_LIST_LEN = 50
SNAPSHOT_MAX_STR_LEN = 2000

# Fallback error code when an exception carries none
DEFAULT_SYNC_ERROR_CODE = "SYNC_ERROR"
