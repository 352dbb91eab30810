"""Channel manager schema: integrations, mappings, rate plans, availability, sync logs,
reservation state, OTA configuration and the PMS forward queue

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "channel_integrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hotel_id", sa.Integer(), nullable=False),
        sa.Column("channel_type", sa.String(32), nullable=False),
        sa.Column("channel_name", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("credentials", sa.JSON(), nullable=True),
        sa.Column("channel_property_id", sa.String(128), nullable=True),
        sa.Column("is_webhook_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sync_interval_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("is_real_time_sync", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("test_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("channel_settings", sa.JSON(), nullable=True),
        sa.Column("supported_features", sa.JSON(), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_successful_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("hotel_id", "channel_type", name="uq_channel_integration_hotel_type"),
    )
    op.create_index("ix_channel_integrations_hotel_id", "channel_integrations", ["hotel_id"])
    op.create_index("ix_channel_integrations_channel_type", "channel_integrations", ["channel_type"])
    op.create_index("ix_channel_integrations_status", "channel_integrations", ["status"])
    op.create_index("ix_channel_integrations_last_sync_at", "channel_integrations", ["last_sync_at"])

    op.create_table(
        "channel_mappings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("roomtype_id", sa.Integer(), nullable=False),
        sa.Column("channel_room_type_id", sa.String(128), nullable=False),
        sa.Column("channel_room_type_name", sa.String(256), nullable=False),
        sa.Column("channel_rate_plan_id", sa.String(128), nullable=True),
        sa.Column("channel_rate_plan_name", sa.String(256), nullable=True),
        sa.Column("channel_amenities", sa.JSON(), nullable=True),
        sa.Column("channel_description", sa.Text(), nullable=True),
        sa.Column("channel_images", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("mapping_rules", sa.JSON(), nullable=True),
        sa.Column("custom_fields", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("integration_id", "channel_room_type_id", name="uq_channel_mapping_integration_room"),
    )
    op.create_index("ix_channel_mappings_integration_id", "channel_mappings", ["integration_id"])

    op.create_table(
        "channel_rate_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("roomtype_id", sa.Integer(), nullable=False),
        sa.Column("channel_rate_plan_id", sa.String(128), nullable=False),
        sa.Column("channel_rate_plan_name", sa.String(256), nullable=False),
        sa.Column("rate_plan_type", sa.String(16), nullable=False, server_default="STANDARD"),
        sa.Column("base_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=True),
        sa.Column("min_stay", sa.Integer(), nullable=True),
        sa.Column("max_stay", sa.Integer(), nullable=True),
        sa.Column("closed_to_arrival", sa.Boolean(), nullable=True),
        sa.Column("closed_to_departure", sa.Boolean(), nullable=True),
        sa.Column("advance_booking_days", sa.Integer(), nullable=True),
        sa.Column("cancellation_policy", sa.Text(), nullable=True),
        sa.Column("seasonal_rates", sa.JSON(), nullable=True),
        sa.Column("day_of_week_rates", sa.JSON(), nullable=True),
        sa.Column("special_dates", sa.JSON(), nullable=True),
        sa.Column("rate_modifier", sa.Numeric(10, 2), nullable=True),
        sa.Column("rate_modifier_type", sa.String(16), nullable=False, server_default="PERCENTAGE"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("restrictions", sa.JSON(), nullable=True),
        sa.Column("inclusions", sa.JSON(), nullable=True),
        sa.Column("exclusions", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_channel_rate_plans_integration_id", "channel_rate_plans", ["integration_id"])

    op.create_table(
        "channel_availability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("roomtype_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="AVAILABLE"),
        sa.Column("total_rooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_rooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("occupied_rooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blocked_rooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("maintenance_rooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(3), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("close_reason", sa.String(256), nullable=True),
        sa.Column("restrictions", sa.JSON(), nullable=True),
        sa.Column("channel_data", sa.JSON(), nullable=True),
        sa.Column("is_synced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_status", sa.String(16), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("integration_id", "roomtype_id", "date", name="uq_channel_availability_day"),
    )
    op.create_index("ix_channel_availability_integration_id", "channel_availability", ["integration_id"])

    op.create_table(
        "channel_sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("operation_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("direction", sa.String(16), nullable=False, server_default="OUTBOUND"),
        sa.Column("request_data", sa.JSON(), nullable=True),
        sa.Column("response_data", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(64), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_retries", sa.Integer(), nullable=True),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=True),
        sa.Column("records_success", sa.Integer(), nullable=True),
        sa.Column("records_failed", sa.Integer(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_by", sa.Integer(), nullable=True),
    )
    op.create_index("ix_channel_sync_logs_integration_id", "channel_sync_logs", ["integration_id"])
    op.create_index("ix_channel_sync_logs_status", "channel_sync_logs", ["status"])
    op.create_index("ix_channel_sync_logs_created_at", "channel_sync_logs", ["created_at"])

    op.create_table(
        "channel_reservation_states",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("channel_reservation_id", sa.String(128), nullable=False),
        sa.Column("roomtype_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("rooms", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        *_timestamps(),
        sa.UniqueConstraint("integration_id", "channel_reservation_id", name="uq_reservation_state_channel_id"),
    )
    op.create_index(
        "ix_channel_reservation_states_integration_id", "channel_reservation_states", ["integration_id"]
    )

    op.create_table(
        "ota_configurations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("channel_type", sa.String(32), nullable=False, unique=True),
        sa.Column("api_key", sa.String(256), nullable=True),
        sa.Column("api_secret", sa.String(256), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("base_url", sa.String(512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("additional_config", sa.JSON(), nullable=True),
        sa.Column("last_tested", sa.DateTime(timezone=True), nullable=True),
        sa.Column("test_status", sa.String(16), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "pms_forward_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hotel_id", sa.Integer(), nullable=False),
        sa.Column("integration_id", sa.Integer(), nullable=False),
        sa.Column("sync_log_id", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_status_code", sa.Integer(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_pms_forward_tasks_integration_id", "pms_forward_tasks", ["integration_id"])
    op.create_index("ix_pms_forward_tasks_status", "pms_forward_tasks", ["status"])
    op.create_index("ix_pms_forward_tasks_next_attempt_at", "pms_forward_tasks", ["next_attempt_at"])


def downgrade() -> None:
    op.drop_table("pms_forward_tasks")
    op.drop_table("ota_configurations")
    op.drop_table("channel_reservation_states")
    op.drop_table("channel_sync_logs")
    op.drop_table("channel_availability")
    op.drop_table("channel_rate_plans")
    op.drop_table("channel_mappings")
    op.drop_table("channel_integrations")
