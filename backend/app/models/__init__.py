from app.models.availability import Availability
from app.models.channel_mapping import ChannelMapping
from app.models.integration import Integration
from app.models.ota_configuration import OtaConfiguration
from app.models.pms_forward_task import PmsForwardTask
from app.models.rate_plan import RatePlan
from app.models.reservation_state import ReservationState
from app.models.sync_log import SyncLog

__all__ = [
    "Availability",
    "ChannelMapping",
    "Integration",
    "OtaConfiguration",
    "PmsForwardTask",
    "RatePlan",
    "ReservationState",
    "SyncLog",
]
