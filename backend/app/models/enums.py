"""String enums shared by models, engine and routes. Stored as plain strings in the DB."""
from enum import Enum


class ChannelType(str, Enum):
    BOOKING_COM = "BOOKING_COM"
    EXPEDIA = "EXPEDIA"
    AIRBNB = "AIRBNB"
    HOTELS_COM = "HOTELS_COM"
    TRIPADVISOR = "TRIPADVISOR"
    AGODA = "AGODA"
    HOTELBEDS = "HOTELBEDS"
    CUSTOM = "CUSTOM"
    SEVEN = "SEVEN"


class IntegrationStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ERROR = "ERROR"
    INACTIVE = "INACTIVE"
    TESTING = "TESTING"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    BLOCKED = "BLOCKED"


class SyncOperationType(str, Enum):
    INVENTORY_UPDATE = "INVENTORY_UPDATE"
    RATE_UPDATE = "RATE_UPDATE"
    AVAILABILITY_UPDATE = "AVAILABILITY_UPDATE"
    BOOKING_CREATE = "BOOKING_CREATE"
    BOOKING_UPDATE = "BOOKING_UPDATE"
    BOOKING_CANCEL = "BOOKING_CANCEL"
    MAPPING_UPDATE = "MAPPING_UPDATE"
    FULL_SYNC = "FULL_SYNC"


class SyncStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"


class SyncDirection(str, Enum):
    OUTBOUND = "OUTBOUND"
    INBOUND = "INBOUND"
    BIDIRECTIONAL = "BIDIRECTIONAL"


class RatePlanType(str, Enum):
    STANDARD = "STANDARD"
    DISCOUNT = "DISCOUNT"
    PACKAGE = "PACKAGE"
    PROMOTIONAL = "PROMOTIONAL"
    CORPORATE = "CORPORATE"
    GROUP = "GROUP"


class RateModifierType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    MULTIPLIER = "MULTIPLIER"


class ReservationStateStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class ForwardStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DEAD = "DEAD"
