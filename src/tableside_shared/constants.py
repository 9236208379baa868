"""
Application constants and enums.
"""

from enum import Enum


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"
    OUT_OF_SERVICE = "out_of_service"

    @classmethod
    def all_values(cls) -> set:
        return {member.value for member in cls}


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    CLOSED = "closed"


class TableActor(str, Enum):
    """Who is asking for a table status change."""

    STAFF = "staff"
    LIFECYCLE = "lifecycle"


ACTIVE_ORDER_STATUSES = {
    OrderStatus.PENDING,
    OrderStatus.PROCESSED,
}

UNAVAILABLE_TABLE_STATUSES = {
    TableStatus.CLEANING,
    TableStatus.OUT_OF_SERVICE,
}

# (current, target) -> actors allowed to perform it. Moves to cleaning and
# out_of_service are staff overrides from any status and are handled apart.
TABLE_TRANSITIONS: dict[tuple[TableStatus, TableStatus], set[TableActor]] = {
    (TableStatus.AVAILABLE, TableStatus.OCCUPIED): {TableActor.LIFECYCLE},
    (TableStatus.OCCUPIED, TableStatus.AVAILABLE): {TableActor.STAFF},
    (TableStatus.CLEANING, TableStatus.AVAILABLE): {TableActor.STAFF},
    (TableStatus.OUT_OF_SERVICE, TableStatus.AVAILABLE): {TableActor.STAFF},
}

STAFF_OVERRIDE_STATUSES = UNAVAILABLE_TABLE_STATUSES

CUSTOMER_TOKEN_MAX_LENGTH = 128
PRODUCT_ID_MAX_LENGTH = 64
