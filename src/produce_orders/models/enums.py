"""Enumerations shared by the database models, schemas and services."""

from enum import Enum


class CompanyType(str, Enum):
    ORDERER = "ORDERER"
    FARMER = "FARMER"


class OrderStatus(str, Enum):
    """Order lifecycle states. COMPLETED and CANCELED are terminal."""

    NEW = "NEW"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class OrderAction(str, Enum):
    """Operations that act on an existing order."""

    EDIT = "EDIT"
    CONFIRM = "CONFIRM"
    SHIP = "SHIP"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"


class MovementType(str, Enum):
    """
    Inventory ledger movement types.

    ALLOCATE is negative, DEALLOCATE positive, SHIP negative. ADJUST carries
    its own sign (stock receipts and corrections).
    """

    ALLOCATE = "ALLOCATE"
    DEALLOCATE = "DEALLOCATE"
    SHIP = "SHIP"
    ADJUST = "ADJUST"


class OrderEvent(str, Enum):
    """Lifecycle events that trigger notifications."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELED = "canceled"
