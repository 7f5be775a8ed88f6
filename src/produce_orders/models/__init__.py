"""Pydantic models and shared enumerations."""

from produce_orders.models.enums import (
    CompanyType,
    MovementType,
    OrderAction,
    OrderEvent,
    OrderStatus,
)

__all__ = ["CompanyType", "MovementType", "OrderAction", "OrderEvent", "OrderStatus"]
