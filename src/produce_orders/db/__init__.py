"""Database module."""

from .base import Base, get_engine, get_session_factory, init_db
from .models import (
    Company,
    InventoryLedgerEntry,
    Order,
    OrderItem,
    Product,
    ProductSpecialPrice,
    ShipTo,
    ShipToFarmerRoute,
    User,
    UserSetting,
)
from .unit_of_work import UnitOfWork

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "Company",
    "InventoryLedgerEntry",
    "Order",
    "OrderItem",
    "Product",
    "ProductSpecialPrice",
    "ShipTo",
    "ShipToFarmerRoute",
    "User",
    "UserSetting",
    "UnitOfWork",
]
