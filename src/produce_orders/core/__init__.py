"""Core module - Logging, error taxonomy, monitoring and background tasks."""

from produce_orders.core.errors import (
    AppError,
    BadRequest,
    Conflict,
    Forbidden,
    NotFound,
    PersistenceError,
    ProductNotFound,
    Unprocessable,
)
from produce_orders.core.logger import setup_logger

__all__ = [
    "AppError",
    "BadRequest",
    "Conflict",
    "Forbidden",
    "NotFound",
    "PersistenceError",
    "ProductNotFound",
    "Unprocessable",
    "setup_logger",
]
