"""Application error taxonomy.

Every domain failure is raised as an ``AppError`` subclass carrying an HTTP
status, a stable machine-readable code and optional details. The server layer
turns them into ``{"error": {...}}`` responses.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        """Serializable error body."""
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class BadRequest(AppError):
    """Malformed or invalid input."""

    status_code = 400


class Forbidden(AppError):
    """Cross-tenant access, or an operation invalid for the current state."""

    status_code = 403


class NotFound(AppError):
    """A referenced order, farmer, ship-to or product does not exist."""

    status_code = 404


class Conflict(AppError):
    status_code = 409


class Unprocessable(AppError):
    """Valid request that cannot be carried out right now (e.g. stock)."""

    status_code = 422


class PersistenceError(AppError):
    """Storage failure. Always surfaced, never retried."""

    status_code = 500

    def __init__(self, message: str = "Storage operation failed.", details: Optional[Any] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)


class ProductNotFound(NotFound):
    def __init__(self, product_id: str):
        super().__init__(
            "PRODUCT_NOT_FOUND",
            "Product not found or inactive.",
            {"product_id": product_id},
        )
