"""Domain errors for the storefront API.

Every error carries the HTTP status it maps to. The handlers registered in
``app.main`` turn them into ``{"error": ...}`` JSON bodies.
"""

from typing import Optional


class StoreError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500
    code: Optional[str] = None

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class AuthenticationError(StoreError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(StoreError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ValidationError(StoreError):
    status_code = 400


class NotFoundError(StoreError):
    status_code = 404

    def __init__(self, what: str = "Order"):
        self.what = what
        super().__init__(f"{what} not found")


class ConflictError(StoreError):
    status_code = 409


class InsufficientStockError(ConflictError):
    """Raised when a cart line asks for more units than are in stock."""

    code = "insufficient_stock"

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {available}, requested: {requested}"
        )


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"

    def __init__(self, field: str, current: str, target: str):
        self.field = field
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {field} from {current} to {target}")


class AlreadyCancelledError(ValidationError):
    code = "already_cancelled"

    def __init__(self):
        super().__init__("Order is already cancelled")


class OrderNotCancellableError(ValidationError):
    code = "not_cancellable"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Order cannot be cancelled. Current status: {status}")


class SignatureMismatchError(ValidationError):
    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message)


class RateLimitedError(StoreError):
    status_code = 429

    def __init__(self, reset_at: float):
        self.reset_at = reset_at
        super().__init__("Too many requests. Please try again later.")


class UpstreamError(StoreError):
    """A gateway, database or notification call failed.

    The message is for logs only; clients get an opaque response.
    """

    status_code = 502
    public_message = "Payment provider unavailable. Please try again."
