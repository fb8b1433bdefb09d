"""Custom exceptions for shopzing."""

from typing import Any


class ShopzingError(Exception):
    """Base exception for all shopzing errors."""

    pass


class NotFoundError(ShopzingError):
    """Raised when a referenced record doesn't exist."""

    pass


class ProductNotFoundError(NotFoundError):
    """Raised when a product ID doesn't exist in the catalog."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class OrderNotFoundError(NotFoundError):
    """Raised when an order ID doesn't exist in the ledger."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ValidationError(ShopzingError):
    """Raised when caller input is malformed. The operation has no side effect."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class InvalidStatusTransitionError(ValidationError):
    """Raised when an order status change is not allowed from its current status."""

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{requested}'"
        )


class PermissionDeniedError(ShopzingError):
    """Raised when a non-admin caller attempts an admin operation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Admin role required to {action}")


class PersistenceError(ShopzingError):
    """
    Raised when the durable store cannot be written.

    The in-memory mutation has already succeeded when this is raised;
    ``result`` holds what the operation would have returned.
    """

    def __init__(self, key: str, reason: str, result: Any = None):
        self.key = key
        self.reason = reason
        self.result = result
        super().__init__(f"Failed to persist '{key}': {reason}")


class PaymentError(ShopzingError):
    """Base exception for checkout payment failures. No order is created."""

    pass


class PaymentDeclinedError(PaymentError):
    """Raised when the payment gateway declines the charge."""

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Payment of {amount} was declined")


class PaymentTimeoutError(PaymentError):
    """Raised when payment authorization exceeds its time budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Payment authorization timed out after {timeout:g}s")


class CheckoutCancelledError(PaymentError):
    """Raised when checkout is cancelled while payment is in flight."""

    def __init__(self):
        super().__init__("Checkout was cancelled before payment completed")
