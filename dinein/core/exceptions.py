"""
Application Exceptions

Services raise these; the API layer maps them to HTTP status codes and the
checkout session turns them into a SubmissionResult.

    DineInError
    ├── OrderValidationError      rejected locally, nothing was written
    │   └── EmptyCartError
    ├── OrderNotFoundError
    ├── InvalidTransitionError    status change not allowed from current state
    ├── OrderPersistenceError     the data store rejected a read or write
    └── StoreError                raised by data store backends
"""

from typing import Optional


class DineInError(Exception):
    """Base class for all application errors."""

    error_code = "error"

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class OrderValidationError(DineInError):
    """Input rejected before contacting any external collaborator."""
    error_code = "validation_error"


class EmptyCartError(OrderValidationError):
    error_code = "empty_cart"

    def __init__(self, message: str = "Cannot submit an order with an empty cart"):
        super().__init__(message)


class OrderNotFoundError(DineInError):
    error_code = "order_not_found"

    def __init__(self, order_id: str):
        super().__init__(f"Order #{order_id} not found")
        self.order_id = order_id


class InvalidTransitionError(DineInError):
    """A status change that the transition table does not allow."""
    error_code = "invalid_transition"

    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        message = f"Cannot move order from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target


class OrderPersistenceError(DineInError):
    """The data store failed; local state must be kept so the user can retry."""
    error_code = "persistence_error"


class StoreError(DineInError):
    """Raised by data store backends for any failed operation."""
    error_code = "store_error"

    def __init__(self, operation: str, collection: str, message: str):
        super().__init__(f"{operation} on '{collection}' failed: {message}")
        self.operation = operation
        self.collection = collection
