"""
Storefront exception hierarchy.

Every failure is scoped to a single user operation. The API layer maps
these to HTTP responses in storefront.main.
"""

from typing import Optional, Sequence


class StorefrontError(Exception):
    """Base class for all application errors."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.error
        super().__init__(self.detail)


class ContactValidationError(StorefrontError):
    """Customer contact form rejected; never reaches persistence."""

    status_code = 422
    error = "Validation failed"

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__(", ".join(f"{k}: {v}" for k, v in errors.items()))


class NotFoundError(StorefrontError):
    status_code = 404
    error = "Not found"


class ItemUnavailableError(StorefrontError):
    status_code = 409
    error = "Menu item is not available"


class InvalidStatusTransition(StorefrontError):
    """Requested status change is not an edge of the order lifecycle."""

    status_code = 409
    error = "Invalid status transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move order from '{current}' to '{target}'")


class PersistenceError(StorefrontError):
    """A write was rejected by the database."""

    status_code = 500
    error = "Persistence failure"


class OrderLinesPersistenceError(PersistenceError):
    """The order row was committed but its lines were not."""

    def __init__(self, order_id, detail: Optional[str] = None):
        self.order_id = order_id
        super().__init__(
            detail or f"Order {order_id} was saved without its items"
        )


class HoursPersistenceError(PersistenceError):
    """The weekly hours save stopped part way through."""

    def __init__(self, failed_day: int, saved_days: Sequence[int]):
        self.failed_day = failed_day
        self.saved_days = list(saved_days)
        super().__init__(
            f"Saving hours failed on day {failed_day}; "
            f"already saved: {self.saved_days}"
        )


class FetchError(StorefrontError):
    """A read was rejected by the database."""

    status_code = 503
    error = "Fetch failure"
