"""Domain errors raised by the checkout core and booking services.

Every error carries a stable `kind`, an HTTP status for the API boundary,
and a user-safe message. The API layer renders them; services never build
HTTP responses themselves.
"""

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    NO_LINES_SELECTED = "NO_LINES_SELECTED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PROMOTION_INPUT = "INVALID_PROMOTION_INPUT"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    BOOKING_NOT_CANCELLABLE = "BOOKING_NOT_CANCELLABLE"


class DomainError(Exception):
    """Base domain error with kind, status code and user-safe message."""

    kind: ErrorKind
    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error_kind": self.kind.value, "message": self.message}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class CheckoutError(DomainError):
    """Any failure that aborts a checkout."""


class EventNotFoundError(CheckoutError):
    kind = ErrorKind.EVENT_NOT_FOUND
    status_code = 404

    def __init__(self, event_id: int) -> None:
        super().__init__("Event not found or not available for booking.")
        self.event_id = event_id


class EventNotBookableError(CheckoutError):
    kind = ErrorKind.EVENT_NOT_BOOKABLE
    status_code = 409

    def __init__(self, event_id: int, reason: str) -> None:
        super().__init__(reason)
        self.event_id = event_id


class CategoryNotFoundError(CheckoutError):
    kind = ErrorKind.CATEGORY_NOT_FOUND
    status_code = 422

    def __init__(self, ticket_category_id: int) -> None:
        super().__init__("Ticket category not found.")
        self.ticket_category_id = ticket_category_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "ticket_category_id": self.ticket_category_id}


class InsufficientStockError(CheckoutError):
    kind = ErrorKind.INSUFFICIENT_STOCK
    status_code = 409

    def __init__(self, ticket_category_id: int, category_name: str, available: int) -> None:
        super().__init__(f"Only {available} tickets available for {category_name}.")
        self.ticket_category_id = ticket_category_id
        self.category_name = category_name
        self.available = available

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "ticket_category_id": self.ticket_category_id,
            "available": self.available,
        }


class NoLinesSelectedError(CheckoutError):
    kind = ErrorKind.NO_LINES_SELECTED
    status_code = 422

    def __init__(self) -> None:
        super().__init__("Please select at least one ticket.")


class InvalidQuantityError(CheckoutError):
    kind = ErrorKind.INVALID_QUANTITY
    status_code = 422

    def __init__(self, ticket_category_id: int, quantity: int, maximum: int) -> None:
        super().__init__(f"Quantity must be between 0 and {maximum}.")
        self.ticket_category_id = ticket_category_id
        self.quantity = quantity


class InvalidPromotionInputError(CheckoutError):
    kind = ErrorKind.INVALID_PROMOTION_INPUT
    status_code = 422


class PersistenceFailureError(CheckoutError):
    kind = ErrorKind.PERSISTENCE_FAILURE
    status_code = 503

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message or "An error occurred while processing your booking. Please try again."
        )


class BookingNotFoundError(DomainError):
    kind = ErrorKind.BOOKING_NOT_FOUND
    status_code = 404

    def __init__(self, booking_id: int) -> None:
        super().__init__("Booking not found.")
        self.booking_id = booking_id


class BookingNotCancellableError(DomainError):
    kind = ErrorKind.BOOKING_NOT_CANCELLABLE
    status_code = 409

    def __init__(self, booking_id: int, reason: str) -> None:
        super().__init__(reason)
        self.booking_id = booking_id

