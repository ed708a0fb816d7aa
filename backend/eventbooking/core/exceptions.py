"""
Domain errors raised by the booking engine.

Every error carries a stable machine-readable code, a user-safe message
and the HTTP status it maps to. The API layer renders them uniformly in
`eventbooking.api.errors`; services never build HTTP responses themselves.
"""

from enum import Enum


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PAST_EVENT = "PAST_EVENT"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    MISSING_LOCATION = "MISSING_LOCATION"
    INVALID_TICKET_COUNT = "INVALID_TICKET_COUNT"
    ALREADY_RETIRED = "ALREADY_RETIRED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONFLICT = "CONFLICT"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class BookingEngineError(Exception):
    """Base error with code, user-safe message and HTTP status."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(BookingEngineError):
    status_code = 404
    code = ErrorCode.NOT_FOUND


class BadRequestError(BookingEngineError):
    status_code = 400
    code = ErrorCode.BAD_REQUEST


class ForbiddenError(BookingEngineError):
    status_code = 403
    code = ErrorCode.FORBIDDEN


class ConflictError(BookingEngineError):
    """Optimistic-lock retries exhausted. The client should retry as-is."""

    status_code = 409
    code = ErrorCode.CONFLICT

    def __init__(self, message: str = "Booking failed due to high demand. Please try again.") -> None:
        super().__init__(message)


class RateLimitExceededError(BookingEngineError):
    status_code = 429
    code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        super().__init__(
            f"Rate limit exceeded. You can only make {max_requests} bookings "
            f"per {window_seconds:g} seconds."
        )
        self.max_requests = max_requests
        self.window_seconds = window_seconds


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class UserNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("User not found")


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: int) -> None:
        super().__init__("Booking not found")
        self.booking_id = booking_id


class BookingAccessDeniedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__("You are not authorized to view this booking.")


class PastEventError(BadRequestError):
    code = ErrorCode.PAST_EVENT

    def __init__(self) -> None:
        super().__init__("Cannot book tickets for a past event.")


class InsufficientInventoryError(BadRequestError):
    code = ErrorCode.INSUFFICIENT_INVENTORY

    def __init__(self, requested: int, remaining: int) -> None:
        super().__init__(f"Not enough seats available. Only {remaining} left.")
        self.requested = requested
        self.remaining = remaining


class InvalidTicketCountError(BadRequestError):
    code = ErrorCode.INVALID_TICKET_COUNT

    def __init__(self) -> None:
        super().__init__("Ticket count must be positive.")


class MissingLocationError(BadRequestError):
    code = ErrorCode.MISSING_LOCATION

    def __init__(self) -> None:
        super().__init__(
            "Location permission is required. Please enable location access to book tickets."
        )


class EventAlreadyRetiredError(BadRequestError):
    code = ErrorCode.ALREADY_RETIRED

    def __init__(self, event_id: int) -> None:
        super().__init__("Event is already deleted")
        self.event_id = event_id
