"""Exceptions raised by the booking domain engine.

All of them are recoverable: the tool bridge turns them into degraded
results for the model instead of letting them reach the caller.
"""

from typing import Any, Dict, Optional

from src.utils.exceptions import ServiceError


class BookingError(ServiceError):
    """Base exception for booking domain errors."""

    default_code = "BOOKING_ERROR"


class BookingNotFoundError(BookingError):
    """Raised when no booking matches the booking number and customer name."""

    default_code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_number: str, name: str) -> None:
        self.booking_number = booking_number
        self.name = name
        super().__init__(
            f"Booking not found: {booking_number}",
            details={"booking_number": booking_number, "name": name},
        )


class PolicyViolationError(BookingError):
    """Raised when a change or cancellation breaks a booking policy rule.

    Attributes:
        rule: Identifier of the violated rule (e.g. "cancel_window")
    """

    default_code = "POLICY_VIOLATION"

    def __init__(
        self,
        message: str,
        rule: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.rule = rule
        super().__init__(message, details={**(details or {}), "rule": rule})


class InvalidBookingRequestError(BookingError):
    """Raised when a booking operation receives malformed input (e.g. a bad date)."""

    default_code = "INVALID_BOOKING_REQUEST"
