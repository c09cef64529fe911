"""Tools the assistant can call."""

from .booking_tools import (
    BookingTools,
    ToolResult,
    BookingDetailsRequest,
    ChangeBookingRequest,
    CancelBookingRequest,
)

__all__ = [
    "BookingTools",
    "ToolResult",
    "BookingDetailsRequest",
    "ChangeBookingRequest",
    "CancelBookingRequest",
]
