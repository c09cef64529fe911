"""Booking domain engine: customers, bookings and their policy rules."""

from .exceptions import (
    BookingError,
    BookingNotFoundError,
    InvalidBookingRequestError,
    PolicyViolationError,
)
from .models import Booking, BookingClass, BookingDetails, BookingStatus, Customer
from .service import FlightBookingService
from .store import BookingStore, seed_demo_data

__all__ = [
    "Booking",
    "BookingClass",
    "BookingDetails",
    "BookingError",
    "BookingNotFoundError",
    "BookingStatus",
    "BookingStore",
    "Customer",
    "FlightBookingService",
    "InvalidBookingRequestError",
    "PolicyViolationError",
    "seed_demo_data",
]
