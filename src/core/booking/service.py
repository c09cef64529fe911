"""Flight booking service.

Validated lookup, change and cancellation of bookings held in a
``BookingStore``. Policy windows are measured in calendar days against an
injectable clock read on every call:

- changes are refused when the flight date is before ``today + 1 day``
- cancellations are refused when the flight date is before ``today + 2 days``
- cancelled bookings cannot be changed or cancelled again
"""

from datetime import date, timedelta
from typing import Callable, List, Optional, Union

from src.utils.logging import get_logger

from .exceptions import (
    BookingNotFoundError,
    InvalidBookingRequestError,
    PolicyViolationError,
)
from .models import Booking, BookingDetails, BookingStatus
from .store import BookingStore

logger = get_logger(__name__)

CHANGE_WINDOW_DAYS = 1
CANCEL_WINDOW_DAYS = 2


class FlightBookingService:
    """Domain operations over a booking store."""

    def __init__(
        self,
        store: BookingStore,
        clock: Optional[Callable[[], date]] = None
    ) -> None:
        self.store = store
        self._clock = clock or date.today

    def today(self) -> date:
        return self._clock()

    def find_booking(self, booking_number: str, name: str) -> Booking:
        """Find a booking by number and customer name, ignoring case on both.

        Raises:
            BookingNotFoundError: If no booking matches both fields
        """
        number_key = (booking_number or "").casefold()
        name_key = (name or "").casefold()

        for booking in self.store.bookings:
            if (booking.booking_number.casefold() == number_key
                    and booking.customer.name.casefold() == name_key):
                return booking

        raise BookingNotFoundError(booking_number, name)

    def get_booking_details(self, booking_number: str, name: str) -> BookingDetails:
        with self.store.lock:
            return BookingDetails.from_booking(self.find_booking(booking_number, name))

    def get_bookings(self) -> List[BookingDetails]:
        """All bookings in creation order."""
        with self.store.lock:
            return [BookingDetails.from_booking(b) for b in self.store.bookings]

    def change_booking(
        self,
        booking_number: str,
        name: str,
        new_date: Union[date, str],
        origin: str,
        destination: str
    ) -> BookingDetails:
        """Move a booking to a new date and route.

        Raises:
            BookingNotFoundError: If the booking does not exist
            PolicyViolationError: Inside the 24 hour window or if cancelled
            InvalidBookingRequestError: If ``new_date`` is not an ISO date
        """
        parsed_date = _parse_date(new_date)

        with self.store.lock:
            booking = self.find_booking(booking_number, name)
            today = self.today()

            if booking.is_cancelled:
                raise PolicyViolationError(
                    "Cancelled bookings cannot be changed",
                    rule="terminal_status",
                    details={"booking_number": booking.booking_number},
                )

            if booking.date < today + timedelta(days=CHANGE_WINDOW_DAYS):
                raise PolicyViolationError(
                    "Bookings cannot be changed within 24 hours of departure",
                    rule="change_window",
                    details={
                        "booking_number": booking.booking_number,
                        "flight_date": booking.date.isoformat(),
                        "today": today.isoformat(),
                    },
                )

            booking.date = parsed_date
            booking.origin = origin
            booking.destination = destination
            details = BookingDetails.from_booking(booking)

        logger.info(
            f"Booking {details.booking_number} changed to {parsed_date.isoformat()} "
            f"({origin} -> {destination})"
        )
        return details

    def cancel_booking(self, booking_number: str, name: str) -> BookingDetails:
        """Cancel a booking.

        Raises:
            BookingNotFoundError: If the booking does not exist
            PolicyViolationError: Inside the 48 hour window or if already cancelled
        """
        with self.store.lock:
            booking = self.find_booking(booking_number, name)
            today = self.today()

            if booking.is_cancelled:
                raise PolicyViolationError(
                    "Booking is already cancelled",
                    rule="terminal_status",
                    details={"booking_number": booking.booking_number},
                )

            if booking.date < today + timedelta(days=CANCEL_WINDOW_DAYS):
                raise PolicyViolationError(
                    "Bookings cannot be cancelled within 48 hours of departure",
                    rule="cancel_window",
                    details={
                        "booking_number": booking.booking_number,
                        "flight_date": booking.date.isoformat(),
                        "today": today.isoformat(),
                    },
                )

            booking.status = BookingStatus.CANCELLED
            details = BookingDetails.from_booking(booking)

        logger.info(f"Booking {details.booking_number} cancelled")
        return details


def _parse_date(value: Union[date, str]) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise InvalidBookingRequestError(
            f"Invalid flight date: {value!r}",
            details={"date": str(value)},
        ) from e
