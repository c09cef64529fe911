"""Tests for the booking domain engine.

Covers lookup (case-insensitive, not found), the 24 hour change window and
48 hour cancellation window, the terminal CANCELLED status and demo seeding.
"""

import random
from datetime import date, timedelta

import pytest
from hypothesis import given, strategies as st

from src.core.booking import (
    BookingNotFoundError,
    BookingStatus,
    BookingStore,
    FlightBookingService,
    InvalidBookingRequestError,
    PolicyViolationError,
    seed_demo_data,
)
from src.core.booking.store import DEMO_CUSTOMER_NAMES

from tests.unit.helpers import TODAY, make_store


def service_with_flight(days_ahead: int, status: BookingStatus = BookingStatus.CONFIRMED) -> FlightBookingService:
    store = make_store([("301", "Erin Black", TODAY + timedelta(days=days_ahead), status)])
    return FlightBookingService(store, clock=lambda: TODAY)


class TestFindBooking:
    """Test booking lookup."""

    def test_find_booking_exact(self, booking_service):
        booking = booking_service.find_booking("203", "Carol White")

        assert booking.booking_number == "203"
        assert booking.customer.name == "Carol White"

    @pytest.mark.parametrize("name", ["ALICE SMITH", "alice smith", "aLiCe SmItH"])
    def test_find_booking_ignores_name_case(self, booking_service, name):
        assert booking_service.find_booking("201", name) is booking_service.find_booking("201", "Alice Smith")

    def test_find_booking_ignores_number_case(self):
        store = make_store([("AB12", "Erin Black", TODAY + timedelta(days=5), BookingStatus.CONFIRMED)])
        service = FlightBookingService(store, clock=lambda: TODAY)

        assert service.find_booking("ab12", "erin black").booking_number == "AB12"

    def test_unknown_booking_number(self, booking_service):
        with pytest.raises(BookingNotFoundError) as exc_info:
            booking_service.find_booking("999", "Alice Smith")

        assert exc_info.value.error_code == "BOOKING_NOT_FOUND"
        assert exc_info.value.details == {"booking_number": "999", "name": "Alice Smith"}

    def test_mismatched_name(self, booking_service):
        """A real booking number with another customer's name is not found."""
        with pytest.raises(BookingNotFoundError):
            booking_service.find_booking("201", "Bob Jones")

    def test_get_booking_details_projection(self, booking_service, today):
        details = booking_service.get_booking_details("203", "carol white")

        assert details.to_payload() == {
            "bookingNumber": "203",
            "name": "Carol White",
            "date": (today + timedelta(days=10)).isoformat(),
            "bookingStatus": "CONFIRMED",
            "from": "Berlin",
            "to": "Lisbon",
            "bookingClass": "ECONOMY",
        }

    def test_get_bookings_in_creation_order(self, booking_service):
        numbers = [d.booking_number for d in booking_service.get_bookings()]

        assert numbers == ["201", "202", "203", "204", "205"]


class TestChangeBooking:
    """Test the 24 hour change rule."""

    def test_change_booking_updates_record(self, booking_service, today):
        new_date = today + timedelta(days=20)

        details = booking_service.change_booking("203", "Carol White", new_date.isoformat(), "Paris", "Rome")

        assert details.date == new_date
        assert details.origin == "Paris"
        assert details.destination == "Rome"
        booking = booking_service.find_booking("203", "Carol White")
        assert (booking.date, booking.origin, booking.destination) == (new_date, "Paris", "Rome")
        assert booking.status == BookingStatus.CONFIRMED

    def test_change_tomorrow_is_allowed(self, booking_service, today):
        """Flight at exactly today + 1 day is on the allowed side of the window."""
        details = booking_service.change_booking("201", "Alice Smith", today + timedelta(days=3), "Oslo", "Rome")

        assert details.origin == "Oslo"

    def test_change_same_day_is_refused(self, booking_service, today):
        with pytest.raises(PolicyViolationError) as exc_info:
            booking_service.change_booking("205", "Alice Smith", today + timedelta(days=3), "Oslo", "Rome")

        assert exc_info.value.rule == "change_window"
        assert exc_info.value.error_code == "POLICY_VIOLATION"
        # Record untouched
        assert booking_service.find_booking("205", "Alice Smith").origin == "Berlin"

    def test_change_cancelled_booking_is_refused(self, booking_service, today):
        with pytest.raises(PolicyViolationError) as exc_info:
            booking_service.change_booking("204", "Dan Brown", today + timedelta(days=30), "Oslo", "Rome")

        assert exc_info.value.rule == "terminal_status"

    def test_change_with_invalid_date(self, booking_service):
        with pytest.raises(InvalidBookingRequestError):
            booking_service.change_booking("203", "Carol White", "next tuesday", "Oslo", "Rome")

    def test_change_unknown_booking(self, booking_service, today):
        with pytest.raises(BookingNotFoundError):
            booking_service.change_booking("999", "Nobody", today + timedelta(days=5), "Oslo", "Rome")

    @given(days_ahead=st.integers(min_value=-30, max_value=60))
    def test_change_fails_iff_inside_window(self, days_ahead):
        service = service_with_flight(days_ahead)
        new_date = TODAY + timedelta(days=90)

        if days_ahead < 1:
            with pytest.raises(PolicyViolationError):
                service.change_booking("301", "Erin Black", new_date, "Oslo", "Rome")
        else:
            details = service.change_booking("301", "Erin Black", new_date, "Oslo", "Rome")
            assert details.date == new_date


class TestCancelBooking:
    """Test the 48 hour cancellation rule."""

    def test_cancel_sets_status(self, booking_service):
        details = booking_service.cancel_booking("203", "CAROL WHITE")

        assert details.booking_status == BookingStatus.CANCELLED
        assert booking_service.find_booking("203", "Carol White").is_cancelled

    def test_cancel_at_exactly_two_days_is_allowed(self, booking_service):
        details = booking_service.cancel_booking("202", "Bob Jones")

        assert details.booking_status == BookingStatus.CANCELLED

    def test_cancel_tomorrow_is_refused(self, booking_service):
        with pytest.raises(PolicyViolationError) as exc_info:
            booking_service.cancel_booking("201", "Alice Smith")

        assert exc_info.value.rule == "cancel_window"
        assert booking_service.find_booking("201", "Alice Smith").status == BookingStatus.CONFIRMED

    def test_cancel_twice_is_refused(self, booking_service):
        booking_service.cancel_booking("203", "Carol White")

        with pytest.raises(PolicyViolationError) as exc_info:
            booking_service.cancel_booking("203", "Carol White")

        assert exc_info.value.rule == "terminal_status"

    def test_cancel_unknown_booking(self, booking_service):
        with pytest.raises(BookingNotFoundError):
            booking_service.cancel_booking("203", "Alice Smith")

    @given(days_ahead=st.integers(min_value=-30, max_value=60))
    def test_cancel_fails_iff_inside_window(self, days_ahead):
        service = service_with_flight(days_ahead)

        if days_ahead < 2:
            with pytest.raises(PolicyViolationError):
                service.cancel_booking("301", "Erin Black")
            assert service.find_booking("301", "Erin Black").status == BookingStatus.CONFIRMED
        else:
            assert service.cancel_booking("301", "Erin Black").booking_status == BookingStatus.CANCELLED

    def test_clock_is_read_on_every_call(self):
        """The same booking becomes non-cancellable once the clock moves forward."""
        current = {"today": TODAY}
        store = make_store([("301", "Erin Black", TODAY + timedelta(days=2), BookingStatus.CONFIRMED)])
        service = FlightBookingService(store, clock=lambda: current["today"])

        current["today"] = TODAY + timedelta(days=1)

        with pytest.raises(PolicyViolationError):
            service.cancel_booking("301", "Erin Black")


class TestDemoSeed:
    """Test demo data seeding."""

    def test_seed_creates_five_confirmed_bookings_in_order(self):
        store = seed_demo_data(BookingStore(), rng=random.Random(7), today=lambda: TODAY)
        service = FlightBookingService(store, clock=lambda: TODAY)

        bookings = service.get_bookings()

        assert [b.booking_number for b in bookings] == ["101", "102", "103", "104", "105"]
        assert [b.name for b in bookings] == list(DEMO_CUSTOMER_NAMES)
        assert all(b.booking_status == BookingStatus.CONFIRMED for b in bookings)
        assert [b.date for b in bookings] == [TODAY + timedelta(days=2 * (i + 1)) for i in range(5)]

    def test_seed_is_repeatable_with_same_rng_seed(self):
        first = seed_demo_data(BookingStore(), rng=random.Random(42), today=lambda: TODAY)
        second = seed_demo_data(BookingStore(), rng=random.Random(42), today=lambda: TODAY)

        assert [(b.origin, b.destination, b.booking_class) for b in first.bookings] == \
            [(b.origin, b.destination, b.booking_class) for b in second.bookings]

    def test_customers_reference_their_bookings(self):
        store = seed_demo_data(BookingStore(), rng=random.Random(1), today=lambda: TODAY)

        for customer, booking in zip(store.customers, store.bookings):
            assert customer.bookings == [booking]
            assert booking.customer is customer

    def test_cancel_booking_101_on_seed_day_succeeds(self):
        store = seed_demo_data(BookingStore(), rng=random.Random(3), today=lambda: TODAY)
        service = FlightBookingService(store, clock=lambda: TODAY)

        details = service.cancel_booking("101", "张三")

        assert details.booking_status == BookingStatus.CANCELLED

    def test_cancel_booking_101_one_day_later_fails(self):
        store = seed_demo_data(BookingStore(), rng=random.Random(3), today=lambda: TODAY)
        service = FlightBookingService(store, clock=lambda: TODAY + timedelta(days=1))

        with pytest.raises(PolicyViolationError):
            service.cancel_booking("101", "张三")

    def test_duplicate_booking_number_rejected(self):
        store = seed_demo_data(BookingStore(), rng=random.Random(3), today=lambda: TODAY)

        with pytest.raises(ValueError):
            seed_demo_data(store, rng=random.Random(3), today=lambda: TODAY)

        assert len(store) == 5
        assert len(store.customers) == 5
        assert all(len(c.bookings) == 1 for c in store.customers)


def test_today_defaults_to_system_date():
    assert FlightBookingService(BookingStore()).today() == date.today()
