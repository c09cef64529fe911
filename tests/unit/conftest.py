"""Shared fixtures for unit tests."""

from datetime import date, timedelta

import pytest

from src.core.booking import BookingStatus, BookingStore, FlightBookingService

from tests.unit.helpers import TODAY, make_store


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def booking_store() -> BookingStore:
    return make_store([
        ("201", "Alice Smith", TODAY + timedelta(days=1), BookingStatus.CONFIRMED),
        ("202", "Bob Jones", TODAY + timedelta(days=2), BookingStatus.CONFIRMED),
        ("203", "Carol White", TODAY + timedelta(days=10), BookingStatus.CONFIRMED),
        ("204", "Dan Brown", TODAY + timedelta(days=10), BookingStatus.CANCELLED),
        ("205", "Alice Smith", TODAY, BookingStatus.CONFIRMED),
    ])


@pytest.fixture
def booking_service(booking_store) -> FlightBookingService:
    return FlightBookingService(booking_store, clock=lambda: TODAY)
