"""In-memory booking store and demo data seeding."""

import random
import threading
from datetime import date, timedelta
from typing import Callable, List, Optional, Sequence

from .models import Booking, BookingClass, BookingStatus, Customer


DEMO_CUSTOMER_NAMES = ("张三", "李四", "王五", "赵六", "伍小宝")

DEMO_CITIES = (
    "北京", "上海", "广州", "深圳", "杭州", "南京", "青岛",
    "成都", "武汉", "西安", "重庆", "大连", "天津",
)


class BookingStore:
    """Owns the customer and booking collections.

    A single re-entrant lock guards the whole collection; callers that
    check state and then mutate it hold ``store.lock`` across both steps.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._customers: List[Customer] = []
        self._bookings: List[Booking] = []

    @property
    def customers(self) -> List[Customer]:
        with self.lock:
            return list(self._customers)

    @property
    def bookings(self) -> List[Booking]:
        """Bookings in creation order."""
        with self.lock:
            return list(self._bookings)

    def add_customer(self, customer: Customer) -> Customer:
        with self.lock:
            self._customers.append(customer)
        return customer

    def add_booking(self, booking: Booking) -> Booking:
        """Add ``booking`` and register its customer if the store lacks it.

        Raises:
            ValueError: If the booking number is taken; nothing is added
        """
        with self.lock:
            if any(b.booking_number == booking.booking_number for b in self._bookings):
                raise ValueError(f"Duplicate booking number: {booking.booking_number}")
            if not any(c is booking.customer for c in self._customers):
                self._customers.append(booking.customer)
            self._bookings.append(booking)
            booking.customer.bookings.append(booking)
        return booking

    def __len__(self) -> int:
        with self.lock:
            return len(self._bookings)


def seed_demo_data(
    store: BookingStore,
    rng: Optional[random.Random] = None,
    today: Optional[Callable[[], date]] = None,
    names: Sequence[str] = DEMO_CUSTOMER_NAMES,
    cities: Sequence[str] = DEMO_CITIES,
) -> BookingStore:
    """Populate the store with one confirmed booking per demo customer.

    Booking ``i`` (zero based) gets number ``10{i+1}`` and departs
    ``2 * (i + 1)`` days from today. Origin, destination and fare class are
    drawn from ``rng``; pass a seeded ``random.Random`` for repeatable data.
    """
    rng = rng or random.Random()
    today_value = (today or date.today)()
    classes = list(BookingClass)

    for i, name in enumerate(names):
        origin = rng.choice(cities)
        destination = rng.choice(cities)
        booking_class = rng.choice(classes)

        store.add_booking(Booking(
            booking_number=f"10{i + 1}",
            date=today_value + timedelta(days=2 * (i + 1)),
            customer=Customer(name=name),
            status=BookingStatus.CONFIRMED,
            origin=origin,
            destination=destination,
            booking_class=booking_class,
        ))

    return store
