"""Booking domain models."""

from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    """Lifecycle status of a booking. CANCELLED is terminal."""

    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BookingClass(str, Enum):
    """Fare class of a booking."""

    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"


@dataclass(eq=False)
class Customer:
    """A customer and back-references to the bookings they own."""

    name: str
    bookings: List["Booking"] = field(default_factory=list)


@dataclass(eq=False)
class Booking:
    """A single flight booking.

    Instances are mutated in place by the booking service, so equality is
    identity-based.
    """

    booking_number: str
    date: dt.date
    customer: Customer
    status: BookingStatus
    origin: str
    destination: str
    booking_class: BookingClass

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED


class BookingDetails(BaseModel):
    """Read-only projection of a booking.

    Serialised with camelCase aliases for the HTTP listing and the tool results.
    Fields are optional so a degraded lookup can echo just the identifiers.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    booking_number: str = Field(..., alias="bookingNumber", description="Booking number")
    name: str = Field(..., description="Customer name")
    date: Optional[dt.date] = Field(None, description="Flight date")
    booking_status: Optional[BookingStatus] = Field(
        None, alias="bookingStatus", description="Booking status"
    )
    origin: Optional[str] = Field(None, alias="from", description="Departure city")
    destination: Optional[str] = Field(None, alias="to", description="Arrival city")
    booking_class: Optional[str] = Field(
        None, alias="bookingClass", description="Fare class as text"
    )

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingDetails":
        """Project a booking without leaking the customer object."""
        return cls(
            booking_number=booking.booking_number,
            name=booking.customer.name,
            date=booking.date,
            booking_status=booking.status,
            origin=booking.origin,
            destination=booking.destination,
            booking_class=booking.booking_class.value,
        )

    def to_payload(self) -> dict:
        """Serialise for the model, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
