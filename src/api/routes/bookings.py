"""Booking listing endpoint."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from src.core.booking import FlightBookingService

from ..dependencies import get_booking_service

router = APIRouter(tags=["bookings"])


@router.get("/bookings")
async def list_bookings(
    booking_service: FlightBookingService = Depends(get_booking_service)
) -> List[Dict[str, Any]]:
    """List every booking in creation order.

    Records use the camelCase field names the booking tools use:
    ``bookingNumber``, ``name``, ``date``, ``bookingStatus``, ``from``,
    ``to`` and ``bookingClass``.
    """
    return [details.to_payload() for details in booking_service.get_bookings()]
