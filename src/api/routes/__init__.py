"""API route handlers."""

from .bookings import router as bookings_router
from .chat import router as chat_router
from .sessions import router as sessions_router
from .health import router as health_router

__all__ = ["bookings_router", "chat_router", "sessions_router", "health_router"]
