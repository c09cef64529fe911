"""Dependency injection for FastAPI.

Components are created by the application lifespan and kept on ``app.state``;
these getters hand them to route handlers.
"""

from typing import Optional

from fastapi import HTTPException, Request

from src.core.booking import FlightBookingService
from src.pipelines.inference.conversation.store import ConversationStore
from src.pipelines.inference.pipeline import ConversationOrchestrator


def get_booking_service(request: Request) -> FlightBookingService:
    """Get the booking service dependency."""
    return request.app.state.booking_service


def get_conversation_store(request: Request) -> ConversationStore:
    """Get the conversation store dependency."""
    return request.app.state.conversation_store


def get_optional_orchestrator(request: Request) -> Optional[ConversationOrchestrator]:
    """Get the orchestrator, or None when the API started without inference."""
    return getattr(request.app.state, "orchestrator", None)


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    """Get the orchestrator dependency.

    Raises:
        HTTPException: 503 if the assistant is not available
    """
    orchestrator = get_optional_orchestrator(request)
    if orchestrator is None or not orchestrator.is_initialized:
        raise HTTPException(
            status_code=503,
            detail={"error_code": "PIPELINE_UNAVAILABLE", "message": "Assistant is not available"}
        )
    return orchestrator
