"""API data models."""

from .schemas import (
    ChatRequest,
    ChatResponse,
    MessageResponse,
    SessionMessagesResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "MessageResponse",
    "SessionMessagesResponse",
    "HealthResponse",
    "ErrorResponse",
]
