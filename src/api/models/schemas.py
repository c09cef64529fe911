"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request model for chat endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., alias="chatId", min_length=1, description="Caller-supplied session id")
    message: str = Field(..., min_length=1, max_length=2000, description="User message")


class ChatResponse(BaseModel):
    """Response model for non-streaming chat."""

    chat_id: str = Field(..., description="Session identifier")
    content: str = Field(..., description="Assistant response")
    state: str = Field(..., description="Terminal turn state")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Response metadata")


class MessageResponse(BaseModel):
    """Single stored turn in a session."""

    role: str = Field(..., description="Message role: user or assistant")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(..., description="Message timestamp")


class SessionMessagesResponse(BaseModel):
    """Stored turns of one session, oldest first."""

    chat_id: str
    messages: List[MessageResponse]
    total: int


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(..., description="Overall health status: healthy, degraded or unhealthy")
    services: Dict[str, str] = Field(default_factory=dict, description="Individual service statuses")
    response_time_ms: Optional[float] = Field(None, description="Response time in milliseconds")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
