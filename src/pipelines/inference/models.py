"""Pydantic response models for the assistant."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ReplyMetadata(BaseModel):
    """Metadata about one assistant turn."""

    model_used: str = ""
    tokens_input: int = 0
    tokens_output: int = 0
    tokens_total: int = 0
    latency_ms: float = 0.0
    tool_rounds: int = 0
    passages_used: int = 0


class AssistantReply(BaseModel):
    """Complete (non-streaming) assistant reply."""

    session_id: str
    message: str
    content: str
    state: str
    metadata: ReplyMetadata = Field(default_factory=ReplyMetadata)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
