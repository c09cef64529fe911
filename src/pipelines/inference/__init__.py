"""Assistant inference pipeline.

Runs each customer message through the advisor chain (request logging,
session memory, policy retrieval, response logging) around a chat model that
can call booking tools, and streams the reply back.

Components:
- ConversationOrchestrator: per-session turn orchestration
- AdvisorChain and advisors: interceptors around every model call
- ToolCallingGenerator: model/tool round-trip loop
- BookingTools: tool declarations and dispatch to the booking service
- ConversationStore: in-memory session memory
- LLMClient: chat model client with retry logic
"""

from .exceptions import (
    InferenceError,
    ConfigurationError,
    LLMError,
    SessionError,
    TurnStateError,
    InferenceTimeoutError,
)
from .config import AssistantSettings, create_settings_from_yaml
from .models import AssistantReply, ReplyMetadata
from .pipeline import ConversationOrchestrator
from .turn import Turn, TurnState

__all__ = [
    # Exceptions
    "InferenceError",
    "ConfigurationError",
    "LLMError",
    "SessionError",
    "TurnStateError",
    "InferenceTimeoutError",
    # Configuration
    "AssistantSettings",
    "create_settings_from_yaml",
    # Orchestration
    "AssistantReply",
    "ReplyMetadata",
    "ConversationOrchestrator",
    "Turn",
    "TurnState",
]
