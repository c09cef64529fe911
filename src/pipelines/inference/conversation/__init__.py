"""Session memory for the assistant."""

from .store import ConversationStore, ConversationTurn, TurnRole

__all__ = ["ConversationStore", "ConversationTurn", "TurnRole"]
