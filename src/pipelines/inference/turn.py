"""Per-turn state machine for a conversation exchange."""

import time
from enum import Enum
from typing import Dict, FrozenSet, List

from .exceptions import TurnStateError


class TurnState(str, Enum):
    """Lifecycle of one user message through the assistant."""

    RECEIVED = "received"
    CHAIN_RUNNING = "chain_running"
    TOOL_CALLED = "tool_called"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: FrozenSet[TurnState] = frozenset(
    {TurnState.COMPLETE, TurnState.FAILED, TurnState.CANCELLED}
)

_ABNORMAL = {TurnState.FAILED, TurnState.CANCELLED}

# A model may emit some text before asking for a tool, so STREAMING can
# return to TOOL_CALLED within one turn.
ALLOWED_TRANSITIONS: Dict[TurnState, FrozenSet[TurnState]] = {
    TurnState.RECEIVED: frozenset({TurnState.CHAIN_RUNNING, *_ABNORMAL}),
    TurnState.CHAIN_RUNNING: frozenset(
        {TurnState.TOOL_CALLED, TurnState.STREAMING, TurnState.COMPLETE, *_ABNORMAL}
    ),
    TurnState.TOOL_CALLED: frozenset(
        {TurnState.TOOL_CALLED, TurnState.STREAMING, TurnState.COMPLETE, *_ABNORMAL}
    ),
    TurnState.STREAMING: frozenset(
        {TurnState.TOOL_CALLED, TurnState.COMPLETE, *_ABNORMAL}
    ),
    TurnState.COMPLETE: frozenset(),
    TurnState.FAILED: frozenset(),
    TurnState.CANCELLED: frozenset(),
}


class Turn:
    """Tracks the state of a single exchange.

    Each turn reaches exactly one terminal state; any transition out of a
    terminal state, or one not listed in ``ALLOWED_TRANSITIONS``, raises
    ``TurnStateError``.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.state = TurnState.RECEIVED
        self.history: List[TurnState] = [TurnState.RECEIVED]
        self.tool_rounds = 0
        self.started_at = time.time()
        self.finished_at = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def latency_ms(self) -> float:
        end = self.finished_at or time.time()
        return (end - self.started_at) * 1000

    def transition(self, target: TurnState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise TurnStateError(self.state.value, target.value)
        self.state = target
        self.history.append(target)
        if target == TurnState.TOOL_CALLED:
            self.tool_rounds += 1
        if target in TERMINAL_STATES:
            self.finished_at = time.time()

    def mark_streaming(self) -> None:
        """Enter STREAMING unless already there."""
        if self.state != TurnState.STREAMING:
            self.transition(TurnState.STREAMING)
