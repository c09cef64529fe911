"""In-memory conversation memory, partitioned by session id.

Each session owns a ``threading.Lock``; the registry lock is held only while
a session is looked up or lazily created, so distinct sessions never contend
on the same lock. Appends may happen from worker threads (advisors running
under the blocking policy) as well as from the event loop.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from ..exceptions import SessionError
from ..logging import get_inference_logger


logger = get_inference_logger(__name__)


class TurnRole(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ConversationTurn:
    """A single message in a conversation."""

    role: TurnRole
    content: str
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    def to_langchain(self) -> BaseMessage:
        if self.role == TurnRole.USER:
            return HumanMessage(content=self.content)
        if self.role == TurnRole.ASSISTANT:
            return AIMessage(content=self.content)
        if self.role == TurnRole.SYSTEM:
            return SystemMessage(content=self.content)
        return ToolMessage(content=self.content, tool_call_id="history")


class _SessionLog:
    __slots__ = ("lock", "turns")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.turns: List[ConversationTurn] = []


class ConversationStore:
    """Per-session ordered conversation memory.

    Sessions are created on first use and kept for the lifetime of the
    process. When ``max_sessions`` is set, the least recently used session is
    dropped once the bound is exceeded.

    Attributes:
        max_sessions: Optional bound on the number of retained sessions
    """

    def __init__(self, max_sessions: Optional[int] = None):
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be positive when set")
        self.max_sessions = max_sessions
        self._registry_lock = threading.Lock()
        self._sessions: "OrderedDict[str, _SessionLog]" = OrderedDict()

    def _session(self, session_id: str, create: bool = True) -> Optional[_SessionLog]:
        if not session_id:
            raise SessionError("Session id must be a non-empty string", session_id=session_id)

        with self._registry_lock:
            log = self._sessions.get(session_id)
            if log is not None:
                self._sessions.move_to_end(session_id)
                return log
            if not create:
                return None

            log = _SessionLog()
            self._sessions[session_id] = log

            if self.max_sessions is not None:
                while len(self._sessions) > self.max_sessions:
                    evicted, _ = self._sessions.popitem(last=False)
                    logger.info(
                        f"Evicted least recently used session {evicted}",
                        extra={"extra_fields": {"session_id": evicted}}
                    )
            return log

    def get(self, session_id: str, limit: Optional[int] = None) -> List[ConversationTurn]:
        """Return the most recent ``limit`` turns (all when ``None``), oldest first."""
        log = self._session(session_id, create=False)
        if log is None:
            return []

        with log.lock:
            turns = list(log.turns)

        if limit is not None:
            if limit <= 0:
                return []
            turns = turns[-limit:]
        return turns

    def append(self, session_id: str, turn: ConversationTurn) -> None:
        log = self._session(session_id)
        with log.lock:
            log.turns.append(turn)

    def append_exchange(self, session_id: str, user_text: str, assistant_text: str) -> None:
        """Append a user turn and its assistant reply as one atomic step.

        No other append to the same session can interleave between the two.
        """
        log = self._session(session_id)
        user_turn = ConversationTurn(role=TurnRole.USER, content=user_text)
        assistant_turn = ConversationTurn(role=TurnRole.ASSISTANT, content=assistant_text)

        with log.lock:
            log.turns.append(user_turn)
            log.turns.append(assistant_turn)

        logger.debug(
            f"Stored exchange for session {session_id}",
            extra={"extra_fields": {"session_id": session_id}}
        )

    def get_langchain_messages(
        self, session_id: str, limit: Optional[int] = None
    ) -> List[BaseMessage]:
        """Convert the most recent turns to LangChain messages in chronological order."""
        return [turn.to_langchain() for turn in self.get(session_id, limit)]

    def clear_session(self, session_id: str) -> bool:
        """Forget a session. Returns False when it did not exist."""
        with self._registry_lock:
            return self._sessions.pop(session_id, None) is not None

    def get_session_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._sessions.keys())

    def get_session_count(self) -> int:
        with self._registry_lock:
            return len(self._sessions)
