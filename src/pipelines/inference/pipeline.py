"""Conversation orchestrator for the flight booking assistant.

This module implements the ConversationOrchestrator that assembles the advisor
chain, the booking tools and the system prompt for every user message and
exposes streaming (``chat``) and non-streaming (``call``) entry points.
"""

import asyncio
import time
import weakref
from contextlib import aclosing
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from src.core.booking import FlightBookingService
from src.utils.logging import log_context, stream_with_log_context

from ..retrieval.retriever import KnowledgeRetriever
from .advisors import (
    AdvisedRequest,
    AdvisorChain,
    BlockingPolicy,
    LoggingAdvisor,
    MemoryAdvisor,
    RetrievalAdvisor,
)
from .config import AssistantSettings, create_settings_from_yaml
from .conversation.store import ConversationStore, ConversationTurn
from .exceptions import ConfigurationError, InferenceTimeoutError, SessionError
from .generation.generator import ToolCallingGenerator
from .generation.prompts import DEFAULT_SYSTEM_PROMPT
from .llm.client import LLMClient
from .logging import InferenceLoggerMixin, log_latency
from .models import AssistantReply, ReplyMetadata
from .tools.booking_tools import BookingTools
from .turn import Turn, TurnState


REQUEST_LOGGER_ORDER = 0
MEMORY_ORDER = 100
RETRIEVAL_ORDER = 200
RESPONSE_LOGGER_ORDER = 1000


class ConversationOrchestrator(InferenceLoggerMixin):
    """Runs assistant turns through the advisor chain.

    One turn at a time per session: a per-session ``asyncio.Lock`` is held for
    the whole life of a turn, including every streamed fragment, so a second
    message to the same session waits for the first to finish. Different
    sessions run concurrently.

    Attributes:
        settings: Assistant configuration
        booking_service: Domain engine behind the booking tools
        retriever: Optional knowledge retriever (no grounding when None)
        conversation_store: Session memory
        llm_client: Chat model client
        chain: Advisor chain built by ``initialize``
    """

    def __init__(
        self,
        settings: AssistantSettings,
        booking_service: FlightBookingService,
        retriever: Optional[KnowledgeRetriever] = None,
        conversation_store: Optional[ConversationStore] = None,
        llm_client: Optional[LLMClient] = None,
        clock: Optional[Callable[[], date]] = None
    ):
        self.settings = settings
        self.booking_service = booking_service
        self.retriever = retriever
        self.conversation_store = conversation_store or ConversationStore(
            max_sessions=settings.memory.max_sessions
        )
        self.llm_client = llm_client
        self._clock = clock or date.today

        self.booking_tools: Optional[BookingTools] = None
        self.generator: Optional[ToolCallingGenerator] = None
        self.blocking_policy: Optional[BlockingPolicy] = None
        self.chain: Optional[AdvisorChain] = None

        # A lock lives only while a turn holds or waits on it.
        self._session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._stats = {"turns_started": 0, "complete": 0, "failed": 0, "cancelled": 0}
        self._initialized = False

    @classmethod
    def from_config_file(
        cls,
        booking_service: FlightBookingService,
        retriever: Optional[KnowledgeRetriever] = None,
        config_path: Optional[str] = None,
        **kwargs: Any
    ) -> "ConversationOrchestrator":
        """Create an orchestrator from ``config/assistant.yaml`` and the environment.

        Raises:
            ConfigurationError: If configuration loading fails
        """
        settings = create_settings_from_yaml(config_path or "config/assistant.yaml")
        return cls(settings, booking_service, retriever=retriever, **kwargs)

    def initialize(self) -> None:
        """Build the LLM client, tools and advisor chain.

        Raises:
            ConfigurationError: If component initialization fails
        """
        if self._initialized:
            return

        try:
            if self.llm_client is None:
                llm_config = self.settings.llm.model_copy(
                    update={"api_key": self.settings.get_api_key()}
                )
                self.llm_client = LLMClient(llm_config)
            self.llm_client.initialize()

            self.booking_tools = BookingTools(self.booking_service)
            self.generator = ToolCallingGenerator(
                self.llm_client,
                self.booking_tools,
                max_tool_rounds=self.settings.advisor.max_tool_rounds
            )
            self.blocking_policy = BlockingPolicy(
                protect=self.settings.advisor.protect_from_blocking,
                max_workers=self.settings.advisor.blocking_pool_size
            )
            self.chain = AdvisorChain(
                self._build_advisors(),
                call_terminal=self.generator.call,
                stream_terminal=self.generator.stream
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize assistant: {str(e)}",
                error_code="PIPELINE_INIT_ERROR",
                details={"error": str(e)}
            ) from e

        self._initialized = True
        self.logger.info(f"Assistant initialized with advisors: {self.chain.names}")

    def _build_advisors(self) -> List:
        advisors = [
            LoggingAdvisor(order=REQUEST_LOGGER_ORDER, blocking_policy=self.blocking_policy),
            MemoryAdvisor(
                self.conversation_store,
                retrieve_size=self.settings.memory.retrieve_size,
                order=MEMORY_ORDER,
                blocking_policy=self.blocking_policy
            ),
            LoggingAdvisor(order=RESPONSE_LOGGER_ORDER, blocking_policy=self.blocking_policy),
        ]
        if self.retriever is not None and self.settings.advisor.retrieval_enabled:
            advisors.append(RetrievalAdvisor(
                self.retriever, order=RETRIEVAL_ORDER, blocking_policy=self.blocking_policy
            ))
        return advisors

    def shutdown(self) -> None:
        if self.blocking_policy is not None:
            self.blocking_policy.shutdown()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _ensure_ready(self, session_id: str, text: str) -> None:
        if not self._initialized:
            raise ConfigurationError(
                "Assistant not initialized. Call initialize() first.",
                error_code="PIPELINE_NOT_INITIALIZED"
            )
        if not session_id or not session_id.strip():
            raise SessionError("chatId must be a non-empty string")
        if not text or not text.strip():
            raise SessionError("message must be a non-empty string", session_id=session_id)

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    def _build_request(self, session_id: str, text: str, turn: Turn) -> AdvisedRequest:
        return AdvisedRequest(
            session_id=session_id,
            user_text=text,
            system_template=self.settings.system_prompt or DEFAULT_SYSTEM_PROMPT,
            system_params={"current_date": self._clock().isoformat()},
            tools=tuple(self.booking_tools.tools),
            context={"turn": turn},
        )

    async def chat(self, session_id: str, text: str) -> AsyncIterator[str]:
        """Stream the assistant's reply to ``text`` as text fragments.

        Fragments arrive in generation order. Memory is updated only after the
        stream completes; closing the iterator early cancels generation and
        leaves memory unchanged.

        Raises:
            ConfigurationError: If the assistant is not initialized or streaming is disabled
            SessionError: If the session id or message is empty
            LLMError: If the model fails
        """
        self._ensure_ready(session_id, text)
        if not self.settings.enable_streaming:
            raise ConfigurationError(
                "Streaming is disabled in configuration",
                error_code="STREAMING_DISABLED"
            )

        lock = self._session_lock(session_id)
        async with lock:
            turn = Turn(session_id)
            self._stats["turns_started"] += 1
            turn.transition(TurnState.CHAIN_RUNNING)
            request = self._build_request(session_id, text, turn)

            try:
                responses_in_context = stream_with_log_context(
                    self.chain.stream(request), session_id=session_id
                )
                async with aclosing(responses_in_context) as responses:
                    async for response in responses:
                        if response.text:
                            turn.mark_streaming()
                            yield response.text
            except (GeneratorExit, asyncio.CancelledError):
                self._finish(turn, TurnState.CANCELLED)
                raise
            except Exception:
                self._finish(turn, TurnState.FAILED)
                raise

            self._finish(turn, TurnState.COMPLETE)

    async def call(self, session_id: str, text: str) -> AssistantReply:
        """Run one turn and return the complete reply.

        Raises:
            ConfigurationError: If the assistant is not initialized
            SessionError: If the session id or message is empty
            InferenceTimeoutError: If the turn exceeds ``timeout_seconds``
            LLMError: If the model fails
        """
        self._ensure_ready(session_id, text)

        with log_context(session_id=session_id):
            lock = self._session_lock(session_id)
            async with lock:
                turn = Turn(session_id)
                self._stats["turns_started"] += 1
                turn.transition(TurnState.CHAIN_RUNNING)
                request = self._build_request(session_id, text, turn)

                try:
                    response = await asyncio.wait_for(
                        self.chain.call(request), timeout=self.settings.timeout_seconds
                    )
                except asyncio.TimeoutError as e:
                    self._finish(turn, TurnState.FAILED)
                    raise InferenceTimeoutError(
                        f"Assistant reply exceeded {self.settings.timeout_seconds}s",
                        timeout_seconds=self.settings.timeout_seconds,
                        session_id=session_id
                    ) from e
                except asyncio.CancelledError:
                    self._finish(turn, TurnState.CANCELLED)
                    raise
                except Exception:
                    self._finish(turn, TurnState.FAILED)
                    raise

                self._finish(turn, TurnState.COMPLETE)

            metadata = response.metadata
            return AssistantReply(
                session_id=session_id,
                message=text,
                content=response.text,
                state=turn.state.value,
                metadata=ReplyMetadata(
                    model_used=metadata.model,
                    tokens_input=metadata.prompt_tokens,
                    tokens_output=metadata.completion_tokens,
                    tokens_total=metadata.total_tokens,
                    latency_ms=turn.latency_ms,
                    tool_rounds=turn.tool_rounds,
                    passages_used=request.context.get("retrieved_passages", 0),
                ),
            )

    def _finish(self, turn: Turn, state: TurnState) -> None:
        if turn.state != state:
            turn.transition(state)
        self._stats[state.value] += 1

        if state == TurnState.COMPLETE:
            log_latency(
                self.logger,
                "assistant_turn",
                turn.latency_ms,
                {"session_id": turn.session_id, "tool_rounds": turn.tool_rounds}
            )
        else:
            self.logger.warning(
                f"Turn for session {turn.session_id} ended {state.value} "
                f"after {turn.latency_ms:.2f}ms",
                extra={"extra_fields": {
                    "session_id": turn.session_id,
                    "states": [s.value for s in turn.history],
                }}
            )

    def get_session_history(self, session_id: str) -> List[ConversationTurn]:
        """Stored turns for a session, oldest first."""
        return self.conversation_store.get(session_id)

    def get_pipeline_stats(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "configuration": {
                "enable_streaming": self.settings.enable_streaming,
                "timeout_seconds": self.settings.timeout_seconds,
                "llm_model": self.settings.llm.model_name,
                "llm_provider": self.settings.llm.provider,
                "retrieve_size": self.settings.memory.retrieve_size,
                "max_tool_rounds": self.settings.advisor.max_tool_rounds,
                "protect_from_blocking": self.settings.advisor.protect_from_blocking,
            },
            "advisors": self.chain.names if self.chain else [],
            "turns": dict(self._stats),
            "sessions": self.conversation_store.get_session_count(),
        }

    def health_check(self) -> Dict[str, Any]:
        """Report the status of each assistant component."""
        health = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {},
            "errors": []
        }

        if not self._initialized:
            health["status"] = "unhealthy"
            health["errors"].append("Assistant not initialized")
            return health

        components = [
            ("llm_client", self.llm_client),
            ("booking_tools", self.booking_tools),
            ("conversation_store", self.conversation_store),
            ("advisor_chain", self.chain),
        ]
        for component_name, component in components:
            if component is None:
                health["components"][component_name] = "not_initialized"
                health["errors"].append(f"{component_name} not initialized")
                health["status"] = "degraded"
            else:
                health["components"][component_name] = "healthy"

        if self.retriever is None:
            health["components"]["knowledge_retriever"] = "disabled"
        else:
            health["components"]["knowledge_retriever"] = "healthy"

        return health
