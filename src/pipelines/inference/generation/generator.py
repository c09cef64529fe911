"""Tool-calling response generator.

Terminal step of the advisor chain: sends the assembled request to the chat
model, executes any tool calls it makes and feeds the results back until the
model answers in plain text.
"""

from contextlib import aclosing
from typing import Any, AsyncIterator, List, Optional

from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.messages.utils import message_chunk_to_message

from ..advisors.models import AdvisedRequest, AdvisedResponse, ResponseMetadata
from ..llm.client import LLMClient
from ..logging import InferenceLoggerMixin
from ..tools.booking_tools import BookingTools
from ..turn import Turn, TurnState


def message_text(message: BaseMessage) -> str:
    """Text of a message whose content may be a string or a list of blocks."""
    content: Any = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class ToolCallingGenerator(InferenceLoggerMixin):
    """Runs the model/tool loop for one request.

    Each round streams (or invokes) the model with the bound tools. If the
    model asks for tools, every call is dispatched through ``BookingTools``
    and the resulting ``ToolMessage`` objects are appended before the next
    round. At most ``max_tool_rounds`` rounds of tool calls are executed.

    The turn in ``request.context["turn"]``, when present, is moved to
    TOOL_CALLED for each round of tool calls.

    Attributes:
        llm_client: Chat model client
        booking_tools: Tool bridge used for dispatch
        max_tool_rounds: Upper bound on tool round-trips per request
    """

    def __init__(
        self,
        llm_client: LLMClient,
        booking_tools: BookingTools,
        max_tool_rounds: int = 5
    ):
        self.llm_client = llm_client
        self.booking_tools = booking_tools
        self.max_tool_rounds = max_tool_rounds

    async def stream(self, request: AdvisedRequest) -> AsyncIterator[AdvisedResponse]:
        """Yield text fragments, then one metadata-only response."""
        messages = request.to_messages()
        turn: Optional[Turn] = request.context.get("turn")
        metadata = ResponseMetadata()

        for round_index in range(self.max_tool_rounds + 1):
            gathered: Optional[AIMessageChunk] = None

            async with aclosing(self.llm_client.astream(messages, request.tools)) as chunks:
                async for chunk in chunks:
                    gathered = chunk if gathered is None else gathered + chunk
                    text = message_text(chunk)
                    if text:
                        yield AdvisedResponse(text=text)

            if gathered is None:
                break

            metadata = metadata.merge(ResponseMetadata.from_message(gathered))
            if not self._run_tools(gathered, messages, turn, round_index):
                break

        yield AdvisedResponse(metadata=metadata)

    async def call(self, request: AdvisedRequest) -> AdvisedResponse:
        """Non-streaming variant returning the final text and summed usage."""
        messages = request.to_messages()
        turn: Optional[Turn] = request.context.get("turn")
        metadata = ResponseMetadata()
        texts: List[str] = []

        for round_index in range(self.max_tool_rounds + 1):
            reply = await self.llm_client.ainvoke(messages, request.tools)
            metadata = metadata.merge(ResponseMetadata.from_message(reply))
            text = message_text(reply)
            if text:
                texts.append(text)
            if not self._run_tools(reply, messages, turn, round_index):
                break

        return AdvisedResponse(text="".join(texts), metadata=metadata)

    def _run_tools(
        self,
        reply: AIMessage,
        messages: List[BaseMessage],
        turn: Optional[Turn],
        round_index: int
    ) -> bool:
        """Dispatch the reply's tool calls. Returns True when another round is needed."""
        if not reply.tool_calls:
            return False

        if round_index >= self.max_tool_rounds:
            self.logger.warning(
                f"Stopping after {self.max_tool_rounds} tool rounds; "
                f"ignoring {len(reply.tool_calls)} further tool call(s)"
            )
            return False

        if turn is not None:
            turn.transition(TurnState.TOOL_CALLED)

        if isinstance(reply, AIMessageChunk):
            reply = message_chunk_to_message(reply)
        messages.append(reply)

        for tool_call in reply.tool_calls:
            self.logger.info(
                f"Dispatching tool {tool_call['name']}",
                extra={"extra_fields": {"tool": tool_call["name"], "round": round_index + 1}}
            )
            messages.append(self.booking_tools.dispatch(tool_call))
        return True
