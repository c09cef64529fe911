"""Request and response types passed along the advisor chain."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Tuple

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.tools import BaseTool

from ...retrieval.models import KnowledgePassage
from ..generation.prompts import render_system_prompt


@dataclass(frozen=True)
class AdvisedRequest:
    """Everything needed to invoke the model for one user message."""

    session_id: str
    user_text: str
    system_template: str = ""
    system_params: Mapping[str, Any] = field(default_factory=dict)
    history: Tuple[BaseMessage, ...] = ()
    passages: Tuple[KnowledgePassage, ...] = ()
    tools: Tuple[BaseTool, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict, compare=False)

    def with_updates(self, **changes: Any) -> "AdvisedRequest":
        return replace(self, **changes)

    def system_prompt(self) -> str:
        return render_system_prompt(self.system_template, self.system_params, self.passages)

    def to_messages(self) -> List[BaseMessage]:
        """System prompt, then history, then the user message."""
        messages: List[BaseMessage] = [SystemMessage(content=self.system_prompt())]
        messages.extend(m for m in self.history if not isinstance(m, SystemMessage))
        messages.append(HumanMessage(content=self.user_text))
        return messages


@dataclass(frozen=True)
class ResponseMetadata:
    """Model name and token usage for a response."""

    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_message(cls, message: BaseMessage) -> "ResponseMetadata":
        usage = getattr(message, "usage_metadata", None) or {}
        response_metadata = getattr(message, "response_metadata", None) or {}
        prompt_tokens = usage.get("input_tokens", 0) or 0
        completion_tokens = usage.get("output_tokens", 0) or 0
        return cls(
            model=response_metadata.get("model_name", "") or "",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=usage.get("total_tokens", prompt_tokens + completion_tokens) or 0,
        )

    def merge(self, other: "ResponseMetadata") -> "ResponseMetadata":
        """Sum token counts; the latest non-empty model name wins."""
        return ResponseMetadata(
            model=other.model or self.model,
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @property
    def is_empty(self) -> bool:
        return not self.model and not self.total_tokens


@dataclass(frozen=True)
class AdvisedResponse:
    """A full reply (call) or one fragment of a reply (stream)."""

    text: str = ""
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    context: Dict[str, Any] = field(default_factory=dict, compare=False)
