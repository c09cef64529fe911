"""Conversation memory advisor."""

from typing import Optional

from ..conversation.store import ConversationStore
from .base import Advisor, BlockingPolicy
from .models import AdvisedRequest, AdvisedResponse


class MemoryAdvisor(Advisor):
    """Injects recent session turns and records completed exchanges.

    Before the call, the last ``retrieve_size`` turns of the session are added
    to the request as LangChain messages. After a completed response, the user
    message and the full assistant reply are appended together. Failed or
    cancelled turns leave memory untouched.
    """

    order = 100

    def __init__(
        self,
        store: ConversationStore,
        retrieve_size: int = 100,
        order: Optional[int] = None,
        blocking_policy: Optional[BlockingPolicy] = None
    ):
        super().__init__(order=order, blocking_policy=blocking_policy)
        if retrieve_size < 1:
            raise ValueError("retrieve_size must be at least 1")
        self.store = store
        self.retrieve_size = retrieve_size

    def before(self, request: AdvisedRequest) -> AdvisedRequest:
        history = self.store.get_langchain_messages(request.session_id, self.retrieve_size)
        return request.with_updates(history=tuple(history))

    def observe(self, request: AdvisedRequest, response: AdvisedResponse) -> None:
        self.store.append_exchange(request.session_id, request.user_text, response.text)
