"""Retrieval augmentation advisor."""

from typing import Optional

from ...retrieval.exceptions import RetrievalUnavailableError
from ...retrieval.retriever import KnowledgeRetriever
from .base import Advisor, BlockingPolicy
from .models import AdvisedRequest


class RetrievalAdvisor(Advisor):
    """Attaches policy passages relevant to the user message.

    An unavailable vector store degrades to answering without grounding.
    """

    order = 200

    def __init__(
        self,
        retriever: KnowledgeRetriever,
        order: Optional[int] = None,
        blocking_policy: Optional[BlockingPolicy] = None
    ):
        super().__init__(order=order, blocking_policy=blocking_policy)
        self.retriever = retriever

    def before(self, request: AdvisedRequest) -> AdvisedRequest:
        try:
            passages = self.retriever.search(request.user_text)
        except RetrievalUnavailableError as e:
            self.logger.warning(
                f"Knowledge retrieval unavailable, answering without context: {e.message}",
                extra={"extra_fields": {"session_id": request.session_id}}
            )
            passages = []

        request.context["retrieved_passages"] = len(passages)
        return request.with_updates(passages=tuple(passages))
