"""Knowledge retriever over a LangChain vector store."""

import time
from typing import List, Optional

from langchain_core.vectorstores import VectorStore

from .config import RetrievalSettings
from .exceptions import RetrievalUnavailableError
from .logging import RetrievalLoggerMixin
from .models import KnowledgePassage


class KnowledgeRetriever(RetrievalLoggerMixin):
    """
    Finds policy passages relevant to a user message.

    Results come back in descending relevance order. Passages scoring below
    ``similarity_threshold`` are dropped and the list is never padded, so a
    search may return fewer than ``top_k`` passages or none at all.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        top_k: int = 4,
        similarity_threshold: float = 0.0
    ):
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self.vector_store = vector_store
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    @classmethod
    def from_settings(
        cls, vector_store: VectorStore, settings: RetrievalSettings
    ) -> "KnowledgeRetriever":
        return cls(
            vector_store,
            top_k=settings.top_k,
            similarity_threshold=settings.similarity_threshold
        )

    def search(self, query: str, top_k: Optional[int] = None) -> List[KnowledgePassage]:
        """
        Search the knowledge base.

        Args:
            query: Free-text query (the user's message)
            top_k: Override for the number of nearest neighbours to fetch

        Returns:
            Passages at or above the threshold, best first

        Raises:
            RetrievalUnavailableError: If the vector store search fails
        """
        if not query or not query.strip():
            return []

        k = top_k or self.top_k
        start_time = time.time()

        try:
            results = self.vector_store.similarity_search_with_score(query, k=k)
        except Exception as e:
            self.log_operation_error(
                "knowledge_search", e, (time.time() - start_time) * 1000, top_k=k
            )
            raise RetrievalUnavailableError(
                f"Knowledge search failed: {e}",
                query=query,
                service=type(self.vector_store).__name__
            ) from e

        passages = [
            KnowledgePassage(content=doc.page_content, score=score, metadata=dict(doc.metadata))
            for doc, score in results
            if score >= self.similarity_threshold
        ]
        passages.sort(key=lambda p: p.score, reverse=True)

        self.log_operation_success(
            "knowledge_search",
            (time.time() - start_time) * 1000,
            top_k=k,
            results_count=len(passages),
            filtered_count=len(results) - len(passages),
            similarity_threshold=self.similarity_threshold
        )
        return passages[:k]
