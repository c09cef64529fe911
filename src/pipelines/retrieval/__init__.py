"""Knowledge retrieval.

Searches the airline's policy documents (terms of service) so the assistant
can ground answers about changes, cancellations and fees.
"""

from .config import RetrievalSettings, load_retrieval_settings
from .exceptions import (
    RetrievalError,
    RetrievalUnavailableError,
    IngestionError,
    ConfigurationError,
)
from .ingestion import KnowledgeIngestor, build_embeddings, build_vector_store
from .models import KnowledgePassage
from .retriever import KnowledgeRetriever

__all__ = [
    "RetrievalSettings",
    "load_retrieval_settings",
    "RetrievalError",
    "RetrievalUnavailableError",
    "IngestionError",
    "ConfigurationError",
    "KnowledgeIngestor",
    "build_embeddings",
    "build_vector_store",
    "KnowledgePassage",
    "KnowledgeRetriever",
]
