"""Custom exceptions for knowledge retrieval."""

from typing import List, Optional

from src.utils.exceptions import ServiceError


class RetrievalError(ServiceError):
    """Base exception for retrieval errors."""

    default_code = "RETRIEVAL_ERROR"


class RetrievalUnavailableError(RetrievalError):
    """Raised when the vector store cannot answer a search.

    The retrieval advisor recovers from it by answering without grounding.
    """

    default_code = "RETRIEVAL_UNAVAILABLE"

    def __init__(self, message: str, query: Optional[str] = None, service: Optional[str] = None):
        self.query = query
        self.service = service
        super().__init__(message, details={"query": query, "service": service})


class IngestionError(RetrievalError):
    """Raised when the knowledge base cannot be loaded into the vector store."""

    default_code = "INGESTION_ERROR"

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(message, details={"source": source})


class ConfigurationError(RetrievalError):
    """Raised when retrieval configuration is invalid or missing."""

    default_code = "RETRIEVAL_CONFIG_ERROR"

    def __init__(self, message: str, missing_keys: Optional[List[str]] = None):
        self.missing_keys = missing_keys or []
        super().__init__(message, details={"missing_keys": self.missing_keys})
