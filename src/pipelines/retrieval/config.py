"""Configuration for knowledge retrieval and ingestion."""

from typing import Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.config import read_yaml_section

from .exceptions import ConfigurationError


class RetrievalSettings(BaseSettings):
    """Environment-based configuration for the knowledge retriever."""

    model_config = SettingsConfigDict(
        env_prefix="RETRIEVAL_",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Search Settings
    top_k: int = Field(default=4, ge=1, le=50)
    similarity_threshold: float = Field(default=0.0, ge=0.0, le=1.0)

    # Vector store backend: "memory" or "pinecone"
    vector_store: str = Field(default="memory")

    # Knowledge base
    knowledge_path: str = Field(default="data/rag/terms-of-service.txt")
    chunk_size: int = Field(default=800, ge=100, le=8000)
    chunk_overlap: int = Field(default=100, ge=0, le=2000)
    smoke_query: str = Field(default="Cancelling Bookings")

    # Embedding Settings
    embedding_model: str = Field(default="text-embedding-3-small")
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RETRIEVAL_OPENAI_API_KEY", "OPENAI_API_KEY")
    )

    # Pinecone Settings
    pinecone_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RETRIEVAL_PINECONE_API_KEY", "PINECONE_API_KEY")
    )
    pinecone_index_name: str = Field(default="flight-booking-terms")
    pinecone_namespace: str = Field(default="terms-of-service")

    @field_validator("vector_store")
    @classmethod
    def validate_vector_store(cls, v: str) -> str:
        """Validate vector store backend is supported."""
        allowed = ["memory", "pinecone"]
        if v.lower() not in allowed:
            raise ValueError(f"vector_store must be one of {allowed}")
        return v.lower()

    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int, info) -> int:
        chunk_size = info.data.get("chunk_size")
        if chunk_size is not None and v >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return v


def load_retrieval_settings(config_path: str = "config/assistant.yaml") -> RetrievalSettings:
    """Build settings from the ``retrieval`` section of the assistant YAML.

    Missing files fall back to environment variables and defaults.

    Raises:
        ConfigurationError: If the YAML cannot be parsed or values are invalid
    """
    try:
        section = read_yaml_section(config_path, "retrieval")
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError(f"Cannot load retrieval configuration: {e}") from e

    try:
        return RetrievalSettings(**section)
    except ValueError as e:
        raise ConfigurationError(f"Retrieval configuration validation failed: {e}") from e
