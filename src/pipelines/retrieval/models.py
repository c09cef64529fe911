"""Pydantic models for retrieved knowledge passages."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class KnowledgePassage(BaseModel):
    """A passage of policy text with its relevance score."""

    content: str = Field(..., description="Passage text")
    score: float = Field(..., description="Relevance score, higher is closer")
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Source metadata (source path, chunk index)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "content": "Bookings may be cancelled up to 48 hours before departure...",
                "score": 0.82,
                "metadata": {"source": "data/rag/terms-of-service.txt", "chunk_index": 2},
            }
        }
    }
