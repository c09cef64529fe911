"""API configuration using Pydantic Settings."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """Configuration for the FastAPI backend."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        extra="ignore"
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8009
    debug: bool = False

    # CORS settings
    cors_origins: List[str] = ["*"]

    # Assistant configuration file (YAML)
    config_path: str = "config/assistant.yaml"

    # Seed for the demo booking generator (random when unset)
    demo_seed: Optional[int] = None

    # Ingest the knowledge base and enable grounding at startup
    enable_retrieval: bool = True


# Global settings instance
settings = APISettings()
