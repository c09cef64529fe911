"""Process-wide settings shared by every package (environment, logging)."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging settings, read from ``LOG_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO", description="Root log level")
    format: str = Field(
        default="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        description="Plain-text log format"
    )
    json_console: bool = Field(
        default=False, description="Emit console records as JSON lines"
    )
    file_path: Optional[str] = Field(default=None, description="Rotating log file path")
    max_file_size: int = Field(default=5 * 1024 * 1024, description="Bytes per log file")
    backup_count: int = Field(default=3, description="Rotated files to keep")
    quiet_loggers: List[str] = Field(
        default=[
            "httpx", "httpcore", "openai", "pinecone",
            "langchain_core", "langchain_openai", "langchain_pinecone", "uvicorn.access",
        ],
        description="Third-party loggers capped at WARNING"
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    service_name: str = Field(default="flight-booking-assistant")
    environment: str = Field(default="development")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def read_yaml_section(config_path: str, section: str) -> Dict[str, Any]:
    """Return one top-level section of a YAML config file.

    A missing file or section yields ``{}``. Parse and read errors propagate
    (``yaml.YAMLError`` / ``OSError``) so each package can wrap them in its
    own configuration error.
    """
    path = Path(config_path)
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}
    if not isinstance(document, dict):
        raise yaml.YAMLError(f"Top level of {config_path} must be a mapping")
    return document.get(section) or {}
