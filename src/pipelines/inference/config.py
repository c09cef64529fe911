"""Configuration for the assistant inference pipeline.

Pydantic settings classes for the chat model, session memory and the advisor
chain, loadable from environment variables and ``config/assistant.yaml``.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.config import read_yaml_section

from .exceptions import ConfigurationError


class LLMConfig(BaseSettings):
    """Configuration for the chat model client.

    Attributes:
        provider: LLM provider name (only "openai" is supported)
        model_name: Model identifier (e.g., "gpt-4o-mini")
        temperature: Sampling temperature
        max_tokens: Maximum tokens in the response
        api_key: API key for the provider
        base_url: Optional OpenAI-compatible endpoint
        max_retries: Retry attempts for transient failures
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_LLM_",
        populate_by_name=True,
        extra="ignore"
    )

    provider: str = Field(default="openai", description="LLM provider")
    model_name: str = Field(default="gpt-4o-mini", description="Model name")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=1024, gt=0, description="Maximum response tokens")
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ASSISTANT_LLM_API_KEY", "OPENAI_API_KEY"),
        description="API key"
    )
    base_url: Optional[str] = Field(default=None, description="Custom endpoint")
    max_retries: int = Field(default=3, ge=0, le=10, description="Maximum retry attempts")
    retry_base_delay: float = Field(default=0.5, ge=0.0, description="Initial backoff in seconds")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate that provider is supported."""
        supported = ["openai"]
        if v.lower() not in supported:
            raise ValueError(f"Provider must be one of: {supported}")
        return v.lower()


class MemoryConfig(BaseSettings):
    """Configuration for session memory.

    Attributes:
        retrieve_size: Number of most recent turns injected into each request
        max_sessions: Optional LRU bound on retained sessions (None keeps all)
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_MEMORY_",
        extra="ignore"
    )

    retrieve_size: int = Field(default=100, gt=0, description="Turns injected per request")
    max_sessions: Optional[int] = Field(default=None, gt=0, description="LRU session bound")


class AdvisorConfig(BaseSettings):
    """Configuration for the advisor chain and tool loop."""

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_ADVISOR_",
        extra="ignore"
    )

    protect_from_blocking: bool = Field(
        default=True,
        description="Run blocking advisor work on a worker pool"
    )
    blocking_pool_size: int = Field(default=4, gt=0, description="Worker pool size")
    max_tool_rounds: int = Field(default=5, gt=0, description="Tool round-trips per turn")
    retrieval_enabled: bool = Field(default=True, description="Attach policy passages")


class AssistantSettings(BaseSettings):
    """Main configuration for the assistant.

    Attributes:
        llm: Chat model configuration
        memory: Session memory configuration
        advisor: Advisor chain configuration
        system_prompt: Custom system prompt template (uses default if None)
        timeout_seconds: Timeout for a non-streaming turn
        enable_streaming: Whether the streaming endpoint is enabled
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    advisor: AdvisorConfig = Field(default_factory=AdvisorConfig)

    system_prompt: Optional[str] = Field(default=None, description="System prompt template")
    enable_streaming: bool = Field(default=True, description="Enable streaming responses")
    timeout_seconds: int = Field(default=60, gt=0, description="Turn timeout in seconds")

    def get_api_key(self) -> str:
        """Get the model API key.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if self.llm.api_key:
            return self.llm.api_key

        env_key = os.environ.get("OPENAI_API_KEY")
        if env_key:
            return env_key

        raise ConfigurationError(
            "OpenAI API key is required but not configured",
            missing_keys=["OPENAI_API_KEY"]
        )


def load_config_from_yaml(config_path: str, section: str = "assistant") -> Dict[str, Any]:
    """Read the ``assistant`` section of ``config_path``.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = str(Path(config_path).absolute())
    try:
        return read_yaml_section(config_path, section)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            error_code="CONFIG_PARSE_ERROR",
            details={"path": path}
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            error_code="CONFIG_READ_ERROR",
            details={"path": path}
        ) from e


_NESTED = {"llm": LLMConfig, "memory": MemoryConfig, "advisor": AdvisorConfig}


def create_settings_from_yaml(config_path: str = "config/assistant.yaml") -> AssistantSettings:
    """Build settings from the YAML file layered over environment variables.

    A missing file yields environment-only settings.

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid
    """
    section = load_config_from_yaml(config_path)
    try:
        kwargs = {
            key: _NESTED[key](**(value or {})) if key in _NESTED else value
            for key, value in section.items()
        }
        return AssistantSettings(**kwargs)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Assistant configuration validation failed: {e}",
            error_code="CONFIG_VALIDATION_ERROR",
            details={"path": config_path}
        ) from e
