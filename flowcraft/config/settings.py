"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlowcraftSettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables should be prefixed with FLOWCRAFT_
    Example: FLOWCRAFT_DEBUG=true, FLOWCRAFT_DEFAULT_MAX_ITERATIONS=50
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWCRAFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Execution settings
    default_max_iterations: int = Field(default=100, ge=1)
    failure_policy: Literal["continue", "abort"] = "continue"

    # Compiled workflows kept per cache before the least recently used is dropped
    workflow_cache_size: int = Field(default=128, ge=1)

    # Persistence gate: reject definitions with validation errors on save
    validate_on_save: bool = True

    # Agent capability defaults
    default_model: str = "gpt-4o"
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None

    # Retries around agent calls (connection, rate-limit and server errors only)
    llm_max_attempts: int = Field(default=3, ge=1)
    llm_retry_min_wait: float = Field(default=1.0, ge=0.0)
    llm_retry_max_wait: float = Field(default=10.0, ge=0.0)


# Global settings instance (singleton)
settings = FlowcraftSettings()


__all__ = ["FlowcraftSettings", "settings"]
