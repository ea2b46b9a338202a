"""Port Pal settings with pydantic-settings.

Every field can be overridden with a ``PORT_PAL_``-prefixed environment
variable or from a local ``.env`` file.

Usage:
    from port_pal.config import get_settings

    settings = get_settings()
    settings.redis_url
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Port Pal settings.

    All fields have defaults so the CLI works out of the box against a local
    Redis on the default port.
    """

    model_config = SettingsConfigDict(
        env_prefix="PORT_PAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Logging ===

    service_name: str = Field(
        default="port-pal",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # === Registry storage and sync ===

    storage_backend: Literal["redis", "memory"] = Field(
        default="redis",
        description="Where the registry lives; memory is process-local",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL",
        examples=["redis://redis:6379/0"],
    )
    registry_key: str = Field(
        default="port_authority_registry_v1",
        description="Key holding the JSON array of assignments",
    )
    sync_channel: str = Field(
        default="port_authority_sync_channel",
        description="Pub/sub channel for REGISTRY_UPDATE messages",
    )

    # === Simulated port_pal.py run ===

    contention_probability: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Chance of the cosmetic LockError warning before a commit",
    )
    lock_retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    processing_delay_seconds: float = Field(default=0.8, ge=0.0)
    max_commit_attempts: int = Field(
        default=2,
        ge=1,
        description="Commit attempts when a concurrent writer bumps the registry version",
    )

    # === Oracle ===

    llm_provider: Literal["openrouter", "openai"] = Field(default="openrouter")
    llm_model: str = Field(default="openai/gpt-4o-mini")
    llm_temperature: float = Field(default=0.0, ge=0.0, le=2.0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
