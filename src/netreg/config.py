"""Configuration management for netreg using Pydantic Settings."""

from enum import Enum

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class NetregConfig(BaseSettings):
    """netreg service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # Database
    database_url: SecretStr = Field(
        default=SecretStr("postgresql+asyncpg://localhost:5432/netreg"),
        alias="NETREG_DATABASE_URL",
    )
    database_pool_size: int = Field(default=5, alias="NETREG_DATABASE_POOL_SIZE", gt=0)
    database_pool_timeout: float = Field(
        default=30.0, alias="NETREG_DATABASE_POOL_TIMEOUT", gt=0
    )
    database_echo: bool = Field(default=False, alias="NETREG_DATABASE_ECHO")

    # Events
    events_redis_url: str | None = Field(default=None, alias="NETREG_EVENTS_REDIS_URL")
    events_channel: str = Field(default="netreg:network-events", alias="NETREG_EVENTS_CHANNEL")

    # Observability
    metrics_port: int = Field(default=8080, alias="NETREG_METRICS_PORT", ge=1, le=65535)
    log_level: str = Field(default="INFO", alias="NETREG_LOG_LEVEL")
    log_format: LogFormat = Field(default=LogFormat.JSON, alias="NETREG_LOG_FORMAT")

    @property
    def events_enabled(self) -> bool:
        """Whether network events are published."""
        return bool(self.events_redis_url)
