"""Application settings loaded with pydantic-settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration read from environment variables and a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    private_key: str | None = Field(default=None, repr=False)
    api_key: str | None = Field(default=None, repr=False)
    private_api_key: str | None = Field(default=None, repr=False)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_dir: str = "logs"
    nonce_lease_ttl_seconds: float = 30.0
    max_concurrent_jobs: int = 4
    receipt_timeout_seconds: float = 120.0

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        """Port must be a valid TCP port."""
        if value < 1 or value > 65535:
            msg = "port must be between 1 and 65535"
            raise ValueError(msg)
        return value

    @field_validator("nonce_lease_ttl_seconds", "receipt_timeout_seconds")
    @classmethod
    def validate_positive_seconds(cls, value: float) -> float:
        """Timeouts must be positive."""
        if value <= 0:
            msg = "timeouts must be greater than 0"
            raise ValueError(msg)
        return value

    @field_validator("max_concurrent_jobs")
    @classmethod
    def validate_max_concurrent_jobs(cls, value: int) -> int:
        """At least one job must be able to run."""
        if value < 1:
            msg = "max_concurrent_jobs must be at least 1"
            raise ValueError(msg)
        return value
