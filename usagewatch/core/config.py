"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "UsageWatch"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Schematic usage feed
    schematic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "schematic_api_key",
            "next_public_schematic_api_key",
        ),
        description="Schematic API key",
    )
    schematic_base_url: str = Field(
        default="https://api.schematichq.com",
        description="Schematic API base URL",
    )
    schematic_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Usage feed request timeout in seconds",
    )

    # Webhook
    webhook_url: str = Field(
        default="",
        validation_alias=AliasChoices("webhook_url", "next_public_webhook_url"),
        description="Webhook endpoint for threshold notifications (empty disables delivery)",
    )

    # Polling
    feature_id: str = Field(
        default="",
        description="Feature to watch on startup (empty leaves the poller idle)",
    )
    polling_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Seconds between polling cycles",
    )
    page_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Companies requested per feed page",
    )
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Pages fetched per cycle (None fetches until exhausted)",
    )

    # Delivery log
    delivery_log_size: int = Field(
        default=50,
        ge=1,
        description="Maximum webhook log entries kept in memory",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
