"""
Configuration Management

Pydantic-settings based configuration for the inbound email relay.
All settings can be overridden via environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Relay settings loaded from environment variables.

    Environment variables are prefixed with RELAY_ and are case-insensitive.
    Example: RELAY_FORWARD_EMAIL=ops@example.com,support@example.com

    The model is frozen: one snapshot is built and handed to the router,
    nothing reads the environment ad hoc.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Routing
    slack_webhook_url: str = Field(
        ...,
        description="Slack incoming webhook URL for notifications",
    )
    worker_email: str = Field(
        ...,
        description="Address this worker receives mail on",
    )
    forward_email: str = Field(
        default="",
        description="Comma-separated list of addresses to forward to",
    )

    # Feature toggles
    debug: bool = Field(
        default=False,
        description="Emit debug logging for every step",
    )
    show_attachments: bool = Field(
        default=False,
        description="Render per-attachment detail blocks in Slack",
    )
    show_raw_body: bool = Field(
        default=False,
        description="Post the HTML body as a preformatted block",
    )
    forward_exclude_sender: bool = Field(
        default=False,
        description="Never forward a message back to its sender",
    )
    reply_to_sender: bool = Field(
        default=False,
        description="Send an automated acknowledgement to the sender",
    )
    attachment_block_color_hex: str | None = Field(
        default="#2eb67d",
        description="Accent color of the attachment blocks (empty disables)",
    )

    # Timeouts
    webhook_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the Slack webhook POST",
    )
    ses_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Connect/read timeout for SES calls",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-west-2",
        description="AWS region",
    )
    ses_endpoint_url: str | None = Field(
        default=None,
        description="SES endpoint URL (use 'mock' for local)",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL (for local development)",
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def is_local(self) -> bool:
        """Detect if running in local mode."""
        return (
            self.environment == "development"
            or self.ses_endpoint_url == "mock"
        )

    @property
    def effective_log_level(self) -> str:
        """DEBUG when the debug toggle is on, otherwise the configured level."""
        return "DEBUG" if self.debug else self.log_level

    @property
    def ses_config(self) -> dict:
        """SES client configuration."""
        config = {"region_name": self.aws_region}
        if self.ses_endpoint_url and self.ses_endpoint_url != "mock":
            config["endpoint_url"] = self.ses_endpoint_url
        return config

    @property
    def s3_config(self) -> dict:
        """S3 client configuration."""
        config = {"region_name": self.aws_region}
        if self.s3_endpoint_url and self.s3_endpoint_url != "mock":
            config["endpoint_url"] = self.s3_endpoint_url
        return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached relay settings.

    Uses lru_cache to ensure settings are loaded only once per container.
    Call get_settings.cache_clear() in tests after changing the environment.
    """
    return Settings()


class ProbeSettings(BaseSettings):
    """
    The subset of settings the liveness probe reads.

    Kept apart from Settings so the probe answers even when the
    pipeline's required fields are missing.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=[".env.local", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    debug: bool = Field(
        default=False,
        description="Log every probe request",
    )
