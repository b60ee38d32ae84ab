"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fb_messenger.constants import (
    DEFAULT_PAGINATION_MAX_PAGES,
    FACEBOOK_GRAPH_API_BASE_URL,
    FACEBOOK_GRAPH_API_VERSION,
    GRAPH_API_READ_TIMEOUT_SECONDS,
    GRAPH_API_SEND_TIMEOUT_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Facebook Configuration
    facebook_verify_token: str = Field(..., description="Webhook verification token")

    graph_api_base_url: str = Field(
        default=FACEBOOK_GRAPH_API_BASE_URL,
        description="Graph API host (scheme + netloc)",
    )
    graph_api_version: str = Field(
        default=FACEBOOK_GRAPH_API_VERSION,
        description="Graph API version path segment (e.g. v18.0)",
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # ==========================================================================
    # Timeout Configuration
    # ==========================================================================
    # Each operation class has its own knob; defaults come from constants.py.

    graph_api_read_timeout_seconds: float = Field(
        default=GRAPH_API_READ_TIMEOUT_SECONDS,
        description="Timeout for read/list Graph API calls (seconds)",
    )
    graph_api_send_timeout_seconds: float = Field(
        default=GRAPH_API_SEND_TIMEOUT_SECONDS,
        description="Timeout for the message send path (seconds)",
    )

    # ==========================================================================
    # Pagination
    # ==========================================================================

    pagination_max_pages: int = Field(
        default=DEFAULT_PAGINATION_MAX_PAGES,
        ge=1,
        description="Max pages followed in one pagination walk",
    )

    @property
    def api_root(self) -> str:
        """Versioned Graph API root, e.g. https://graph.facebook.com/v18.0."""
        return f"{self.graph_api_base_url.rstrip('/')}/{self.graph_api_version.strip('/')}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
