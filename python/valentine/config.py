"""Application settings loaded from environment variables.

Environment Configuration:
    VALENTINE_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string (required)
    PUBLIC_BASE_URL: Base URL used to build share links (/v/{page_id})
    CORS_ORIGINS: Comma-separated list of browser origins allowed to call the API
    LOG_LEVEL: Root log level (default INFO)
    LOG_FORMAT: json | console (default json)

Storage Configuration (required in staging/prod):
    SUPABASE_URL: Supabase project URL
    SUPABASE_SERVICE_KEY: Supabase service role key
    SCREENSHOT_BUCKET: Storage bucket for accepted-card screenshots

Notification Configuration:
    RESEND_API_KEY: Resend API key (email delivery is disabled when unset)
    NOTIFY_FROM_ADDRESS: Sender used for "they said yes" emails

Accept-flow Tuning:
    ENABLE_SCREENSHOTS: Use the headless-browser rasterizer
    ACCEPT_SETTLE_DELAY_MS: Delay before the card is captured
    CAPTURE_SCALE: Device scale factor for the captured image
    CELEBRATION_DURATION_MS: Length of the confetti sequence
    ACCEPT_FLOW_CACHE_SIZE: Max page views kept by the accept-flow registry
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - SUPABASE_URL and SUPABASE_SERVICE_KEY are required in staging and prod
    - Delays and durations must be >= 0, CAPTURE_SCALE must be > 0
    """

    valentine_env: Environment = Field(default=Environment.LOCAL, alias="VALENTINE_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    public_base_url: str = Field(default="http://localhost:5173", alias="PUBLIC_BASE_URL")
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    # Supabase Storage settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    screenshot_bucket: str = Field(default="screenshots", alias="SCREENSHOT_BUCKET")

    # Email notification settings
    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    notify_from_address: str = Field(
        default="Valentine Notifications <onboarding@resend.dev>",
        alias="NOTIFY_FROM_ADDRESS",
    )

    # Accept-flow tuning
    enable_screenshots: bool = Field(default=True, alias="ENABLE_SCREENSHOTS")
    accept_settle_delay_ms: int = Field(default=500, alias="ACCEPT_SETTLE_DELAY_MS")
    capture_scale: float = Field(default=2.0, alias="CAPTURE_SCALE")
    celebration_duration_ms: int = Field(default=4000, alias="CELEBRATION_DURATION_MS")
    accept_flow_cache_size: int = Field(default=1024, alias="ACCEPT_FLOW_CACHE_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure environment-specific and numeric settings are sane."""
        if self.valentine_env in (Environment.STAGING, Environment.PROD):
            missing = []
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing.append("SUPABASE_SERVICE_KEY")
            if missing:
                raise ValueError(
                    f"Missing required storage settings for VALENTINE_ENV="
                    f"{self.valentine_env.value}: {', '.join(missing)}"
                )

        for name in ("ACCEPT_SETTLE_DELAY_MS", "CELEBRATION_DURATION_MS"):
            if getattr(self, name.lower()) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.capture_scale <= 0:
            raise ValueError("CAPTURE_SCALE must be > 0")
        if self.accept_flow_cache_size < 1:
            raise ValueError("ACCEPT_FLOW_CACHE_SIZE must be >= 1")

        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def use_supabase_storage(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def accept_settle_delay_s(self) -> float:
        return self.accept_settle_delay_ms / 1000

    @property
    def celebration_duration_s(self) -> float:
        return self.celebration_duration_ms / 1000

    def share_link(self, page_id: str) -> str:
        """Build the public share link for a page."""
        return f"{self.public_base_url.rstrip('/')}/v/{page_id}"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
