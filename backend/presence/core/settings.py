from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_name: str = "Presence Bot API"
    project_version: str = "1.0.0"
    environment: str = Field(
        default="development",
        description="Deployment environment name",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Database
    database_url: str = Field(
        default="sqlite:///./presence.db",
        description="SQLAlchemy database URL",
    )
    db_pool_size: int = Field(default=5, description="Base DB connection pool size")
    db_max_overflow: int = Field(default=10, description="Additional DB connections beyond pool size")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a DB connection")
    db_pool_recycle: int = Field(default=1800, description="Recycle DB connections after N seconds")

    # Time
    default_timezone: str = Field(
        default="UTC",
        description="IANA timezone used when a user has not set one",
        validation_alias=AliasChoices("DEFAULT_TIMEZONE", "SYSTEM_TIMEZONE", "TZ"),
    )

    # Sessions
    recent_status_update_limit: int = Field(
        default=5,
        description="Status updates returned with a user's current state",
    )

    # Idle reminders
    reminder_poll_interval_seconds: int = Field(
        default=300,
        description="Seconds between reminder scheduler ticks",
        validation_alias=AliasChoices("REMINDER_POLL_INTERVAL_SECONDS", "REMINDER_INTERVAL"),
    )
    reminder_idle_minutes: int = Field(
        default=45,
        description="Minutes without a status update before a user is nudged",
    )
    reminder_throttle_minutes: int = Field(
        default=45,
        description="Minimum minutes between two reminders to the same user",
    )

    # Notifier
    notifier_provider: str = Field(
        default="disabled",
        description="Direct message provider: slack, disabled",
        validation_alias=AliasChoices("NOTIFIER_PROVIDER"),
    )
    slack_bot_token: str | None = Field(
        default=None,
        description="Bot token used to open DMs and post messages",
        validation_alias=AliasChoices("SLACK_BOT_TOKEN"),
    )
    slack_api_base_url: str = Field(
        default="https://slack.com/api",
        description="Base URL of the Slack Web API",
    )
    notifier_http_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for notifier HTTP requests",
    )

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        zone = (value or "").strip() or "UTC"
        try:
            ZoneInfo(zone)
        except (ZoneInfoNotFoundError, ValueError):
            return "UTC"
        return zone

    @field_validator("reminder_idle_minutes", "reminder_throttle_minutes", "reminder_poll_interval_seconds")
    @classmethod
    def ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
