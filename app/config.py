"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to store and present naive datetimes",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )
    firebase_credentials_path: str | None = Field(
        default=None,
        description=(
            "Path to the Firebase service account JSON. When omitted the default "
            "application credentials are used"
        ),
    )
    push_multicast_chunk_size: int = Field(
        default=500,
        description="Maximum number of tokens per FCM multicast request",
        gt=0,
        le=500,
    )
    push_validation_batch_size: int = Field(
        default=100,
        description="Number of tokens checked per dry-run batch during cleanup",
        gt=0,
        le=500,
    )
    device_token_min_length_ios: int = Field(default=64, ge=1)
    device_token_min_length_android: int = Field(default=100, ge=1)
    device_token_min_length_web: int = Field(default=50, ge=1)
    email_batch_size: int = Field(
        default=10,
        description="Number of recipients processed concurrently in a bulk email batch",
        gt=0,
    )
    email_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between bulk email batches to respect provider rate limits",
        ge=0,
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200"],
        description="Origins allowed by the CORS middleware (JSON list in the environment)",
    )
    scheduler_enabled: bool = True
    scheduler_dispatch_interval_seconds: float = Field(default=60.0, gt=0)
    scheduler_dispatch_batch_size: int = Field(default=50, gt=0)
    dispatch_claim_timeout_seconds: float = Field(
        default=300.0,
        description="Age after which an unfinished dispatch claim may be taken over",
        gt=0,
    )
    scheduler_hygiene_interval_seconds: float = Field(default=86400.0, gt=0)
    notification_retention_days: int = Field(default=30, gt=0)
    device_token_inactive_days: int = Field(default=30, gt=0)
    device_token_stale_days: int = Field(default=270, gt=0)

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    def device_token_min_lengths(self) -> dict[str, int]:
        """Return the minimum accepted token length keyed by platform value."""

        return {
            "ios": self.device_token_min_length_ios,
            "android": self.device_token_min_length_android,
            "web": self.device_token_min_length_web,
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
