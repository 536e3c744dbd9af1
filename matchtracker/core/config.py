"""Application configuration settings."""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Match Tracker API"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = "Match reminders for teams tracked in Match Tracker"
    API_V1_PREFIX: str = "/api/v1"

    # Server
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    # Database
    DATABASE_URL: str = "sqlite:///./matchtracker.db"

    # Field encryption secret (PBKDF2 password, not a raw key)
    ENCRYPTION_KEY: str = ""

    # Expo push
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: str = ""

    # Mailgun
    MAILGUN_API_KEY: str = ""
    MAILGUN_DOMAIN: str = ""
    MAILGUN_FROM_EMAIL: str = ""
    MAILGUN_BASE_URL: str = "https://api.eu.mailgun.net"

    # Reminder window, in minutes before kick-off
    NOTIFY_WINDOW_START_MINUTES: int = 5
    NOTIFY_WINDOW_END_MINUTES: int = 15

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCAN_INTERVAL_SECONDS: int = 60
    CHANNEL_TIMEOUT_SECONDS: float = 10.0

    # Shared secret for the external cron trigger
    CRON_SECRET: str = ""

    @model_validator(mode="after")
    def check_notify_window(self) -> "Settings":
        """Reject a reminder window that ends before it starts."""
        if self.NOTIFY_WINDOW_START_MINUTES > self.NOTIFY_WINDOW_END_MINUTES:
            raise ValueError(
                "NOTIFY_WINDOW_START_MINUTES must not exceed NOTIFY_WINDOW_END_MINUTES"
            )
        return self

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get ALLOWED_ORIGINS as a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def mailgun_configured(self) -> bool:
        return bool(self.MAILGUN_API_KEY and self.MAILGUN_DOMAIN)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
