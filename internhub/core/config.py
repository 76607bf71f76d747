"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "internhub_user"
    postgres_password: str = "password"
    postgres_db: str = "internhub_db"
    database_url: Optional[str] = None  # Full URL overrides the parts above

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "internhub_docs"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12

    # HTTP
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Uploads
    upload_dir: str = "uploads"
    max_upload_mb: int = 10

    # Scheduled maintenance (crontab expressions; name weekdays, APScheduler counts 0 as Monday)
    scheduler_enabled: bool = True
    scheduler_timezone: str = "UTC"
    scheduler_misfire_grace_seconds: int = 60 * 60
    reminder_cron: str = "0 * * * *"
    deadline_alert_cron: str = "0 9,18 * * *"
    expiry_cron: str = "0 0 * * *"
    weekly_summary_cron: str = "0 9 * * mon"
    cleanup_cron: str = "30 3 * * *"
    notification_retention_days: int = 30

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # App
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
