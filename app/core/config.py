"""
Huddle API - Configuration
Loads settings from environment variables
"""

from typing import List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Info
    APP_NAME: str = "Huddle API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api"

    # Supabase
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Notifications
    NOTIFICATIONS_TABLE: str = "notifications"
    NOTIFICATION_DEDUP_WINDOW_SECONDS: int = 5 * 60
    NOTIFICATIONS_PAGE_DEFAULT: int = 20
    NOTIFICATIONS_PAGE_MAX: int = 50

    # Fan-out
    FANOUT_MAX_CONCURRENCY: int = 10
    FANOUT_RECIPIENT_TIMEOUT: float = 10.0  # seconds per recipient

    # Realtime
    REALTIME_BUFFER_SIZE: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
