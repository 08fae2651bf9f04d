"""Application configuration settings."""

import os
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_database_url() -> str:
    """Get the default journal database URL, using Fly Volume path if available."""
    if os.path.isdir("/data"):
        return "sqlite:////data/dormdesk.db"
    return "sqlite:///./dormdesk.db"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "DormDesk"
    VERSION: str = "0.1.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str | None = None

    # Session cookie signing
    SECRET_KEY: str = "your-secret-key-change-this-in-production"

    # Batch journal - defaults to Fly Volume path if /data exists
    DATABASE_URL: str = _get_default_database_url()

    # Property-management backend
    API_URL: str = "http://localhost:3001"
    INTERNAL_API_URL: str | None = None
    API_HOST_REWRITES: dict[str, str] = {}
    API_TIMEOUT_SECONDS: float = 15.0

    # Buildings matching this pattern are listed after all others
    ANNEX_BUILDING_PATTERN: str = "บ้านน้อย"

    # Polling
    LIVE_REFRESH_ENABLED: bool = True
    NOTIFICATION_REFRESH_SECONDS: int = 30
    BATCH_POLL_INTERVAL_MS: int = 1000


def resolve_api_url(config: Settings, request_host: str | None = None) -> str:
    """Pick the backend base URL for the current deployment.

    INTERNAL_API_URL wins when set. Otherwise API_URL is used, unless its
    hostname or the host the dashboard is served from has an entry in
    API_HOST_REWRITES.
    """
    if config.INTERNAL_API_URL:
        return config.INTERNAL_API_URL.rstrip("/")

    api_host = urlsplit(config.API_URL).hostname or ""
    if api_host in config.API_HOST_REWRITES:
        return config.API_HOST_REWRITES[api_host].rstrip("/")
    if request_host and request_host in config.API_HOST_REWRITES:
        return config.API_HOST_REWRITES[request_host].rstrip("/")
    return config.API_URL.rstrip("/")


settings = Settings()
