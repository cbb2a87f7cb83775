"""Client configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration is loaded from ``LITTLEWATCH_*`` env vars (or .env file)."""

    # --- App ---
    app_name: str = "LittleWatch"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Backend ---
    api_base_url: str = "https://little-watch-backend.onrender.com/api"
    socket_url: str = "https://little-watch-backend.onrender.com"
    request_timeout_seconds: float = 10.0

    # --- Realtime channel (reconnection is owned by the transport) ---
    reconnection_attempts: int = 5
    reconnection_delay_seconds: float = 1.0

    # --- Fallback polling ---
    poll_interval_seconds: float = 30.0
    history_page_size: int = 20

    # --- Local storage ---
    session_store_path: Path = Path.home() / ".littlewatch" / "session.json"

    model_config = SettingsConfigDict(
        env_prefix="LITTLEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
