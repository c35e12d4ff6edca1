"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "listen_sessions"
    admin_token: str | None = None
    session_code_length: int = 6
    session_code_max_attempts: int = 5
    session_idle_seconds: int = 2 * 60 * 60
    cleanup_interval_seconds: int = 30
    sync_interval_seconds: float = 1.0
    drift_threshold_seconds: float = 2.0
    time_push_interval_seconds: float = 0.5
    max_missed_pulls: int = 3
    api_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def uses_durable_store(self) -> bool:
        """Return True when Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)
