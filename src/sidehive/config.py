"""
SideHive Core - Configuration and settings.

CoreSettings contains only what the client-side runtime needs.
Server-side settings (service role key, OpenAI, rate limits) live in
sidehive_functions.config.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """
    Core settings shared by the client runtime and the functions app.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase (anon key only - the client never sees the service role)
    supabase_url: str
    supabase_anon_key: str

    # Application
    sidehive_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Where the functions app is served
    functions_base_url: str = "http://localhost:8000/functions"

    # Durable client storage (local storage analogue) and current location
    storage_path: Path = Path(".sidehive/storage.json")
    app_url: str = "http://localhost:5173/onboarding"

    # Retrying call envelope
    request_timeout_seconds: float = 25.0
    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_multiplier: float = 3.0

    # Feature flag cache
    flag_cache_ttl_seconds: float = 60.0

    # SIDEHIVE_LOG_EVENTS=1 - mirror operation events to event_logs/ (dev only)
    sidehive_log_events: bool = False

    @property
    def is_development(self) -> bool:
        return self.sidehive_env == "development"

    @property
    def is_production(self) -> bool:
        return self.sidehive_env == "production"


@lru_cache
def get_core_settings() -> CoreSettings:
    """Get cached CoreSettings instance (no service role fields required)."""
    return CoreSettings()


class _CoreSettingsProxy:
    """Lazy proxy for CoreSettings to avoid loading .env at import time."""

    _instance: CoreSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_core_settings()
        return getattr(self._instance, name)


core_settings = _CoreSettingsProxy()
