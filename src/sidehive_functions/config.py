"""
SideHive Functions - Configuration and settings.

FunctionSettings extends CoreSettings with the service role key, OpenAI,
idempotency and rate limit configuration.
"""

from functools import lru_cache

from sidehive.config import CoreSettings


class FunctionSettings(CoreSettings):
    """
    Functions app settings.

    Extends CoreSettings with server-only secrets and limits.
    """

    # Supabase (service role bypasses RLS - server only)
    supabase_service_role_key: str

    # OpenAI
    openai_api_key: str

    # Idempotency cache window for generation responses
    idempotency_window_minutes: int = 15

    # Rolling-window rate limits, operations per identity per window
    rate_limit_window_seconds: int = 60
    rate_limits: dict[str, int] = {
        "identity": 4,
        "logos": 4,
        "product_ideas": 6,
        "bio": 6,
    }

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # SIDEHIVE_LOG_PROMPTS=1 - log prompts to prompt_logs/ (dev only)
    sidehive_log_prompts: bool = False


@lru_cache
def get_settings() -> FunctionSettings:
    """Get cached settings instance."""
    return FunctionSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: FunctionSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
