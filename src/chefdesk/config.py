"""
Chefdesk - Configuration and settings.

Everything is read from the environment (or a local .env file).
Scheduling defaults mirror the prep assistant's production window.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # LangSmith (optional)
    langchain_tracing_v2: bool = False
    langchain_api_key: str | None = None
    langchain_project: str = "chefdesk"

    # Application
    chefdesk_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Prompt logging
    # CHEFDESK_LOG_PROMPTS=1 - log to local files (dev only)
    chefdesk_log_prompts: bool = False

    # Production schedule
    schedule_window_start: str = "06:00"
    schedule_window_end: str = "17:00"
    schedule_snap_minutes: int = 15
    schedule_save_debounce_seconds: float = 1.0  # Quiet period before auto-save
    schedule_drag_threshold_px: int = 5  # Below this a press is a click
    schedule_layout_strategy: Literal["openai", "greedy"] = "openai"

    # Layout generation model
    schedule_model: str = "gpt-4o-mini"
    schedule_temperature: float = 0.3
    schedule_max_tokens: int = 2000

    @property
    def is_development(self) -> bool:
        return self.chefdesk_env == "development"

    @property
    def is_production(self) -> bool:
        return self.chefdesk_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience singleton - lazy loaded
class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
