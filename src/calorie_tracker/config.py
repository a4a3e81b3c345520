"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str | None = None
    openai_vision_model: str = "gpt-4o"
    openai_text_model: str = "gpt-4o-mini"
    timezone: str = "UTC"
    storage_backend: Literal["file", "supabase", "memory"] = "file"
    data_path: str = "~/.calorie_tracker/store.json"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "calorie_tracker_records"
    undo_window_seconds: float = 5.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
