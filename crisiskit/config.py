"""
Configuration and settings for the CrisisKit service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Hosted relational backend (Supabase). The VITE_ names match the
    # frontend's .env.local so one file can configure both.
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "VITE_SUPABASE_URL"),
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"),
    )

    # Google Sheets backend (service account)
    google_sheets_spreadsheet_id: Optional[str] = Field(default=None)
    google_service_account_email: Optional[str] = Field(default=None)
    google_service_account_private_key: Optional[str] = Field(default=None)

    # Local fallback key-value store
    database_url: str = Field(default="sqlite+pysqlite:///crisiskit.db")
    redis_url: Optional[str] = Field(default=None)
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "CRISISKIT_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    # Webhook relay; None waits indefinitely
    webhook_timeout_seconds: Optional[float] = Field(default=None)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def has_google_sheets(self) -> bool:
        return bool(
            self.google_sheets_spreadsheet_id
            and self.google_service_account_email
            and self.google_service_account_private_key
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
