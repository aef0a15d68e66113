"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``CIVIC_INTAKE_`` prefix; Supabase / infrastructure
settings use their canonical environment variable names via
``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class StoreBackend(StrEnum):
    MEMORY = "memory"
    POSTGREST = "postgrest"


class Settings(BaseSettings):
    """Central configuration for the complaint intake service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``CIVIC_INTAKE_``; Supabase keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="CIVIC_INTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── API Server ─────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Record store ───────────────────────────────────────────────────
    store_backend: Literal["memory", "postgrest"] = "memory"
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_service_role_key: str = Field(default="", validation_alias="SUPABASE_SERVICE_ROLE_KEY")
    store_timeout_seconds: float = Field(default=10.0, gt=0)

    # ── CORS ───────────────────────────────────────────────────────────
    cors_origins: str = Field(default="", validation_alias="CORS_ORIGINS")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Intake ─────────────────────────────────────────────────────────
    default_media_bucket: str = "complaint-evidence"
    sms_ack_template: str = "Complaint #{complaint_number} received. We will keep you updated."

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Module-level singleton — import ``settings`` everywhere.
settings = Settings()
