"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DAYROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Day Route Timeline API"
    api_prefix: str = "/api"
    schedule_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the practice API serving a doctor's day (e.g., https://pims.example.com).",
    )
    travel_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the routing service exposing POST /routing/eta.",
    )
    geocoder_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the reverse geocoding service exposing GET /geo/reverse.",
    )
    provider_timeout_seconds: float = Field(default=20.0, gt=0.0)
    provider_max_retries: int = Field(default=2, ge=0)
    provider_backoff_seconds: float = Field(default=0.5, ge=0.0)
    use_traffic: bool = False
    fallback_speed_mps: float = Field(
        default=11.65,
        gt=0.0,
        description="Assumed road speed (metres/second) for straight-line leg estimates.",
    )
    default_visit_minutes: int = Field(default=60, ge=1)
    arrival_window_minutes: int = Field(default=60, ge=0)
    default_day_start: str = Field(default="08:30", pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    timezone: str = Field(default="UTC", description="IANA zone used for timestamps without an offset.")
    geocode_cache_size: int = Field(default=256, ge=1)
    geocode_cache_ttl_seconds: float = Field(default=3600.0, ge=0.0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("schedule_base_url", "travel_base_url", "geocoder_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
