"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TMS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Transit Mixer Scheduler API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for stored documents and exports.")
    tms_file: Path = Field(
        default=Path("data/transit_mixers.xlsx"),
        description="Workbook listing transit mixers (Id, Identifier, Capacity, Plant, Status).",
    )
    site_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone all schedule timestamps are normalized to.",
    )
    clock_skew_tolerance_minutes: float = Field(default=5.0, ge=0.0)
    default_pump_start_hour: int = Field(default=8, ge=0, le=23)
    default_average_capacity: float = Field(
        default=6.0,
        gt=0.0,
        description="Mixer capacity (m3) assumed by the estimator when no active fleet is known.",
    )
    max_fleet_size: int = Field(default=50, ge=1)
    computation_timeout_seconds: float = Field(default=10.0, gt=0.0)
    planner_workers: int = Field(default=4, ge=1, description="Threads shared by all planning calls.")
    default_dispatch_policy: Literal["earliest_available", "sequence", "fewest_mixers"] = Field(
        default="earliest_available",
        description="Mixer selection policy used by the trip planner.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "tms_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
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
