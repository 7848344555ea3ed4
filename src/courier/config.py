"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Booking Core API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level.")
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    geo_reference_file: Path = Field(
        default=Path("data/geo_reference.json"),
        description="Provinces, districts, wards and their aliases.",
    )
    fleet_file: Path = Field(
        default=Path("data/fleet.json"),
        description="Branches, vehicles and branch/vehicle assignments (.json or .xlsx workbook).",
    )
    coverage_radius_km: float = Field(default=150.0, gt=0.0)
    volumetric_divisor: float = Field(default=5000.0, gt=0.0, description="cm3 per chargeable kg.")
    max_standard_weight_kg: float = Field(default=300.0, gt=0.0)
    express_max_weight_kg: float = Field(default=20.0, gt=0.0)
    capacity_cas_max_retries: int = Field(default=5, ge=0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
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

    @field_validator("data_root", "geo_reference_file", "fleet_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> tuple[str, ...]:
        """Accept a JSON array or a comma-separated list from the environment."""
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                value = json.loads(text)
            else:
                value = text.split(",")
        return tuple(str(item).strip() for item in value or () if str(item).strip())


settings = Settings()
