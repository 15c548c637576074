"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="EVROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "EV Route Planner API"
    api_prefix: str = "/api"

    # External collaborators
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the Nominatim-compatible geocoder.",
    )
    geocoder_country_codes: Optional[str] = Field(
        default="fr",
        description="Comma-separated ISO country codes used to bias geocoding (empty disables).",
    )
    geocoder_query_suffix: str = Field(
        default="France",
        description="Text appended to place names before geocoding.",
    )
    user_agent: str = Field(default="EVRoutePlanner/1.0", description="User-Agent sent to public APIs.")
    route_base_url: str = Field(
        default="https://maps.open-street.com/api/route/",
        description="Route provider endpoint returning a distance and an encoded polyline.",
    )
    route_api_key: Optional[str] = Field(default=None, description="API key for the route provider.")
    route_polyline_precision: int = Field(
        default=6,
        ge=1,
        le=10,
        description="Decimal precision the route provider used to encode its polyline.",
    )
    station_directory_url: str = Field(
        default="https://odre.opendatasoft.com/api/records/1.0/search/",
        description="Opendatasoft records endpoint for the charging station directory.",
    )
    station_dataset: str = Field(default="bornes-irve")
    station_max_rows: int = Field(default=500, ge=1)
    travel_time_url: Optional[str] = Field(
        default="http://localhost:8000/trajet",
        description="SOAP endpoint of the travel-time estimator (empty disables the remote call).",
    )
    http_timeout_seconds: float = Field(default=10.0, gt=0.0)
    http_max_retries: int = Field(default=2, ge=0)
    http_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Corridor and station policy
    corridor_width_km: float = Field(default=20.0, gt=0.0)
    corridor_mode: Literal["buffer", "radius"] = Field(
        default="buffer",
        description="Geographic filter sent to the station directory.",
    )
    corridor_max_vertices: Optional[int] = Field(
        default=50,
        ge=4,
        description="Cap on corridor polygon vertices to keep directory queries short.",
    )
    default_power_kw: float = Field(default=3.0, ge=0.0)
    min_power_kw: float = Field(default=3.0, ge=0.0)
    apply_station_filter: bool = True

    # Planning defaults
    safety_margin: float = Field(default=0.8, gt=0.0, le=1.0)
    default_speed_kmh: float = Field(default=110.0, gt=0.0)
    default_range_km: float = Field(default=350.0, gt=0.0)
    default_recharge_time_h: float = Field(default=0.5, ge=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:3000", "http://127.0.0.1:3000"),
        description="Permitted web origins for browser clients (CORS).",
    )

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

    @field_validator("route_api_key", "travel_time_url", "geocoder_country_codes", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = Settings()
