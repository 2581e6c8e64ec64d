"""Application configuration read from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the location engine, overridable via FLATLIST_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLATLIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="none",
    )

    # Geocoding
    geocode_api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the service exposing /api/geocode",
    )
    geocode_timeout_seconds: float = Field(
        default=10.0, description="Timeout for geocode lookups in seconds"
    )
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Nominatim search endpoint",
    )
    nominatim_user_agent: str = Field(
        default="flatlist-app/1.0 (apartment search application)",
        description="User-Agent sent to Nominatim (required by its usage policy)",
    )
    nominatim_timeout_seconds: float = Field(
        default=10.0, description="Timeout for each Nominatim request in seconds"
    )
    geocode_cache_capacity: int | None = Field(
        default=1024, description="Maximum cached geocode results ('none' for unbounded)"
    )
    geocode_cache_ttl_seconds: float | None = Field(
        default=None, description="Lifetime of cached geocode results ('none' for no expiry)"
    )

    # Transit routes
    overpass_url: str = Field(
        default="https://overpass-api.de/api/interpreter",
        description="Overpass API interpreter endpoint",
    )
    overpass_timeout_seconds: float = Field(
        default=15.0, description="Timeout for Overpass requests in seconds"
    )
    transit_search_radius_m: int = Field(
        default=50_000, description="Search radius around the center for route relations"
    )
    default_center_lat: float = Field(
        default=45.4642, description="Latitude of the default search center (Milan)"
    )
    default_center_lon: float = Field(
        default=9.19, description="Longitude of the default search center (Milan)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root logging level")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
