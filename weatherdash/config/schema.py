"""Pydantic v2 configuration schema with strict validation."""

from typing import Annotated

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = "weatherdash/0.1.0 (contact@example.com)"


class NwsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "https://api.weather.gov"
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class UvConfig(BaseModel):
    model_config = {"extra": "forbid"}

    api_key: str = ""
    base_url: str = "https://api.openweathermap.org/data/3.0"
    timeout_seconds: float = Field(default=5.0, gt=0.0)
    cache_ttl_seconds: int = Field(default=3600, ge=1)


class GeocodingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "http://api.zippopotam.us/us"
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    cache_ttl_seconds: int = Field(default=86400, ge=1)


class CacheTtlConfig(BaseModel):
    """Per-resource NWS cache lifetimes in seconds. 0 disables caching."""

    model_config = {"extra": "forbid"}

    points: int = Field(default=86400, ge=0)
    forecast: int = Field(default=3600, ge=0)
    hourly_forecast: int = Field(default=3600, ge=0)
    stations: int = Field(default=604800, ge=0)
    observation: int = Field(default=600, ge=0)


class RefreshConfig(BaseModel):
    model_config = {"extra": "forbid"}

    interval_seconds: float = Field(default=60.0, gt=0.0)
    initial_backoff_seconds: float = Field(default=2.0, gt=0.0)
    max_backoff_seconds: float = Field(default=32.0, gt=0.0)
    max_consecutive_failures: int = Field(default=3, ge=1)
    error_display_seconds: float = Field(default=10.0, gt=0.0)
    max_recent_zip_codes: int = Field(default=5, ge=1)


class PrefetchConfig(BaseModel):
    """Background cache pre-warming for frequently requested ZIP codes."""

    model_config = {"extra": "forbid"}

    enabled: bool = True
    zip_codes: list[Annotated[str, Field(pattern=r"^[0-9]{5}$")]] = Field(
        default_factory=lambda: ["75454", "75070", "75035"]
    )
    interval_seconds: float = Field(default=300.0, gt=0.0)
    max_backoff_seconds: float = Field(default=1800.0, gt=0.0)


class DashboardConfig(BaseModel):
    model_config = {"extra": "forbid"}

    nws: NwsConfig = NwsConfig()
    uv: UvConfig = UvConfig()
    geocoding: GeocodingConfig = GeocodingConfig()
    cache_ttl: CacheTtlConfig = CacheTtlConfig()
    refresh: RefreshConfig = RefreshConfig()
    prefetch: PrefetchConfig = PrefetchConfig()
