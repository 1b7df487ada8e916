"""Centralized configuration management using Pydantic Settings.

This module provides typed configuration for all application settings,
loaded from environment variables with sensible defaults.

Usage:
    from ipgeo.config import get_settings
    settings = get_settings()
    ttl = settings.geo.cache_ttl_sec
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes")
    return bool(v)


class GeoSettings(BaseSettings):
    """IP geolocation configuration."""

    model_config = SettingsConfigDict(env_prefix="GEO_", extra="ignore")

    cache_ttl_sec: int = Field(default=24 * 60 * 60, description="Retention window for resolved locations")
    failure_ttl_sec: int = Field(
        default=24 * 60 * 60,
        description="Retention window for failed resolutions",
    )
    request_timeout_sec: float = Field(default=5.0, description="Per-provider HTTP timeout")
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; LicenseManager/1.0)",
        description="User-Agent sent to geolocation providers",
    )
    ipinfo_token: str = Field(default="", description="Optional ipinfo.io API token")
    cache_backend: Literal["memory", "redis"] = Field(default="memory", description="Resolution cache backend")
    redis_key_prefix: str = Field(default="geo:location:", description="Key prefix for the redis cache")


class RedisSettings(BaseSettings):
    """Redis connection configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = Field(default="redis", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: str = Field(default="", description="Redis password")
    max_connections: int = Field(default=50, description="Maximum pool connections")
    pool_timeout_sec: float = Field(default=5.0, description="Pool timeout in seconds")
    health_check_interval: int = Field(default=30, description="Health check interval in seconds")
    retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(default=5.0, description="Socket connect timeout in seconds")


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )
    origins_regex: str = Field(
        default="",
        validation_alias="CORS_ORIGINS_REGEX",
        description="Regex pattern for origins",
    )

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into list."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        """Credentials not allowed with wildcard origins."""
        return self.origins != ["*"] and not self.origins_regex


class DebugSettings(BaseSettings):
    """Debug flags configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    request: bool = Field(default=False, alias="request_debug")
    geo: bool = Field(default=False, alias="geo_debug")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        return _parse_bool(v)


class Settings:
    """Main application settings combining all configuration sections.

    This is not a BaseSettings subclass to avoid env var conflicts.
    Each subsetting is loaded independently with its own prefix.
    """

    def __init__(self) -> None:
        self.geo = GeoSettings()
        self.redis = RedisSettings()
        self.cors = CorsSettings()
        self.debug = DebugSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    get_settings.cache_clear()
