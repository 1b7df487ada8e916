"""Pydantic models for resolved locations and the locations API."""

from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

SOURCE_LIVE: Final[str] = "live_geolocation"
SOURCE_FAILED: Final[str] = "failed_geolocation"

# Placeholder rendered for "not specified"
NOT_SPECIFIED: Final[str] = "غير محدد"


class LocationData(BaseModel):
    """Canonical location produced by a provider, or the failure placeholder."""

    model_config = ConfigDict(frozen=True)

    city: str | None = None
    country: str | None = None
    country_name: str | None = None
    region: str | None = None
    timezone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    ip: str | None = None
    source: str = SOURCE_LIVE
    service: str | None = None

    @classmethod
    def failure(cls, ip: str | None = None) -> "LocationData":
        """Negative cache placeholder: sentinel city/country and nothing else."""
        return cls(city=NOT_SPECIFIED, country=NOT_SPECIFIED, ip=ip, source=SOURCE_FAILED)

    @property
    def is_failure(self) -> bool:
        return self.source == SOURCE_FAILED


class CacheEntry(BaseModel):
    """One cached resolution outcome. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    ip: str
    data: LocationData
    resolved_at: datetime


class StoredLocation(BaseModel):
    """Location fields as stored on a device record.

    ``city`` and ``country`` may hold a JSON-encoded object left over from an
    older schema.
    """

    model_config = ConfigDict(extra="allow")

    city: str | None = None
    country: str | None = None


class DeviceLocationRef(BaseModel):
    """The part of a device record this service reads."""

    model_config = ConfigDict(extra="ignore")

    ip: str | None = None
    location: StoredLocation = Field(default_factory=StoredLocation)


class LocationResponse(BaseModel):
    """Response model for a single IP lookup."""

    ip: str
    location: LocationData | None = None
    display: str
    cached: bool = False


class CacheStatsResponse(BaseModel):
    size: int
    keys: list[str]


class InFlightResponse(BaseModel):
    count: int
    ips: list[str]


class BatchRefreshRequest(BaseModel):
    """Device list submitted for unknown-location refresh."""

    devices: list[DeviceLocationRef]


class BatchRefreshResponse(BaseModel):
    selected: list[str]
    resolved: dict[str, LocationData | None]
    displays: dict[str, str] = Field(default_factory=dict)


def as_mapping(obj: Any) -> dict[str, Any]:
    """Read a location or device given either as a model or a plain dict."""
    if obj is None:
        return {}
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if isinstance(obj, dict):
        return obj
    return dict(vars(obj))
