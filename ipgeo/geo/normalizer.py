"""Provider response shapes and their normalization to ``LocationData``.

Each upstream answers in its own JSON shape and signals failure its own way.
The shapes are modelled as a tagged union keyed on ``provider``; raw JSON is
validated into the matching shape and then normalized by the function
registered for that shape.
"""

import logging
from functools import singledispatch
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ipgeo.errors import ProviderError
from ipgeo.models.location import SOURCE_LIVE, LocationData

logger = logging.getLogger(__name__)


class _ProviderShape(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class IpapiCoResponse(_ProviderShape):
    """https://ipapi.co/{ip}/json/"""

    provider: Literal["ipapi_co"] = "ipapi_co"
    error: bool = False
    reserved: bool = False
    private: bool = False
    reason: str | None = None
    city: str | None = None
    country: str | None = None
    country_name: str | None = None
    region: str | None = None
    timezone: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class IpApiComResponse(_ProviderShape):
    """http://ip-api.com/json/{ip}"""

    provider: Literal["ip_api_com"] = "ip_api_com"
    status: str | None = None
    message: str | None = None
    city: str | None = None
    country: str | None = None
    country_code: str | None = Field(default=None, alias="countryCode")
    region: str | None = None
    region_name: str | None = Field(default=None, alias="regionName")
    timezone: str | None = None
    lat: float | None = None
    lon: float | None = None


class IpInfoResponse(_ProviderShape):
    """https://ipinfo.io/{ip}/json"""

    provider: Literal["ipinfo_io"] = "ipinfo_io"
    error: Any = None
    bogon: bool = False
    city: str | None = None
    region: str | None = None
    country: str | None = None
    loc: str | None = None
    timezone: str | None = None


ProviderResponse = Annotated[
    Union[IpapiCoResponse, IpApiComResponse, IpInfoResponse],
    Field(discriminator="provider"),
]

_response_adapter = TypeAdapter(ProviderResponse)


def parse_response(tag: str, raw: Any, service: str | None = None) -> ProviderResponse:
    """Validate a decoded JSON body into the shape registered for ``tag``.

    Raises:
        ProviderError: If the body is not an object or does not fit the shape.
    """
    if not isinstance(raw, dict):
        raise ProviderError(service or tag, f"unexpected payload type {type(raw).__name__}")
    try:
        return _response_adapter.validate_python({**raw, "provider": tag})
    except ValidationError as e:
        raise ProviderError(service or tag, f"malformed payload ({e.error_count()} errors)") from e


@singledispatch
def normalize(payload: Any, service: str | None = None) -> LocationData | None:
    """Normalize one provider response; ``None`` means no usable data."""
    raise TypeError(f"no normalizer for {type(payload).__name__}")


@normalize.register
def _(payload: IpapiCoResponse, service: str | None = None) -> LocationData | None:
    if payload.error or payload.reserved or payload.private:
        logger.debug("ipapi.co rejected lookup: %s", payload.reason or "reserved/private")
        return None
    return LocationData(
        city=payload.city,
        country=payload.country,
        country_name=payload.country_name,
        region=payload.region,
        timezone=payload.timezone,
        latitude=payload.latitude,
        longitude=payload.longitude,
        source=SOURCE_LIVE,
        service=service or "ipapi.co",
    )


@normalize.register
def _(payload: IpApiComResponse, service: str | None = None) -> LocationData | None:
    if payload.status != "success":
        logger.debug("ip-api.com status=%s message=%s", payload.status, payload.message)
        return None
    return LocationData(
        city=payload.city,
        country=payload.country_code,
        country_name=payload.country,
        region=payload.region_name,
        timezone=payload.timezone,
        latitude=payload.lat,
        longitude=payload.lon,
        source=SOURCE_LIVE,
        service=service or "ip-api.com",
    )


def parse_coordinates(loc: str | None) -> tuple[float | None, float | None]:
    """Split an ipinfo ``"lat,lon"`` string; unparseable input gives ``(None, None)``."""
    if not loc:
        return None, None
    parts = loc.split(",")
    if len(parts) != 2:
        return None, None
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return None, None


@normalize.register
def _(payload: IpInfoResponse, service: str | None = None) -> LocationData | None:
    if payload.error or payload.bogon:
        return None
    latitude, longitude = parse_coordinates(payload.loc)
    return LocationData(
        city=payload.city,
        country=payload.country,
        country_name=payload.country,
        region=payload.region,
        timezone=payload.timezone,
        latitude=latitude,
        longitude=longitude,
        source=SOURCE_LIVE,
        service=service or "ipinfo.io",
    )
