"""Display text for resolved and stored locations."""

from typing import Any, Final

from ipgeo.geo.detector import is_unknown_location, is_unknown_value, parse_location_field
from ipgeo.models.location import NOT_SPECIFIED, LocationData, as_mapping

UPDATING: Final[str] = f"{NOT_SPECIFIED} - جاري التحديث"


def get_location_display(location: LocationData | None) -> str:
    if location is None:
        return NOT_SPECIFIED
    parts = [
        location.city,
        location.region,
        location.country_name or location.country,
    ]
    known = [p for p in parts if p and not is_unknown_value(p)]
    return ", ".join(known) if known else NOT_SPECIFIED


def get_device_location_display(device: Any, resolved: LocationData | None = None) -> str:
    """Best display for a device: a live lookup first, then what is stored."""
    if resolved is not None and not resolved.is_failure:
        return get_location_display(resolved)

    stored = as_mapping(as_mapping(device).get("location"))
    city_field = parse_location_field(stored.get("city")) or {}
    country_field = parse_location_field(stored.get("country")) or {}

    city = city_field.get("city")
    # A plain country string decodes as {"city": value}
    country = city_field.get("country") or country_field.get("country") or country_field.get("city")

    if is_unknown_location({"city": city, "country": country}):
        return UPDATING

    known = [p for p in (city, country) if p and not is_unknown_value(p)]
    return ", ".join(known) if known else NOT_SPECIFIED
