"""Classification of stored device locations as known or unknown."""

import ipaddress
import json
from typing import Any, Final

from ipgeo.models.location import as_mapping

UNKNOWN_SENTINELS: Final[frozenset[str]] = frozenset(
    {
        "unknown",
        "Unknown",
        "UNKNOWN",
        "غير محدد",
        "غير معروف",
        "N/A",
        "n/a",
        "null",
        "undefined",
        "",
    }
)

# IP strings that stand in for "no address recorded"
NON_RESOLVABLE_IPS: Final[frozenset[str]] = frozenset({"Unknown", "unknown", "N/A", ""})


def is_unknown_value(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() in UNKNOWN_SENTINELS


def is_unknown_location(location: Any) -> bool:
    """True iff both city and country are sentinels.

    A location with a real city but an unknown country is still known.
    """
    if location is None:
        return True
    fields = as_mapping(location)
    return _is_sentinel(fields.get("city")) and _is_sentinel(fields.get("country"))


def _is_sentinel(value: Any) -> bool:
    # Exact match; missing counts as empty and non-strings are real values
    if not value:
        return True
    return isinstance(value, str) and value in UNKNOWN_SENTINELS


def _looks_like_json_object(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("{") and value.endswith("}")


def _encoded_field_is_unknown(value: str) -> bool:
    try:
        parsed = json.loads(value)
    except ValueError:
        return True
    if not isinstance(parsed, dict):
        return True
    return any(isinstance(v, str) and v.strip() in UNKNOWN_SENTINELS for v in parsed.values())


def has_unknown_stored_location(device: Any) -> bool:
    """Check a device's stored location, decoding legacy JSON-encoded fields.

    Each of ``city`` and ``country`` may be a JSON object string written by an
    older schema. An encoded field that does not parse, or that contains any
    sentinel value, marks the device as unknown. Otherwise the plain
    ``is_unknown_location`` check applies to the raw pair.
    """
    location = as_mapping(as_mapping(device).get("location"))
    city = location.get("city")
    country = location.get("country")

    for value in (city, country):
        if _looks_like_json_object(value) and _encoded_field_is_unknown(value):
            return True

    return is_unknown_location({"city": city, "country": country})


def is_resolvable_ip(ip: Any) -> bool:
    """Whether ``ip`` is worth sending to a provider at all."""
    if not isinstance(ip, str) or ip in NON_RESOLVABLE_IPS:
        return False
    try:
        ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return True


def parse_location_field(value: str | None) -> dict[str, Any] | None:
    """Decode a stored city/country field for display.

    JSON object strings are decoded; anything else is taken as a city name.
    """
    if not value:
        return None
    if _looks_like_json_object(value):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {"city": value}
        if isinstance(parsed, dict):
            return parsed
    return {"city": value}
