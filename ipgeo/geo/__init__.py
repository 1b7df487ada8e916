"""IP-to-location resolution.

This package turns raw device IPs into best-effort locations using a chain of
upstream providers, a time-bounded cache and per-IP request coalescing.
"""

from ipgeo.geo.batch import BatchRefreshOrchestrator
from ipgeo.geo.cache import RedisResolutionCache, ResolutionCache
from ipgeo.geo.coordinator import LocationCoordinator
from ipgeo.geo.detector import (
    UNKNOWN_SENTINELS,
    has_unknown_stored_location,
    is_resolvable_ip,
    is_unknown_location,
)
from ipgeo.geo.display import get_device_location_display, get_location_display
from ipgeo.geo.normalizer import normalize, parse_response
from ipgeo.geo.providers import (
    DEFAULT_PROVIDERS,
    Provider,
    ProviderChainResolver,
    default_providers,
    make_requests_fetcher,
)

__all__ = [
    # Components
    "BatchRefreshOrchestrator",
    "LocationCoordinator",
    "ProviderChainResolver",
    "ResolutionCache",
    "RedisResolutionCache",
    # Providers
    "DEFAULT_PROVIDERS",
    "Provider",
    "default_providers",
    "make_requests_fetcher",
    "normalize",
    "parse_response",
    # Detection and display
    "UNKNOWN_SENTINELS",
    "has_unknown_stored_location",
    "is_resolvable_ip",
    "is_unknown_location",
    "get_device_location_display",
    "get_location_display",
]
