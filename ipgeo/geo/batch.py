"""Re-resolution of devices whose stored location is unknown."""

import logging
from collections.abc import Sequence
from typing import Any

from ipgeo.geo.coordinator import LocationCoordinator
from ipgeo.geo.detector import has_unknown_stored_location, is_resolvable_ip
from ipgeo.models.location import LocationData, as_mapping

logger = logging.getLogger(__name__)


class BatchRefreshOrchestrator:
    """Drive unknown-location devices through the coordinator, one at a time.

    Each IP is triggered at most once per device-list lifecycle. Resolution is
    sequential to stay polite with rate-limited providers.
    """

    def __init__(self, coordinator: LocationCoordinator) -> None:
        self.coordinator = coordinator
        self.processed: set[str] = set()
        self._last_devices: Sequence[Any] | None = None

    async def select(self, devices: Sequence[Any]) -> list[str]:
        """IPs from ``devices`` that need a live lookup, in list order."""
        selected: list[str] = []
        for device in devices:
            ip = as_mapping(device).get("ip")
            if not is_resolvable_ip(ip):
                continue
            ip = ip.strip()
            if ip in selected:
                continue
            if not has_unknown_stored_location(device):
                continue
            if ip in self.processed or self.coordinator.is_in_flight(ip):
                continue
            if await self.coordinator.has_cache_entry(ip):
                continue
            selected.append(ip)
        return selected

    async def on_devices_changed(self, devices: Sequence[Any]) -> dict[str, LocationData | None]:
        """Handle a new device list; the same list object is ignored."""
        if devices is self._last_devices or not devices:
            return {}
        self._last_devices = devices

        # select() may await the cache, so an overlapping call can pick the
        # same IPs. The recheck and the claim below run without yielding.
        selected = [ip for ip in await self.select(devices) if ip not in self.processed]
        if not selected:
            return {}
        self.processed.update(selected)
        logger.info("Refreshing %d unknown device locations", len(selected))

        results: dict[str, LocationData | None] = {}
        for ip in selected:
            results[ip] = await self.coordinator.fetch_location(ip)
        return results

    def reset(self) -> None:
        """Start a new device-list lifecycle."""
        self.processed.clear()
        self._last_devices = None
