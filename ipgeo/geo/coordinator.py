"""Request coalescing in front of the provider chain and the cache."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from ipgeo.geo.cache import ResolutionCache
from ipgeo.geo.detector import is_resolvable_ip
from ipgeo.models.location import LocationData

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    async def resolve(self, ip: str) -> LocationData | None: ...


class LocationCoordinator:
    """Single entry point for turning an IP into a location.

    At most one cache-miss resolution runs per IP. A caller asking for an IP
    that is already being resolved gets whatever is cached right now (often
    nothing) instead of starting a second lookup. Different IPs resolve
    concurrently without any shared lock.

    One instance is built per process and handed to every caller; the cache
    and the in-flight set are only ever mutated from here.
    """

    def __init__(self, resolver: Resolver, cache: ResolutionCache) -> None:
        self.resolver = resolver
        self.cache = cache
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def is_in_flight(self, ip: str) -> bool:
        return ip in self._in_flight

    @contextmanager
    def _mark_in_flight(self, ip: str) -> Iterator[None]:
        self._in_flight.add(ip)
        try:
            yield
        finally:
            self._in_flight.discard(ip)

    async def cached(self, ip: str) -> LocationData | None:
        """Current cached answer for ``ip`` without starting any work."""
        entry = await self.cache.get(ip)
        return entry.data if entry else None

    async def fetch_location(self, ip: str) -> LocationData | None:
        """Resolve ``ip``, serving a fresh cache entry when there is one.

        A cache hit returns the stored data as is, including the failure
        placeholder (check ``is_failure``). A miss that exhausts every
        provider caches the placeholder and returns ``None``.
        """
        if not is_resolvable_ip(ip):
            return None
        ip = ip.strip()

        if ip in self._in_flight:
            logger.debug("Resolution already in flight ip=%s", ip)
            return await self.cached(ip)

        # The marker is set before the first await so a concurrent caller
        # for the same IP always sees it.
        with self._mark_in_flight(ip):
            entry = await self.cache.get(ip)
            if entry is not None:
                logger.debug("Cache hit ip=%s source=%s", ip, entry.data.source)
                return entry.data

            logger.debug("Cache miss ip=%s", ip)
            try:
                location = await self.resolver.resolve(ip)
            except Exception:
                logger.exception("Unexpected error resolving ip=%s", ip)
                return None

            await self.cache.put(ip, location if location is not None else LocationData.failure(ip))
            return location

    async def refresh_location(self, ip: str) -> LocationData | None:
        """Drop any cached answer for ``ip`` and resolve it again."""
        if is_resolvable_ip(ip):
            await self.cache.delete(ip.strip())
        return await self.fetch_location(ip)

    async def has_cache_entry(self, ip: str) -> bool:
        return await self.cache.get(ip.strip()) is not None

    async def clear_cache(self) -> None:
        await self.cache.clear()

    async def cache_stats(self) -> dict[str, Any]:
        return await self.cache.stats()
