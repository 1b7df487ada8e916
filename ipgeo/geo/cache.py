"""Time-bounded store of resolution outcomes, keyed by IP.

Both backends expire lazily: an entry past its retention window is treated
as absent when read and dropped at that point. There is no sweep.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as redis
from pydantic import ValidationError

from ipgeo.models.location import CacheEntry, LocationData

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = 24 * 60 * 60

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResolutionCache:
    """In-process cache used by a single API worker."""

    def __init__(
        self,
        ttl_sec: int = DEFAULT_TTL_SEC,
        failure_ttl_sec: int | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_sec)
        self.failure_ttl = timedelta(seconds=failure_ttl_sec if failure_ttl_sec is not None else ttl_sec)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def window_for(self, data: LocationData) -> timedelta:
        return self.failure_ttl if data.is_failure else self.ttl

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.resolved_at < self.window_for(entry.data)

    async def get(self, ip: str) -> CacheEntry | None:
        entry = self._entries.get(ip)
        if entry is None:
            return None
        if not self.is_fresh(entry):
            logger.debug("Cache entry expired ip=%s resolved_at=%s", ip, entry.resolved_at.isoformat())
            del self._entries[ip]
            return None
        return entry

    async def put(self, ip: str, data: LocationData) -> CacheEntry:
        entry = CacheEntry(ip=ip, data=data, resolved_at=self._clock())
        self._entries[ip] = entry
        return entry

    async def delete(self, ip: str) -> None:
        self._entries.pop(ip, None)

    async def clear(self) -> None:
        self._entries.clear()

    async def stats(self) -> dict[str, Any]:
        return {"size": len(self._entries), "keys": list(self._entries)}


class RedisResolutionCache(ResolutionCache):
    """Cache shared between workers through Redis.

    Entries are JSON documents written with SETEX so Redis also drops them,
    but ``get`` still checks ``resolved_at`` against the window.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_sec: int = DEFAULT_TTL_SEC,
        failure_ttl_sec: int | None = None,
        key_prefix: str = "geo:location:",
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(ttl_sec=ttl_sec, failure_ttl_sec=failure_ttl_sec, clock=clock)
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def key(self, ip: str) -> str:
        return f"{self.key_prefix}{ip}"

    async def get(self, ip: str) -> CacheEntry | None:
        raw = await self.redis_client.get(self.key(ip))
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry ip=%s", ip)
            await self.redis_client.delete(self.key(ip))
            return None
        if not self.is_fresh(entry):
            await self.redis_client.delete(self.key(ip))
            return None
        return entry

    async def put(self, ip: str, data: LocationData) -> CacheEntry:
        entry = CacheEntry(ip=ip, data=data, resolved_at=self._clock())
        ttl = max(1, int(self.window_for(data).total_seconds()))
        await self.redis_client.setex(self.key(ip), ttl, entry.model_dump_json())
        return entry

    async def delete(self, ip: str) -> None:
        await self.redis_client.delete(self.key(ip))

    async def _keys(self) -> list[str]:
        keys = []
        async for key in self.redis_client.scan_iter(match=f"{self.key_prefix}*"):
            if isinstance(key, bytes):
                key = key.decode()
            keys.append(key)
        return keys

    async def clear(self) -> None:
        keys = await self._keys()
        if keys:
            await self.redis_client.delete(*keys)

    async def stats(self) -> dict[str, Any]:
        keys = await self._keys()
        ips = [k[len(self.key_prefix):] for k in keys]
        return {"size": len(ips), "keys": ips}
