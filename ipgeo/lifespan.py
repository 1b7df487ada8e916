"""Application startup and shutdown.

Builds the resolution components once per process and publishes them on
``ipgeo.state`` for the request dependencies.
"""

import logging
from dataclasses import dataclass

import redis.asyncio as redis
import requests
from redis.asyncio import BlockingConnectionPool as RedisConnectionPool

from ipgeo import state
from ipgeo.config import get_settings
from ipgeo.geo.batch import BatchRefreshOrchestrator
from ipgeo.geo.cache import RedisResolutionCache, ResolutionCache
from ipgeo.geo.coordinator import LocationCoordinator
from ipgeo.geo.providers import (
    ProviderChainResolver,
    default_providers,
    make_requests_fetcher,
    new_http_session,
)

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    redis_client: redis.Redis | None = None
    http_session: requests.Session | None = None
    coordinator: LocationCoordinator | None = None
    batch_orchestrator: BatchRefreshOrchestrator | None = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection with connection pool.

    Returns:
        Configured Redis client.
    """
    settings = get_settings()

    redis_pool = RedisConnectionPool(
        host=settings.redis.host,
        port=settings.redis.port,
        password=settings.redis.password if settings.redis.password else None,
        max_connections=settings.redis.max_connections,
        timeout=settings.redis.pool_timeout_sec,
        health_check_interval=settings.redis.health_check_interval,
        socket_timeout=settings.redis.socket_timeout,
        socket_connect_timeout=settings.redis.socket_connect_timeout,
        retry_on_timeout=settings.redis.retry_on_timeout,
    )

    candidate_client = redis.Redis(connection_pool=redis_pool, decode_responses=True)
    if hasattr(candidate_client, "__await__"):
        return await candidate_client
    return candidate_client


def init_http_session() -> requests.Session:
    """Create the HTTP session shared by all provider requests."""
    return new_http_session(get_settings().geo.user_agent)


def build_cache(redis_client: redis.Redis | None) -> ResolutionCache:
    """Pick the cache backend named in settings."""
    geo = get_settings().geo
    if geo.cache_backend == "redis" and redis_client is not None:
        return RedisResolutionCache(
            redis_client,
            ttl_sec=geo.cache_ttl_sec,
            failure_ttl_sec=geo.failure_ttl_sec,
            key_prefix=geo.redis_key_prefix,
        )
    return ResolutionCache(ttl_sec=geo.cache_ttl_sec, failure_ttl_sec=geo.failure_ttl_sec)


def build_coordinator(session: requests.Session, redis_client: redis.Redis | None = None) -> LocationCoordinator:
    geo = get_settings().geo
    resolver = ProviderChainResolver(
        make_requests_fetcher(session, timeout=geo.request_timeout_sec),
        default_providers(geo.ipinfo_token),
    )
    return LocationCoordinator(resolver, build_cache(redis_client))


async def setup_resources() -> LifespanResources:
    """Set up all shared resources.

    Returns:
        LifespanResources containing all initialized resources.
    """
    settings = get_settings()
    resources = LifespanResources()

    if settings.geo.cache_backend == "redis":
        resources.redis_client = await init_redis()

    resources.http_session = init_http_session()
    resources.coordinator = build_coordinator(resources.http_session, resources.redis_client)
    resources.batch_orchestrator = BatchRefreshOrchestrator(resources.coordinator)
    logger.info(
        "Location service ready (cache=%s, ttl=%ss, failure_ttl=%ss)",
        settings.geo.cache_backend,
        settings.geo.cache_ttl_sec,
        settings.geo.failure_ttl_sec,
    )

    state.redis_client = resources.redis_client
    state.coordinator = resources.coordinator
    state.batch_orchestrator = resources.batch_orchestrator

    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Clean up all resources on shutdown.

    Args:
        resources: The resources to clean up.
    """
    if resources.redis_client:
        aclose = getattr(resources.redis_client, "aclose", None)
        if callable(aclose):
            await aclose()
        else:
            close = getattr(resources.redis_client, "close", None)
            if callable(close):
                close()

    if resources.http_session:
        resources.http_session.close()

    state.redis_client = None
    state.coordinator = None
    state.batch_orchestrator = None
