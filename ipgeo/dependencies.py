"""Dependency injection for FastAPI endpoints.

This module provides FastAPI dependencies for accessing the shared
resolution components built during application startup.

Usage in controllers:
    from ipgeo.dependencies import Coordinator

    @router.get("/example/{ip}")
    async def example(ip: str, coordinator: Coordinator):
        return await coordinator.fetch_location(ip)
"""

from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends

from ipgeo import state
from ipgeo.errors import ServiceUnavailableError
from ipgeo.geo.batch import BatchRefreshOrchestrator
from ipgeo.geo.coordinator import LocationCoordinator


def get_optional_redis() -> redis.Redis | None:
    """Get the Redis client if the redis cache backend is in use, or None."""
    return state.redis_client


def get_coordinator() -> LocationCoordinator:
    """Get the process-wide location coordinator.

    Raises:
        ServiceUnavailableError: If the coordinator is not initialized.
    """
    if state.coordinator is None:
        raise ServiceUnavailableError(detail="Location service not initialized")
    return state.coordinator


def get_batch_orchestrator() -> BatchRefreshOrchestrator:
    """Get the batch orchestrator for unknown-location refreshes.

    Raises:
        ServiceUnavailableError: If the orchestrator is not initialized.
    """
    if state.batch_orchestrator is None:
        raise ServiceUnavailableError(detail="Location service not initialized")
    return state.batch_orchestrator


OptionalRedis = Annotated[redis.Redis | None, Depends(get_optional_redis)]
Coordinator = Annotated[LocationCoordinator, Depends(get_coordinator)]
BatchOrchestrator = Annotated[BatchRefreshOrchestrator, Depends(get_batch_orchestrator)]
