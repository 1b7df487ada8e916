import logging

from fastapi import APIRouter

from ipgeo.dependencies import BatchOrchestrator, Coordinator
from ipgeo.errors import BadRequestError
from ipgeo.geo.detector import is_resolvable_ip
from ipgeo.geo.display import get_device_location_display, get_location_display
from ipgeo.models.location import (
    BatchRefreshRequest,
    BatchRefreshResponse,
    CacheStatsResponse,
    InFlightResponse,
    LocationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(coordinator: Coordinator) -> CacheStatsResponse:
    return CacheStatsResponse(**await coordinator.cache_stats())


@router.delete("/cache")
async def clear_cache(coordinator: Coordinator, batch: BatchOrchestrator):
    await coordinator.clear_cache()
    batch.reset()
    return {"success": True}


@router.get("/in-flight", response_model=InFlightResponse)
async def in_flight(coordinator: Coordinator) -> InFlightResponse:
    ips = sorted(coordinator.in_flight)
    return InFlightResponse(count=len(ips), ips=ips)


@router.post("/devices/refresh", response_model=BatchRefreshResponse)
async def refresh_devices(body: BatchRefreshRequest, batch: BatchOrchestrator) -> BatchRefreshResponse:
    resolved = await batch.on_devices_changed(body.devices)
    displays = {
        device.ip: get_device_location_display(device, resolved.get(device.ip.strip()))
        for device in body.devices
        if device.ip
    }
    return BatchRefreshResponse(selected=list(resolved), resolved=resolved, displays=displays)


@router.get("/{ip}", response_model=LocationResponse)
async def get_location(ip: str, coordinator: Coordinator) -> LocationResponse:
    cached = is_resolvable_ip(ip) and await coordinator.has_cache_entry(ip)
    location = await coordinator.fetch_location(ip)
    return LocationResponse(ip=ip, location=location, display=get_location_display(location), cached=cached)


@router.post("/{ip}/refresh", response_model=LocationResponse)
async def refresh_location(ip: str, coordinator: Coordinator) -> LocationResponse:
    if not is_resolvable_ip(ip):
        raise BadRequestError(detail="IP address cannot be resolved", ip=ip)
    logger.info("Forced location refresh ip=%s", ip)
    location = await coordinator.refresh_location(ip)
    return LocationResponse(ip=ip, location=location, display=get_location_display(location))
