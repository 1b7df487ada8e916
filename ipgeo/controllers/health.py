import logging
from fastapi import APIRouter
from typing import Dict

from ipgeo import state
from ipgeo.config import get_settings
from ipgeo.dependencies import OptionalRedis

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(redis_client: OptionalRedis) -> Dict[str, str]:
    backend = get_settings().geo.cache_backend
    cache_status = "healthy" if state.coordinator else "uninitialized"
    if backend == "redis":
        cache_status = "disconnected"
        if redis_client:
            try:
                await redis_client.ping()
                cache_status = "healthy"
            except Exception as e:
                logger.warning("Redis health check failed: %r", e)
                cache_status = "unhealthy"

    return {"status": "ok", "cache_backend": backend, "cache": cache_status}
