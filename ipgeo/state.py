from typing import Optional

import redis.asyncio as redis

from ipgeo.geo.batch import BatchRefreshOrchestrator
from ipgeo.geo.coordinator import LocationCoordinator

# Global runtime state initialized in lifespan.setup_resources
redis_client: Optional[redis.Redis] = None
coordinator: Optional[LocationCoordinator] = None
batch_orchestrator: Optional[BatchRefreshOrchestrator] = None
