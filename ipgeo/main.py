import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ipgeo.config import get_settings
from ipgeo.controllers.health import router as health_router
from ipgeo.controllers.locations import router as locations_router
from ipgeo.errors import register_exception_handlers
from ipgeo.lifespan import cleanup_resources, setup_resources
from ipgeo.middleware import HTTPLogMiddleware

settings = get_settings()

app = FastAPI(title="License Manager Geolocation API", version="1.0.0")
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origins_regex or None,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.debug.request:
    logging.getLogger("ipgeo.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)

if settings.debug.geo:
    logging.getLogger("ipgeo.geo").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)

app.router.lifespan_context = lifespan

app.include_router(health_router)
app.include_router(locations_router)
