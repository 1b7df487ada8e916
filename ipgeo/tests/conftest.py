import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import asyncio

import pytest
from fastapi.testclient import TestClient

from ipgeo.config import clear_settings_cache
from ipgeo.errors import ProviderError
from ipgeo.geo.cache import ResolutionCache
from ipgeo.geo.coordinator import LocationCoordinator
from ipgeo.geo.providers import ProviderChainResolver

IPAPI_CO_OK = {
    "ip": "8.8.8.8",
    "city": "Mountain View",
    "region": "California",
    "country": "US",
    "country_name": "United States",
    "timezone": "America/Los_Angeles",
    "latitude": 37.42,
    "longitude": -122.08,
}

IP_API_COM_OK = {
    "status": "success",
    "city": "Mountain View",
    "countryCode": "US",
    "country": "United States",
    "regionName": "California",
    "timezone": "America/Los_Angeles",
    "lat": 37.4,
    "lon": -122.1,
}

IPINFO_OK = {
    "ip": "8.8.8.8",
    "city": "Mountain View",
    "region": "California",
    "country": "US",
    "loc": "37.4056,-122.0775",
    "timezone": "America/Los_Angeles",
}


class FakeTransport:
    """Stands in for the HTTP fetcher; answers by provider service name.

    A provider with no configured answer behaves like an unreachable host.
    """

    def __init__(self, responses=None, gate: asyncio.Event | None = None):
        self.responses = dict(responses or {})
        self.gate = gate
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, provider, ip):
        self.calls.append((provider.service, ip))
        if self.gate is not None:
            await self.gate.wait()
        result = self.responses.get(provider.service)
        if result is None:
            raise ProviderError(provider.service, "connection refused")
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def services(self) -> list[str]:
        return [service for service, _ in self.calls]


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def make_coordinator():
    def _make(transport, cache=None):
        resolver = ProviderChainResolver(transport)
        return LocationCoordinator(resolver, cache if cache is not None else ResolutionCache())

    return _make


@pytest.fixture
def transport():
    return FakeTransport({"ipapi.co": IPAPI_CO_OK})


@pytest.fixture
def client(monkeypatch, transport):
    monkeypatch.delenv("GEO_CACHE_BACKEND", raising=False)
    clear_settings_cache()

    import ipgeo.lifespan as lifespan
    import ipgeo.main as main

    monkeypatch.setattr(lifespan, "make_requests_fetcher", lambda *_args, **_kwargs: transport)

    with TestClient(main.app) as c:
        yield c
    clear_settings_cache()
